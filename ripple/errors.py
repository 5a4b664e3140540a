"""Exception hierarchy for ripple."""

from __future__ import annotations


class RippleError(Exception):
    """Base class for every error ripple raises on purpose."""


class CollaboratorUnavailable(RippleError):
    """A version-control or build-metadata lookup could not run at all."""


class MalformedMetadata(RippleError):
    """The dependency table could not be decoded."""


class ConfigError(RippleError):
    """The configuration file is unreadable or holds invalid values."""


class UnsupportedOption(RippleError):
    """A test-runner option the selected backend cannot honor."""
