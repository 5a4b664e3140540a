"""ripple: find the build units affected by changes since a base revision."""

__version__ = "0.3.0"
