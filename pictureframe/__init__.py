"""Photo frame display controller and settings store."""

__version__ = "0.3.0"
