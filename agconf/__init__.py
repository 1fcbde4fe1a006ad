"""agconf — distribute engineering standards into downstream repositories."""

__version__ = "0.1.0"
