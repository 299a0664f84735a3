"""e2elint: static compliance analyzer for browser end-to-end test code."""

__version__ = "0.1.0"
