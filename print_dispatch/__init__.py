"""Local print dispatch service."""

__version__ = "1.0.0"
