"""GitHub Streak Manager backend."""

__version__ = "1.0.0"
