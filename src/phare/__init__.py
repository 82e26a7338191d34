"""Daily Instagram missions and gamification for independent restaurants."""

__version__ = "0.1.0"
