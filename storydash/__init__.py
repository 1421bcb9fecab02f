"""Dashboard analytics for the story platform."""

__version__ = "0.1.0"
