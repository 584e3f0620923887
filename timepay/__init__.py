"""Time tracking and pay computation."""

__version__ = "0.1.0"
