"""Pinterest video metadata service."""

__version__ = "1.0.0"
