"""Database access layer of the voice recording management dashboard."""

__version__ = "0.1.0"
