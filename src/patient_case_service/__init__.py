"""Patient case service: case records with investigation file attachments."""

__version__ = "1.0.0"
