"""Convert a directory tree into a single document for large language models."""

__version__ = "0.1.0"
