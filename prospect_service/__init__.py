"""Package marker for the CGR prospecting API service."""

__version__ = "0.1.0"
