"""Rate-limited client for submitting documents to the registry API."""

__version__ = "0.1.0"
