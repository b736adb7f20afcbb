"""Job tracking service with a secret-protected completion callback."""

__version__ = "0.1.0"
