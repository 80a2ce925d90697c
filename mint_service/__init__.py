"""Scheduled contract minting service with a health/status endpoint."""

__version__ = "0.1.0"
