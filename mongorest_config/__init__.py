"""Startup configuration resolver for the MongoDB REST service."""

__version__ = "0.1.0"
