"""Feedhub - RSS/Atom ingestion into an indexed store."""

__version__ = "0.1.0"
