"""Configuration bundle distribution service."""

__version__ = "1.0.0"
