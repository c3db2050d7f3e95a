"""Immich installer — guided Docker Compose setup with hardware acceleration."""

__version__ = "0.1.0"
