"""Manifest-driven documentation generation for humans and AI assistants."""

__version__ = "1.0.0"
