"""Session assistant client for OpenAI-compatible text and image services."""

__version__ = "0.1.0"
