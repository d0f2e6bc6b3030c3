"""Chat relay - streams generated text from an upstream service to a chat client."""

__version__ = "0.1.0"
