"""Models, validation, tokens, ASGI middleware and notification fan-out for a workspace chat service."""

__version__ = "0.1.0"