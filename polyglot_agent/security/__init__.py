"""Security module for polyglot-agent."""

from .validators import URLValidator, InvalidURLError

__all__ = ["URLValidator", "InvalidURLError"]
