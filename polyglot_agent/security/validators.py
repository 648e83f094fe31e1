"""Security validators for input validation."""

import re
from urllib.parse import urlparse
from typing import Tuple, Optional


class InvalidURLError(ValueError):
    """Raised when a documentation URL is rejected before any network access."""


class URLValidator:
    """Validates and sanitizes documentation URLs."""

    ALLOWED_SCHEMES = ['http', 'https']
    LOCAL_HOSTS = ['localhost', '127.0.0.1', '::1']
    MAX_LENGTH = 2000

    def validate_url(self, url: str) -> Tuple[bool, str, Optional[str]]:
        """
        Validate a documentation URL.

        Rejects:
        - Empty or oversized input
        - Embedded whitespace or control characters
        - Schemes other than http/https
        - URLs without a host

        Args:
            url: URL exactly as the user typed it

        Returns:
            Tuple of (is_valid, error_message, sanitized_url)
            - is_valid: True if URL passes all checks
            - error_message: Human-readable error (empty string if valid)
            - sanitized_url: URL with surrounding whitespace and fragment removed (None if invalid)
        """
        if not url or not url.strip():
            return False, "Please enter a documentation URL", None

        url = url.strip()
        if len(url) > self.MAX_LENGTH:
            return False, "Invalid URL length", None

        if re.search(r'[\s\x00-\x1f\x7f]', url):
            return False, "Invalid URL format: contains whitespace", None

        try:
            parsed = urlparse(url)
            # Accessing .port validates the port component
            parsed.port
        except ValueError as e:
            return False, f"Invalid URL format: {e}", None

        if parsed.scheme not in self.ALLOWED_SCHEMES:
            return False, f"Only {'/'.join(self.ALLOWED_SCHEMES)} URLs allowed", None

        if not parsed.hostname:
            return False, "Invalid URL format: missing host", None

        sanitized = parsed._replace(fragment="").geturl()
        return True, "", sanitized

    def require_valid_url(self, url: str) -> str:
        """Return the sanitized URL or raise ``InvalidURLError``."""
        is_valid, error, sanitized = self.validate_url(url)
        if not is_valid:
            raise InvalidURLError(error)
        return sanitized

    @classmethod
    def is_local(cls, url: str) -> bool:
        """True when the URL points at this machine and can skip the relay."""
        return (urlparse(url).hostname or "") in cls.LOCAL_HOSTS
