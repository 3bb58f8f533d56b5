"""Errors raised by the GitHub connectors."""

from typing import Optional


class GitHubAPIError(Exception):
    """A GitHub call failed, either at the transport level or with a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def is_transient(self) -> bool:
        """Network errors, rate limiting and 5xx responses may succeed on retry."""
        if self.status_code is None:
            return True
        return self.status_code == 429 or self.status_code >= 500


class GitHubAuthError(GitHubAPIError):
    """OAuth exchange or token validation failed."""
