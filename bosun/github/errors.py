"""GitHub client errors."""

from __future__ import annotations


class GitHubAPIError(RuntimeError):
    """Raised when GitHub returns an error response or cannot be reached."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, status_code: int, path: str) -> GitHubAPIError:
        """Return an error for non-2xx HTTP responses."""
        return cls(f"GitHub API HTTP {status_code} for {path}", status_code=status_code)

    @classmethod
    def network_error(cls, detail: str) -> GitHubAPIError:
        """Return an error for transport failures (DNS, TLS, timeouts)."""
        return cls(f"GitHub API network error: {detail}")


class GitHubResponseShapeError(RuntimeError):
    """Raised when GitHub REST responses are missing expected fields."""

    @classmethod
    def missing(cls, field: str) -> GitHubResponseShapeError:
        """Return an error for a missing response field."""
        return cls(f"GitHub API response missing expected field: {field}")


class GitHubConfigError(RuntimeError):
    """Raised when GitHub client configuration is invalid."""

    @classmethod
    def empty_token(cls) -> GitHubConfigError:
        """Return an error when the provided token is empty."""
        return cls("GitHub token must be non-empty")
