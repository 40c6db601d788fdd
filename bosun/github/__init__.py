"""GitHub REST collaborators used by dispatcher runs."""

from __future__ import annotations

from .client import (
    GitHubClientFactory,
    GitHubConfig,
    GitHubIdentityProvider,
    GitHubIssueClient,
    GitHubRepoClient,
    RequestCounter,
)
from .errors import GitHubAPIError, GitHubConfigError, GitHubResponseShapeError
from .models import IssueSnapshot, RateLimitUsage

__all__ = [
    "GitHubAPIError",
    "GitHubClientFactory",
    "GitHubConfig",
    "GitHubConfigError",
    "GitHubIdentityProvider",
    "GitHubIssueClient",
    "GitHubRepoClient",
    "GitHubResponseShapeError",
    "IssueSnapshot",
    "RateLimitUsage",
    "RequestCounter",
]
