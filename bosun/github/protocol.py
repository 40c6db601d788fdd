"""Client interfaces consumed by the dispatcher core.

The dispatcher never talks to GitHub directly; it asks a :class:`ClientFactory`
for a scoped client and hands that to handler hooks. Tests substitute fakes
that satisfy these protocols.
"""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from bosun.context import RepoRef

    from .models import RateLimitUsage


@typ.runtime_checkable
class ScopedClient(typ.Protocol):
    """A client bound to a repository, with a read-only flag."""

    @property
    def readonly(self) -> bool:
        """Return True when mutating calls are suppressed."""
        ...

    async def aclose(self) -> None:
        """Release any HTTP resources held by the client."""
        ...


@typ.runtime_checkable
class IssueScopedClient(ScopedClient, typ.Protocol):
    """A client bound to a single issue number."""

    @property
    def issue_number(self) -> int:
        """Return the bound issue number."""
        ...

    async def post_comment(self, body: str) -> None:
        """Add a comment to the bound issue."""
        ...


@typ.runtime_checkable
class ClientFactory(typ.Protocol):
    """Build scoped clients and report the run's API usage."""

    @property
    def request_count(self) -> int:
        """Return the number of API requests made so far in the run."""
        ...

    def issue_client(
        self,
        token: str,
        repo: RepoRef,
        issue_number: int,
        *,
        readonly: bool = False,
    ) -> IssueScopedClient:
        """Return a client bound to one issue."""
        ...

    def repo_client(
        self,
        token: str,
        repo: RepoRef,
        *,
        readonly: bool = False,
    ) -> ScopedClient:
        """Return a client bound to the whole repository."""
        ...

    async def fetch_rate_limit_usage(self, token: str) -> RateLimitUsage:
        """Return the consumed fraction of each rate-limit bucket."""
        ...
