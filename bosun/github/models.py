"""Typed views over the GitHub REST responses bosun reads."""

from __future__ import annotations

import dataclasses

import msgspec


class IssueLabel(msgspec.Struct, frozen=True):
    """Label attached to an issue."""

    name: str


class IssueUser(msgspec.Struct, frozen=True):
    """User reference embedded in issue payloads."""

    login: str


class IssueSnapshot(msgspec.Struct, kw_only=True, frozen=True):
    """Subset of the REST issue resource used by dispatcher handlers."""

    number: int
    title: str
    state: str
    body: str | None = None
    user: IssueUser | None = None
    labels: list[IssueLabel] = msgspec.field(default_factory=list)
    assignees: list[IssueUser] = msgspec.field(default_factory=list)

    @property
    def label_names(self) -> list[str]:
        """Return label names in API order."""
        return [label.name for label in self.labels]


class AuthenticatedUser(msgspec.Struct, frozen=True):
    """The ``GET /user`` fields used for identity resolution."""

    login: str
    name: str | None = None


class RateLimitBucket(msgspec.Struct, frozen=True):
    """Quota state for one rate-limit resource."""

    limit: int
    remaining: int

    @property
    def consumed(self) -> float:
        """Return the consumed fraction of the quota (0.0 to 1.0)."""
        if self.limit <= 0:
            return 0.0
        return 1 - self.remaining / self.limit


class RateLimitResources(msgspec.Struct, frozen=True):
    """The three buckets reported as usage metrics."""

    core: RateLimitBucket
    graphql: RateLimitBucket
    search: RateLimitBucket


class RateLimitResponse(msgspec.Struct, frozen=True):
    """Envelope of ``GET /rate_limit``."""

    resources: RateLimitResources


@dataclasses.dataclass(frozen=True, slots=True)
class RateLimitUsage:
    """Consumed fraction of each rate-limit bucket for the token."""

    core: float
    graphql: float
    search: float

    @classmethod
    def from_response(cls, response: RateLimitResponse) -> RateLimitUsage:
        """Build usage figures from a decoded ``/rate_limit`` response."""
        resources = response.resources
        return cls(
            core=resources.core.consumed,
            graphql=resources.graphql.consumed,
            search=resources.search.consumed,
        )
