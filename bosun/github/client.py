"""GitHub REST clients scoped to a repository or a single issue."""

from __future__ import annotations

import dataclasses
import os
import typing as typ
from urllib.parse import quote

import httpx
import msgspec

from bosun.logging import get_logger, log_info

from .errors import GitHubAPIError, GitHubConfigError, GitHubResponseShapeError
from .models import (
    AuthenticatedUser,
    IssueSnapshot,
    RateLimitResponse,
    RateLimitUsage,
)

if typ.TYPE_CHECKING:
    from bosun.context import RepoRef

logger = get_logger(__name__)

_HTTP_ERROR_STATUS_THRESHOLD = 400

_T = typ.TypeVar("_T")


@dataclasses.dataclass(frozen=True, slots=True)
class GitHubConfig:
    """Connection settings shared by every client created during a run."""

    endpoint: str = "https://api.github.com"
    timeout_s: float = 20.0
    user_agent: str = "bosun/0.1"

    @classmethod
    def from_env(cls) -> GitHubConfig:
        """Build configuration honouring the runner's ``GITHUB_API_URL``."""
        endpoint = os.environ.get("GITHUB_API_URL", "").strip()
        if not endpoint:
            return cls()
        return cls(endpoint=endpoint.rstrip("/"))


class RequestCounter:
    """Count outbound API requests made by scoped clients."""

    def __init__(self) -> None:
        """Start counting from zero."""
        self.count = 0

    def increment(self) -> None:
        """Record one request."""
        self.count += 1


def build_http_client(
    token: str,
    config: GitHubConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Return an authenticated ``httpx.AsyncClient`` for the REST API."""
    if not token.strip():
        raise GitHubConfigError.empty_token()
    return httpx.AsyncClient(
        base_url=config.endpoint,
        timeout=config.timeout_s,
        transport=transport,
        headers={
            "Authorization": f"Bearer {token}",
            "User-Agent": config.user_agent,
            "Accept": "application/vnd.github+json",
        },
    )


async def _send(
    client: httpx.AsyncClient,
    method: str,
    path: str,
    *,
    json: object | None = None,
) -> httpx.Response:
    """Send a request and translate transport and HTTP failures."""
    try:
        response = await client.request(method, path, json=json)
    except httpx.RequestError as exc:
        raise GitHubAPIError.network_error(str(exc)) from exc
    if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
        raise GitHubAPIError.http_error(response.status_code, path)
    return response


def _decode(response: httpx.Response, type_: type[_T], *, field: str) -> _T:
    try:
        return msgspec.json.decode(response.content, type=type_)
    except msgspec.DecodeError as exc:
        raise GitHubResponseShapeError.missing(field) from exc


class GitHubRepoClient:
    """Client scoped to one repository.

    Mutating calls are skipped (and logged) when ``readonly`` is set, so a bot
    can be dry-run against real events.
    """

    def __init__(
        self,
        repo: RepoRef,
        *,
        http_client: httpx.AsyncClient,
        readonly: bool = False,
        counter: RequestCounter | None = None,
    ) -> None:
        """Initialise the client around an authenticated HTTP client."""
        self._repo = repo
        self._client = http_client
        self._readonly = readonly
        self._counter = counter or RequestCounter()

    @property
    def repo(self) -> RepoRef:
        """Return the repository this client is bound to."""
        return self._repo

    @property
    def readonly(self) -> bool:
        """Return True when mutating calls are suppressed."""
        return self._readonly

    @property
    def request_count(self) -> int:
        """Return the number of API requests made through the shared counter."""
        return self._counter.count

    @property
    def _repo_path(self) -> str:
        return f"/repos/{self._repo.owner}/{self._repo.name}"

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def _request(
        self, method: str, path: str, *, json: object | None = None
    ) -> httpx.Response:
        self._counter.increment()
        return await _send(self._client, method, path, json=json)

    async def _mutate(
        self,
        description: str,
        method: str,
        path: str,
        *,
        json: object | None = None,
    ) -> httpx.Response | None:
        if self._readonly:
            log_info(logger, "readonly: would have %s", description)
            return None
        return await self._request(method, path, json=json)

    async def create_issue(self, title: str, body: str) -> int | None:
        """Open a new issue and return its number (None in read-only mode)."""
        response = await self._mutate(
            f"created issue {title!r}",
            "POST",
            f"{self._repo_path}/issues",
            json={"title": title, "body": body},
        )
        if response is None:
            return None
        return _decode(response, IssueSnapshot, field="issue").number


class GitHubIssueClient(GitHubRepoClient):
    """Client scoped to a single issue (or pull request) number."""

    def __init__(
        self,
        repo: RepoRef,
        issue_number: int,
        *,
        http_client: httpx.AsyncClient,
        readonly: bool = False,
        counter: RequestCounter | None = None,
    ) -> None:
        """Initialise the client bound to ``issue_number``."""
        super().__init__(
            repo, http_client=http_client, readonly=readonly, counter=counter
        )
        self._issue_number = issue_number

    @property
    def issue_number(self) -> int:
        """Return the issue number this client is bound to."""
        return self._issue_number

    @property
    def _issue_path(self) -> str:
        return f"{self._repo_path}/issues/{self._issue_number}"

    async def get_issue(self) -> IssueSnapshot:
        """Fetch the current state of the issue."""
        response = await self._request("GET", self._issue_path)
        return _decode(response, IssueSnapshot, field="issue")

    async def post_comment(self, body: str) -> None:
        """Add a comment to the issue."""
        await self._mutate(
            f"commented on #{self._issue_number}",
            "POST",
            f"{self._issue_path}/comments",
            json={"body": body},
        )

    async def add_label(self, name: str) -> None:
        """Add a label to the issue."""
        await self._mutate(
            f"added label {name!r} to #{self._issue_number}",
            "POST",
            f"{self._issue_path}/labels",
            json={"labels": [name]},
        )

    async def remove_label(self, name: str) -> None:
        """Remove a label from the issue."""
        await self._mutate(
            f"removed label {name!r} from #{self._issue_number}",
            "DELETE",
            f"{self._issue_path}/labels/{quote(name, safe='')}",
        )

    async def close_issue(self) -> None:
        """Close the issue."""
        await self._mutate(
            f"closed #{self._issue_number}",
            "PATCH",
            self._issue_path,
            json={"state": "closed"},
        )

    async def reopen_issue(self) -> None:
        """Reopen the issue."""
        await self._mutate(
            f"reopened #{self._issue_number}",
            "PATCH",
            self._issue_path,
            json={"state": "open"},
        )


class GitHubClientFactory:
    """Build scoped clients for a run and expose its usage accounting.

    Every client created by one factory shares a :class:`RequestCounter`, so
    ``request_count`` reflects all API calls made by the run.
    """

    def __init__(
        self,
        config: GitHubConfig | None = None,
        *,
        counter: RequestCounter | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialise with connection settings and an optional test transport."""
        self._config = config or GitHubConfig()
        self._counter = counter or RequestCounter()
        self._transport = transport

    @property
    def request_count(self) -> int:
        """Return the number of API requests made by clients from this factory."""
        return self._counter.count

    def _http_client(self, token: str) -> httpx.AsyncClient:
        return build_http_client(token, self._config, transport=self._transport)

    def issue_client(
        self,
        token: str,
        repo: RepoRef,
        issue_number: int,
        *,
        readonly: bool = False,
    ) -> GitHubIssueClient:
        """Return a client bound to ``issue_number`` in ``repo``."""
        return GitHubIssueClient(
            repo,
            issue_number,
            http_client=self._http_client(token),
            readonly=readonly,
            counter=self._counter,
        )

    def repo_client(
        self,
        token: str,
        repo: RepoRef,
        *,
        readonly: bool = False,
    ) -> GitHubRepoClient:
        """Return a client bound to ``repo``."""
        return GitHubRepoClient(
            repo,
            http_client=self._http_client(token),
            readonly=readonly,
            counter=self._counter,
        )

    async def fetch_rate_limit_usage(self, token: str) -> RateLimitUsage:
        """Fetch the token's current rate-limit consumption.

        The request is not counted; it measures the run rather than being
        part of it.
        """
        async with self._http_client(token) as client:
            response = await _send(client, "GET", "/rate_limit")
        return RateLimitUsage.from_response(
            _decode(response, RateLimitResponse, field="resources")
        )


class GitHubIdentityProvider:
    """Resolve the authenticated principal behind a token."""

    def __init__(
        self,
        config: GitHubConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialise with connection settings and an optional test transport."""
        self._config = config or GitHubConfig()
        self._transport = transport

    async def get_authenticated_name(self, token: str) -> str:
        """Return the display name for ``token``, falling back to the login."""
        async with build_http_client(
            token, self._config, transport=self._transport
        ) as client:
            response = await _send(client, "GET", "/user")
        user = _decode(response, AuthenticatedUser, field="login")
        return user.name or user.login
