"""Run configuration for bosun dispatchers.

Per-run values (token, read-only flag) come from workflow inputs. Deployment
values come from ``BOSUN_*`` environment variables:

- ``BOSUN_ERROR_LOGGING_ISSUE``: ``owner/repo#number`` of the issue that
  collects failure reports. Events on that issue are never dispatched.
- ``BOSUN_LOG_LEVEL``: femtologging level (default ``INFO``).
- ``BOSUN_TELEMETRY_BACKEND``: ``none`` (default) or ``log``.

Usage
-----
>>> import os
>>> os.environ["BOSUN_ERROR_LOGGING_ISSUE"] = "octo/reef#7"
>>> ErrorLoggingIssue.from_env()
ErrorLoggingIssue(owner='octo', repo='reef', issue=7)

"""

from __future__ import annotations

import dataclasses as dc
import os
import typing as typ

from .actions import get_input
from .common.slug import issue_ref, parse_issue_ref
from .errors import ActionInputError, ConfigError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .context import EventContext

InputReader = typ.Callable[[str], str]

_DEFAULT_LOG_LEVEL = "INFO"


@dc.dataclass(frozen=True, slots=True)
class RunConfig:
    """Workflow inputs required to dispatch an event.

    Attributes
    ----------
    token
        Token used for every GitHub API call made during the run.
    readonly
        When true, scoped clients skip mutating API calls.

    """

    token: str
    readonly: bool = False

    @classmethod
    def from_inputs(cls, read_input: InputReader | None = None) -> RunConfig:
        """Read ``token`` (required) and ``readonly`` (optional).

        ``readonly`` is true for any non-empty value.

        Raises
        ------
        ActionInputError
            If the ``token`` input is missing.

        """
        reader = read_input or get_input
        token = reader("token")
        if not token:
            raise ActionInputError.missing("token")
        return cls(token=token, readonly=bool(reader("readonly")))


@dc.dataclass(frozen=True, slots=True)
class ErrorLoggingIssue:
    """Issue that receives failure reports."""

    owner: str
    repo: str
    issue: int

    @property
    def ref(self) -> str:
        """Return the ``owner/repo#issue`` reference."""
        return issue_ref(self.owner, self.repo, self.issue)

    def matches(self, context: EventContext) -> bool:
        """Return True when ``context`` targets this exact issue."""
        return (
            context.repo.owner == self.owner
            and context.repo.name == self.repo
            and context.issue_number == self.issue
        )

    @classmethod
    def parse(cls, raw: str) -> ErrorLoggingIssue:
        """Parse an ``owner/repo#number`` reference.

        Raises
        ------
        ConfigError
            If the reference is malformed.

        """
        try:
            owner, repo, number = parse_issue_ref(raw)
        except ValueError as exc:
            raise ConfigError.invalid_error_logging_issue(raw) from exc
        return cls(owner=owner, repo=repo, issue=number)

    @classmethod
    def from_env(
        cls, env: cabc.Mapping[str, str] | None = None
    ) -> ErrorLoggingIssue | None:
        """Read ``BOSUN_ERROR_LOGGING_ISSUE``; return None when unset."""
        source = os.environ if env is None else env
        raw = source.get("BOSUN_ERROR_LOGGING_ISSUE", "")
        if not raw.strip():
            return None
        return cls.parse(raw)


def log_level_from_env(env: cabc.Mapping[str, str] | None = None) -> str:
    """Return the raw ``BOSUN_LOG_LEVEL`` value or the default."""
    source = os.environ if env is None else env
    return source.get("BOSUN_LOG_LEVEL", _DEFAULT_LOG_LEVEL)


__all__ = ["ErrorLoggingIssue", "InputReader", "RunConfig", "log_level_from_env"]
