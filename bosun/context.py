"""Event context for a single dispatcher run.

The Actions runner describes the triggering event through environment
variables and a JSON payload file. :class:`EventContext` captures that data
once, up front, so the dispatcher and its collaborators read a single
immutable snapshot.
"""

from __future__ import annotations

import dataclasses
import enum
import os
import typing as typ
from pathlib import Path

import msgspec

from .common.slug import parse_repo_slug, repo_slug
from .errors import ConfigError

if typ.TYPE_CHECKING:
    import collections.abc as cabc


class EventKind(enum.StrEnum):
    """Top-level event names the dispatcher routes on."""

    ISSUES = "issues"
    ISSUE_COMMENT = "issue_comment"


class IssueAction(enum.StrEnum):
    """Sub-actions of ``issues`` events that map to handler hooks."""

    OPENED = "opened"
    REOPENED = "reopened"
    CLOSED = "closed"
    LABELED = "labeled"
    ASSIGNED = "assigned"
    UNASSIGNED = "unassigned"
    EDITED = "edited"
    MILESTONED = "milestoned"


@dataclasses.dataclass(frozen=True, slots=True)
class RepoRef:
    """Repository identity (owner and name)."""

    owner: str
    name: str

    @property
    def slug(self) -> str:
        """Return the ``owner/name`` slug."""
        return repo_slug(self.owner, self.name)

    @classmethod
    def from_slug(cls, slug: str) -> RepoRef:
        """Build a reference from an ``owner/name`` slug."""
        owner, name = parse_repo_slug(slug)
        return cls(owner=owner, name=name)


def _mapping(value: object) -> dict[str, typ.Any] | None:
    return value if isinstance(value, dict) else None


def _nested_str(payload: dict[str, typ.Any], key: str, field: str) -> str | None:
    node = _mapping(payload.get(key))
    if node is None:
        return None
    value = node.get(field)
    return value if isinstance(value, str) else None


@dataclasses.dataclass(frozen=True, slots=True)
class EventContext:
    """Ambient trigger data for one run.

    Attributes
    ----------
    event_name
        Raw event name, e.g. ``issues``, ``issue_comment`` or ``schedule``.
    repo
        Repository the workflow runs in.
    actor
        Login of the user that triggered the workflow.
    payload
        Parsed webhook payload.
    workflow
        Name of the running workflow, used in failure reports.

    """

    event_name: str
    repo: RepoRef
    actor: str = ""
    payload: dict[str, typ.Any] = dataclasses.field(default_factory=dict)
    workflow: str = ""

    @property
    def action(self) -> str | None:
        """Return the event sub-action (``payload.action``)."""
        value = self.payload.get("action")
        return value if isinstance(value, str) else None

    @property
    def issue_number(self) -> int | None:
        """Return the issue or pull request number the event targets.

        Mirrors the runner's resolution order: ``payload.issue``, then
        ``payload.pull_request``, then the payload itself.
        """
        source = (
            _mapping(self.payload.get("issue"))
            or _mapping(self.payload.get("pull_request"))
            or self.payload
        )
        number = source.get("number")
        if isinstance(number, bool) or not isinstance(number, int) or number <= 0:
            return None
        return number

    @property
    def label_name(self) -> str | None:
        """Return ``payload.label.name`` for ``labeled`` events."""
        return _nested_str(self.payload, "label", "name")

    @property
    def assignee_login(self) -> str | None:
        """Return ``payload.assignee.login`` for assignment events."""
        return _nested_str(self.payload, "assignee", "login")

    @property
    def comment_body(self) -> str | None:
        """Return ``payload.comment.body`` for comment events."""
        return _nested_str(self.payload, "comment", "body")

    def to_builtins(self) -> dict[str, typ.Any]:
        """Return a JSON-compatible snapshot for diagnostics."""
        return {
            "eventName": self.event_name,
            "repo": {"owner": self.repo.owner, "repo": self.repo.name},
            "actor": self.actor,
            "workflow": self.workflow,
            "issue": self.issue_number,
            "payload": self.payload,
        }

    @classmethod
    def from_env(cls, env: cabc.Mapping[str, str] | None = None) -> EventContext:
        """Build the context from the Actions runner environment.

        Reads the following environment variables:

        - ``GITHUB_EVENT_NAME``: Required event name.
        - ``GITHUB_REPOSITORY``: Required ``owner/name`` slug.
        - ``GITHUB_EVENT_PATH``: Optional path to the JSON payload file.
        - ``GITHUB_ACTOR``: Optional triggering login.
        - ``GITHUB_WORKFLOW``: Optional workflow name.

        Raises
        ------
        ConfigError
            If the event name or repository is missing.
        msgspec.DecodeError
            If the payload file is not valid JSON.

        """
        source = os.environ if env is None else env
        event_name = source.get("GITHUB_EVENT_NAME", "").strip()
        if not event_name:
            raise ConfigError.missing_event_context("GITHUB_EVENT_NAME")
        slug = source.get("GITHUB_REPOSITORY", "").strip()
        if not slug:
            raise ConfigError.missing_event_context("GITHUB_REPOSITORY")

        payload: dict[str, typ.Any] = {}
        event_path = source.get("GITHUB_EVENT_PATH", "").strip()
        if event_path and Path(event_path).is_file():
            payload = msgspec.json.decode(
                Path(event_path).read_bytes(), type=dict[str, typ.Any]
            )

        return cls(
            event_name=event_name,
            repo=RepoRef.from_slug(slug),
            actor=source.get("GITHUB_ACTOR", ""),
            payload=payload,
            workflow=source.get("GITHUB_WORKFLOW", ""),
        )


__all__ = ["EventContext", "EventKind", "IssueAction", "RepoRef"]
