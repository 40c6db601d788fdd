"""Failure reports and the channel that delivers them.

When a dispatcher run fails, a :class:`FailureReport` is rendered and handed to
an :class:`ErrorReporter`. The default reporter comments on a designated
"error logging" issue so maintainers get one place to watch for bot failures.

Usage
-----
>>> report = FailureReport(
...     message="boom", stack="Traceback ...", handler_id="labeler", user="octo"
... )
>>> print(report.render())
<BLANKLINE>
Message: boom
Traceback ...
<BLANKLINE>
Actor: octo
<BLANKLINE>
ID: labeler
<BLANKLINE>

"""

from __future__ import annotations

import dataclasses as dc
import traceback
import typing as typ

import msgspec

from bosun.common.slug import repo_slug
from bosun.context import RepoRef
from bosun.logging import get_logger, log_warning

if typ.TYPE_CHECKING:
    from bosun.config import ErrorLoggingIssue
    from bosun.context import EventContext
    from bosun.github.protocol import ClientFactory

logger = get_logger(__name__)


def format_stack(exc: BaseException) -> str:
    """Return the formatted traceback for ``exc``."""
    return "".join(traceback.format_exception(exc)).rstrip("\n")


@dc.dataclass(frozen=True, slots=True)
class FailureReport:
    """Details of a failed run.

    Attributes
    ----------
    message
        The exception message.
    stack
        The formatted traceback.
    handler_id
        ``id`` of the dispatcher that failed.
    user
        Resolved acting identity (``"unknown"`` when resolution failed).
    issue
        Issue number the event targeted, when there was one.

    """

    message: str
    stack: str
    handler_id: str
    user: str
    issue: int | None = None

    @classmethod
    def from_exception(
        cls,
        exc: BaseException,
        *,
        handler_id: str,
        user: str,
        issue: int | None = None,
    ) -> FailureReport:
        """Build a report from a caught exception."""
        return cls(
            message=str(exc),
            stack=format_stack(exc),
            handler_id=handler_id,
            user=user,
            issue=issue,
        )

    def render(self) -> str:
        """Render the fixed message/actor/id template."""
        return (
            f"\nMessage: {self.message}\n{self.stack}\n"
            f"\nActor: {self.user}\n"
            f"\nID: {self.handler_id}\n"
        )


@typ.runtime_checkable
class ErrorReporter(typ.Protocol):
    """Channel that receives rendered failure reports."""

    async def log_error(self, rendered: str, *, automated: bool, token: str) -> None:
        """Deliver ``rendered`` to the reporting channel.

        Parameters
        ----------
        rendered
            Output of :meth:`FailureReport.render`.
        automated
            True when the report comes from the dispatcher itself rather than
            a human-triggered command; links the source issue when set.
        token
            Token used to authenticate the delivery.

        """
        ...


def _escape_html_comment(text: str) -> str:
    return (
        text.replace("<!--", "<@--")
        .replace("-->", "--@>")
        .replace("/", "slash-")
        .replace("\\", "slash-")
    )


def render_issue_comment(
    rendered: str,
    *,
    context: EventContext,
    automated: bool,
) -> str:
    """Wrap a rendered report with workflow, issue and repository context.

    The full event context is embedded in an HTML comment so it is available
    for debugging without cluttering the rendered issue.
    """
    slug = repo_slug(context.repo.owner, context.repo.name)
    issue_prefix = f"{slug}#" if automated else ""
    context_json = msgspec.json.format(
        msgspec.json.encode(context.to_builtins()), indent=2
    ).decode("utf-8")
    return (
        f"\nWorkflow: {context.workflow}\n"
        f"\nError: {rendered}\n"
        f"\nIssue: {issue_prefix}{context.issue_number}\n"
        f"\nRepo: {slug}\n"
        f"\n<!-- Context:\n{_escape_html_comment(context_json)}\n-->\n"
    )


class IssueCommentErrorReporter:
    """Post failure reports as comments on the error logging issue."""

    def __init__(
        self,
        context: EventContext,
        error_logging_issue: ErrorLoggingIssue | None,
        client_factory: ClientFactory,
    ) -> None:
        """Initialise with the run context, destination, and client factory."""
        self._context = context
        self._destination = error_logging_issue
        self._client_factory = client_factory

    async def log_error(self, rendered: str, *, automated: bool, token: str) -> None:
        """Comment on the error logging issue, or log when none is configured."""
        if self._destination is None:
            log_warning(
                logger,
                "no error logging issue defined, swallowing error: %s",
                rendered,
            )
            return

        body = render_issue_comment(
            rendered, context=self._context, automated=automated
        )
        client = self._client_factory.issue_client(
            token,
            RepoRef(owner=self._destination.owner, name=self._destination.repo),
            self._destination.issue,
        )
        try:
            await client.post_comment(body)
        finally:
            await client.aclose()


__all__ = [
    "ErrorReporter",
    "FailureReport",
    "IssueCommentErrorReporter",
    "format_stack",
    "render_issue_comment",
]
