"""Event dispatcher base class for webhook-triggered GitHub bots.

Concrete bots subclass :class:`EventDispatcher`, set a stable ``id`` and
override the handler hooks they care about. One dispatcher instance handles
exactly one event:

1. refuse to run on the configured error logging issue;
2. build a client scoped to the event's issue (or the whole repository);
3. route the event to a hook;
4. report any failure to the error logging issue and mark the run failed;
5. emit usage metrics.

Example
-------
>>> class Labeler(EventDispatcher):
...     id = "labeler"
...
...     async def on_opened(self, issue):
...         await issue.add_label("triage")
>>> asyncio.run(Labeler().run())

"""

from __future__ import annotations

import abc
import contextlib
import dataclasses as dc
import datetime as dt
import time
import typing as typ
import uuid

from bosun.actions import WorkflowCommands, get_input
from bosun.common.time import utcnow
from bosun.config import ErrorLoggingIssue, RunConfig
from bosun.context import EventContext, EventKind, IssueAction
from bosun.errors import (
    EventPayloadError,
    HandlerNotImplementedError,
    UnexpectedActionError,
)
from bosun.identity import ActingIdentity
from bosun.logging import get_logger, log_warning, safe_log
from bosun.observability import DispatchEventLogger, DispatchRunContext
from bosun.reporting import FailureReport, format_stack
from bosun.telemetry import MetricSample

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from bosun.config import InputReader
    from bosun.github.protocol import ClientFactory, IssueScopedClient, ScopedClient
    from bosun.identity import IdentityProvider
    from bosun.reporting import ErrorReporter
    from bosun.telemetry import TelemetrySink

logger = get_logger(__name__)

REFUSAL_MESSAGE = "refusing to run on error logging issue to prevent cascading errors"

REQUEST_COUNT_METRIC = "octokit_request_count"
USAGE_METRICS = ("usage_core", "usage_graphql", "usage_search")


@dc.dataclass(slots=True)
class DispatcherDependencies:
    """Collaborators consumed by a dispatcher run.

    Attributes
    ----------
    client_factory
        Builds scoped clients and reports request and rate-limit usage.
    identity_provider
        Resolves the display name behind the run's token.
    error_reporter
        Delivers rendered failure reports.
    telemetry
        Optional metric and exception sink; ``None`` disables telemetry.
    error_logging_issue
        Issue that receives failure reports; events on it are refused.
    commands
        Workflow-command channel used for stop-commands and failure status.
    read_input
        Reads workflow inputs by name.
    log_sink
        Plain-text fallback sink.
    event_logger
        Structured run event logger.

    """

    client_factory: ClientFactory
    identity_provider: IdentityProvider
    error_reporter: ErrorReporter
    telemetry: TelemetrySink | None = None
    error_logging_issue: ErrorLoggingIssue | None = None
    commands: WorkflowCommands = dc.field(default_factory=WorkflowCommands)
    read_input: InputReader = get_input
    log_sink: cabc.Callable[[str], None] = safe_log
    event_logger: DispatchEventLogger = dc.field(default_factory=DispatchEventLogger)

    @classmethod
    def from_env(cls, context: EventContext) -> DispatcherDependencies:
        """Build GitHub-backed dependencies from environment configuration.

        Raises
        ------
        ConfigError
            If ``BOSUN_ERROR_LOGGING_ISSUE`` or ``BOSUN_TELEMETRY_BACKEND`` is
            invalid.

        """
        from bosun.github import (
            GitHubClientFactory,
            GitHubConfig,
            GitHubIdentityProvider,
        )
        from bosun.reporting import IssueCommentErrorReporter
        from bosun.telemetry import create_telemetry_sink

        config = GitHubConfig.from_env()
        factory = GitHubClientFactory(config)
        error_logging_issue = ErrorLoggingIssue.from_env()
        return cls(
            client_factory=factory,
            identity_provider=GitHubIdentityProvider(config),
            error_reporter=IssueCommentErrorReporter(
                context, error_logging_issue, factory
            ),
            telemetry=create_telemetry_sink(),
            error_logging_issue=error_logging_issue,
        )


@dc.dataclass(frozen=True, slots=True)
class _HookTarget:
    """Hook name and the payload fields passed to it as arguments."""

    hook: str
    fields: tuple[str, ...] = ()


_PAYLOAD_FIELD_PATHS = {
    "label_name": "label.name",
    "assignee_login": "assignee.login",
    "comment_body": "comment.body",
}


class EventDispatcher(abc.ABC):
    """Route one platform event to an overridable handler hook.

    Subclasses must define ``id`` and may override any of the ten ``on_*``
    hooks. Hooks that are not overridden raise
    :class:`~bosun.errors.HandlerNotImplementedError`, which is reported like
    any other handler failure.

    Constructing a dispatcher reads the required ``token`` input (raising
    :class:`~bosun.errors.ActionInputError` when missing), disables workflow
    command parsing for the rest of the job, and starts resolving the acting
    identity in the background.
    """

    _ISSUE_ACTION_HOOKS: typ.ClassVar[dict[str, _HookTarget]] = {
        IssueAction.OPENED: _HookTarget("on_opened"),
        IssueAction.REOPENED: _HookTarget("on_reopened"),
        IssueAction.CLOSED: _HookTarget("on_closed"),
        IssueAction.LABELED: _HookTarget("on_labeled", ("label_name",)),
        IssueAction.ASSIGNED: _HookTarget("on_assigned", ("assignee_login",)),
        IssueAction.UNASSIGNED: _HookTarget("on_unassigned", ("assignee_login",)),
        IssueAction.EDITED: _HookTarget("on_edited"),
        IssueAction.MILESTONED: _HookTarget("on_milestoned"),
    }

    def __init__(
        self,
        context: EventContext | None = None,
        deps: DispatcherDependencies | None = None,
    ) -> None:
        """Initialise the dispatcher for a single event."""
        self.context = context or EventContext.from_env()
        self.deps = deps or DispatcherDependencies.from_env(self.context)
        self._token = RunConfig.from_inputs(self.deps.read_input).token

        self.deps.commands.stop_commands(uuid.uuid4().hex)
        self._identity = ActingIdentity(self.deps.identity_provider, self._token)
        self._identity.start()

    @property
    @abc.abstractmethod
    def id(self) -> str:
        """Return the stable identifier used in metrics and failure reports."""

    async def user(self) -> str:
        """Return the acting identity, resolving it on first use."""
        return await self._identity.resolve()

    async def track_metric(self, name: str, value: float) -> None:
        """Forward a tagged metric sample to the telemetry sink.

        A no-op without a sink. Sink failures are logged and absorbed.
        """
        sink = self.deps.telemetry
        if sink is None:
            return
        try:
            sample = MetricSample(
                name=name, value=value, properties=await self._metric_properties()
            )
            sink.track_metric(sample)
        except Exception as exc:  # noqa: BLE001 - telemetry never affects the run
            log_warning(logger, "Telemetry metric %s dropped: %s", name, exc)

    async def _metric_properties(self) -> dict[str, str]:
        issue = self.context.issue_number
        return {
            "repo": self.context.repo.slug,
            "issue": "" if issue is None else str(issue),
            "id": self.id,
            "user": await self.user(),
        }

    def _targets_error_logging_issue(self) -> bool:
        destination = self.deps.error_logging_issue
        return destination is not None and destination.matches(self.context)

    def _run_context(self) -> DispatchRunContext:
        return DispatchRunContext(
            handler_id=self.id,
            event_name=self.context.event_name,
            action=self.context.action,
            repo_slug=self.context.repo.slug,
            issue=self.context.issue_number,
            started_at=utcnow(),
        )

    async def run(self) -> None:
        """Dispatch the event. Never raises."""
        run_context = self._run_context()
        if self._targets_error_logging_issue():
            self.deps.log_sink(REFUSAL_MESSAGE)
            self.deps.event_logger.log_run_refused(run_context)
            self._identity.cancel()
            return

        self.deps.event_logger.log_run_started(run_context)
        started_at = time.monotonic()
        try:
            await self._dispatch()
        except Exception as exc:  # noqa: BLE001 - every failure is reported
            self.deps.event_logger.log_run_failed(
                run_context, exc, _elapsed(started_at)
            )
            await self._handle_failure(exc)
        else:
            self.deps.event_logger.log_run_completed(run_context, _elapsed(started_at))

        await self._emit_usage_metrics()
        self._identity.cancel()

    async def _dispatch(self) -> None:
        config = RunConfig.from_inputs(self.deps.read_input)
        factory = self.deps.client_factory
        issue_number = self.context.issue_number
        if issue_number is not None:
            issue_client = factory.issue_client(
                config.token,
                self.context.repo,
                issue_number,
                readonly=config.readonly,
            )
            async with contextlib.aclosing(issue_client):
                await self._route_issue_event(issue_client)
        else:
            repo_client = factory.repo_client(
                config.token, self.context.repo, readonly=config.readonly
            )
            async with contextlib.aclosing(repo_client):
                await self.on_triggered(repo_client)

    async def _route_issue_event(self, client: IssueScopedClient) -> None:
        event_name = self.context.event_name
        if event_name == EventKind.ISSUE_COMMENT:
            await self.on_commented(
                client, self._payload_field("comment_body"), self.context.actor
            )
        elif event_name == EventKind.ISSUES:
            action = self.context.action
            target = self._ISSUE_ACTION_HOOKS.get(action or "")
            if target is None:
                raise UnexpectedActionError.for_action(action)
            args = [self._payload_field(field) for field in target.fields]
            await getattr(self, target.hook)(client, *args)
        # Other events that carry an issue number have no hook.

    def _payload_field(self, field: str) -> str:
        value = getattr(self.context, field)
        if value is None:
            raise EventPayloadError.missing(_PAYLOAD_FIELD_PATHS[field])
        return value

    async def _handle_failure(self, exc: Exception) -> None:
        try:
            await self.error(exc)
        except Exception as report_exc:  # noqa: BLE001 - fall back to plain text
            log_warning(logger, "Failure report delivery failed: %s", report_exc)
            self.deps.log_sink(format_stack(exc) or str(exc) or repr(exc))
            self.deps.commands.set_failed(_failure_message(exc))

    async def error(self, exc: Exception) -> None:
        """Render, deliver and track a failure, then mark the run failed."""
        report = FailureReport.from_exception(
            exc,
            handler_id=self.id,
            user=await self.user(),
            issue=self.context.issue_number,
        )
        await self.deps.error_reporter.log_error(
            report.render(), automated=True, token=self._token
        )

        sink = self.deps.telemetry
        if sink is not None:
            try:
                sink.track_exception(exc, await self._metric_properties())
            except Exception as telemetry_exc:  # noqa: BLE001
                log_warning(
                    logger, "Telemetry exception dropped: %s", telemetry_exc
                )

        self.deps.commands.set_failed(_failure_message(exc))

    async def _emit_usage_metrics(self) -> None:
        await self.track_metric(
            REQUEST_COUNT_METRIC, self.deps.client_factory.request_count
        )
        try:
            usage = await self.deps.client_factory.fetch_rate_limit_usage(self._token)
        except Exception as exc:  # noqa: BLE001 - usage metrics are best effort
            log_warning(
                logger,
                "Could not fetch rate limit usage; skipping %s: %s",
                ", ".join(USAGE_METRICS),
                exc,
            )
            return
        for name, value in zip(
            USAGE_METRICS, (usage.core, usage.graphql, usage.search), strict=True
        ):
            await self.track_metric(name, value)

    async def on_triggered(self, client: ScopedClient) -> None:
        """Handle a repository-wide trigger (schedule, dispatch, push)."""
        raise HandlerNotImplementedError.for_hook("on_triggered")

    async def on_edited(self, issue: IssueScopedClient) -> None:
        """Handle an edited issue."""
        raise HandlerNotImplementedError.for_hook("on_edited")

    async def on_labeled(self, issue: IssueScopedClient, label: str) -> None:
        """Handle ``label`` being added to the issue."""
        raise HandlerNotImplementedError.for_hook("on_labeled")

    async def on_assigned(self, issue: IssueScopedClient, assignee: str) -> None:
        """Handle ``assignee`` being assigned to the issue."""
        raise HandlerNotImplementedError.for_hook("on_assigned")

    async def on_unassigned(self, issue: IssueScopedClient, assignee: str) -> None:
        """Handle ``assignee`` being unassigned from the issue."""
        raise HandlerNotImplementedError.for_hook("on_unassigned")

    async def on_opened(self, issue: IssueScopedClient) -> None:
        """Handle a newly opened issue."""
        raise HandlerNotImplementedError.for_hook("on_opened")

    async def on_reopened(self, issue: IssueScopedClient) -> None:
        """Handle a reopened issue."""
        raise HandlerNotImplementedError.for_hook("on_reopened")

    async def on_closed(self, issue: IssueScopedClient) -> None:
        """Handle a closed issue."""
        raise HandlerNotImplementedError.for_hook("on_closed")

    async def on_milestoned(self, issue: IssueScopedClient) -> None:
        """Handle the issue being added to a milestone."""
        raise HandlerNotImplementedError.for_hook("on_milestoned")

    async def on_commented(
        self, issue: IssueScopedClient, comment: str, actor: str
    ) -> None:
        """Handle ``comment`` posted on the issue by ``actor``."""
        raise HandlerNotImplementedError.for_hook("on_commented")


def _failure_message(exc: Exception) -> str:
    return str(exc) or type(exc).__name__


def _elapsed(started_at: float) -> dt.timedelta:
    return dt.timedelta(seconds=time.monotonic() - started_at)


__all__ = [
    "REFUSAL_MESSAGE",
    "REQUEST_COUNT_METRIC",
    "USAGE_METRICS",
    "DispatcherDependencies",
    "EventDispatcher",
]
