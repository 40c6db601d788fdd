"""Unit tests for EventDispatcher event routing."""

from __future__ import annotations

import asyncio

import pytest

from bosun.context import EventContext, RepoRef
from bosun.errors import ActionInputError
from tests.helpers.dispatch_fakes import (
    TOKEN,
    FakeIssueClient,
    FakeRepoClient,
    RecordingDispatcher,
    comment_event,
    issue_event,
    make_harness,
    triggered_event,
)


class TestIssueActionRouting:
    """Tests for routing ``issues`` sub-actions to hooks."""

    @pytest.mark.parametrize(
        ("action", "hook"),
        [
            ("opened", "on_opened"),
            ("reopened", "on_reopened"),
            ("closed", "on_closed"),
            ("edited", "on_edited"),
            ("milestoned", "on_milestoned"),
        ],
    )
    @pytest.mark.asyncio
    async def test_action_without_arguments_invokes_matching_hook(
        self, action: str, hook: str
    ) -> None:
        """Plain sub-actions invoke exactly one hook with the issue client."""
        harness = make_harness()
        dispatcher = RecordingDispatcher(issue_event(action), harness.deps)

        await dispatcher.run()

        assert len(dispatcher.calls) == 1, "Expected exactly one hook invocation"
        called_hook, args = dispatcher.calls[0]
        assert called_hook == hook
        (client,) = args
        assert isinstance(client, FakeIssueClient)
        assert client.issue_number == 42

    @pytest.mark.asyncio
    async def test_labeled_passes_label_name(self) -> None:
        """``labeled`` events pass the label name to on_labeled."""
        harness = make_harness()
        context = issue_event("labeled", label={"name": "bug"})
        dispatcher = RecordingDispatcher(context, harness.deps)

        await dispatcher.run()

        [(hook, (client, label))] = dispatcher.calls
        assert hook == "on_labeled"
        assert label == "bug"
        assert client is harness.factory.created[0]

    @pytest.mark.parametrize(
        ("action", "hook"),
        [("assigned", "on_assigned"), ("unassigned", "on_unassigned")],
    )
    @pytest.mark.asyncio
    async def test_assignment_passes_assignee_login(
        self, action: str, hook: str
    ) -> None:
        """Assignment events pass the assignee login."""
        harness = make_harness()
        context = issue_event(action, assignee={"login": "bob"})
        dispatcher = RecordingDispatcher(context, harness.deps)

        await dispatcher.run()

        [(called_hook, (_client, assignee))] = dispatcher.calls
        assert called_hook == hook
        assert assignee == "bob"

    @pytest.mark.asyncio
    async def test_labeled_without_label_is_reported(self) -> None:
        """A ``labeled`` payload without a label is reported, not dispatched."""
        harness = make_harness()
        dispatcher = RecordingDispatcher(issue_event("labeled"), harness.deps)

        await dispatcher.run()

        assert dispatcher.calls == []
        [report] = harness.reporter.calls
        assert "Event payload missing expected field: label.name" in report.rendered


class TestCommentRouting:
    """Tests for ``issue_comment`` routing."""

    @pytest.mark.asyncio
    async def test_comment_passes_body_and_actor(self) -> None:
        """Comment events pass the body and the triggering actor."""
        harness = make_harness()
        context = comment_event("/close please", actor="carol")
        dispatcher = RecordingDispatcher(context, harness.deps)

        await dispatcher.run()

        [(hook, (client, body, actor))] = dispatcher.calls
        assert hook == "on_commented"
        assert isinstance(client, FakeIssueClient)
        assert body == "/close please"
        assert actor == "carol"


class TestTriggeredRouting:
    """Tests for events without an issue number."""

    @pytest.mark.asyncio
    async def test_no_issue_number_invokes_on_triggered_with_repo_client(
        self,
    ) -> None:
        """Repository-wide events get a repository-scoped client."""
        harness = make_harness()
        dispatcher = RecordingDispatcher(triggered_event(), harness.deps)

        await dispatcher.run()

        [(hook, (client,))] = dispatcher.calls
        assert hook == "on_triggered"
        assert isinstance(client, FakeRepoClient)
        assert not isinstance(client, FakeIssueClient), (
            "on_triggered must not receive an issue-scoped client"
        )
        assert client.repo == RepoRef(owner="o", name="r")

    @pytest.mark.asyncio
    async def test_other_event_with_issue_number_is_silent(self) -> None:
        """Unrouted event kinds carrying an issue number invoke no hook."""
        harness = make_harness()
        context = EventContext(
            event_name="pull_request",
            repo=RepoRef(owner="o", name="r"),
            payload={"action": "opened", "pull_request": {"number": 5}},
        )
        dispatcher = RecordingDispatcher(context, harness.deps)

        await dispatcher.run()

        assert dispatcher.calls == []
        assert harness.reporter.calls == []
        assert harness.deps.commands.exit_code == 0
        assert len(harness.metric_names) == 4, "Metrics are still emitted"


class TestScopedClientLifecycle:
    """Tests for scoped client construction."""

    @pytest.mark.asyncio
    async def test_exactly_one_client_is_created_and_closed(self) -> None:
        """A run creates a single scoped client and closes it afterwards."""
        harness = make_harness()
        dispatcher = RecordingDispatcher(issue_event("opened"), harness.deps)

        await dispatcher.run()

        [client] = harness.factory.created
        assert client.closed, "Scoped client should be closed after routing"
        assert harness.factory.tokens == [TOKEN]

    @pytest.mark.parametrize(
        ("readonly_input", "expected"),
        [("", False), ("true", True), ("1", True)],
    )
    @pytest.mark.asyncio
    async def test_readonly_input_is_forwarded(
        self, readonly_input: str, expected: bool
    ) -> None:
        """Any non-empty ``readonly`` input produces a read-only client."""
        harness = make_harness(inputs={"token": TOKEN, "readonly": readonly_input})
        dispatcher = RecordingDispatcher(issue_event("opened"), harness.deps)

        await dispatcher.run()

        assert harness.factory.created[0].readonly is expected


class TestConstruction:
    """Tests for dispatcher start-up behaviour."""

    def test_emits_stop_commands_on_construction(self) -> None:
        """Workflow command parsing is disabled before anything else runs."""
        harness = make_harness()
        RecordingDispatcher(issue_event("opened"), harness.deps)

        first_line = harness.stdout.getvalue().splitlines()[0]
        assert first_line.startswith("::stop-commands::")
        assert len(first_line) > len("::stop-commands::")

    def test_missing_token_is_fatal(self) -> None:
        """A missing token input aborts construction."""
        harness = make_harness(inputs={})
        with pytest.raises(ActionInputError, match="token"):
            RecordingDispatcher(issue_event("opened"), harness.deps)

    @pytest.mark.asyncio
    async def test_construction_in_event_loop_starts_identity(self) -> None:
        """Inside a running loop, identity resolution begins before ``run``."""
        harness = make_harness()
        dispatcher = RecordingDispatcher(issue_event("opened"), harness.deps)

        await asyncio.sleep(0)

        assert harness.identity.calls == 1
        assert await dispatcher.user() == "Octo Cat"
        assert harness.identity.calls == 1

    def test_construction_outside_event_loop_defers_identity(self) -> None:
        """Without a running loop, identity resolution waits for first use."""
        harness = make_harness()
        RecordingDispatcher(issue_event("opened"), harness.deps)
        assert harness.identity.calls == 0
