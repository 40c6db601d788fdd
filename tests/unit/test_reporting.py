"""Unit tests for failure reports and the issue-comment reporter."""

from __future__ import annotations

import pytest

from bosun.config import ErrorLoggingIssue
from bosun.context import EventContext, RepoRef
from bosun.reporting import (
    FailureReport,
    IssueCommentErrorReporter,
    format_stack,
    render_issue_comment,
)
from tests.helpers.dispatch_fakes import FakeClientFactory, FakeIssueClient
from tests.helpers.femtologging_capture import capture_femto_logs


def _raise_and_capture() -> RuntimeError:
    try:
        msg = "boom"
        raise RuntimeError(msg)
    except RuntimeError as exc:
        return exc


def _context(**payload: object) -> EventContext:
    return EventContext(
        event_name="issues",
        repo=RepoRef(owner="octo", name="reef"),
        actor="alice",
        payload={"action": "opened", "issue": {"number": 42}, **payload},
        workflow="Triage",
    )


class TestFailureReport:
    """Tests for FailureReport rendering."""

    def test_render_uses_fixed_template(self) -> None:
        """The report renders message, stack, actor and id in order."""
        report = FailureReport(
            message="boom", stack="Traceback", handler_id="labeler", user="octo"
        )
        assert report.render() == (
            "\nMessage: boom\nTraceback\n\nActor: octo\n\nID: labeler\n"
        )

    def test_from_exception_captures_stack(self) -> None:
        """Reports built from exceptions include the traceback."""
        exc = _raise_and_capture()

        report = FailureReport.from_exception(
            exc, handler_id="labeler", user="octo", issue=42
        )

        assert report.message == "boom"
        assert report.issue == 42
        assert report.stack.startswith("Traceback (most recent call last)")
        assert report.stack.endswith("RuntimeError: boom")
        assert "_raise_and_capture" in report.stack

    def test_format_stack_without_traceback(self) -> None:
        """Exceptions that were never raised format as their type and message."""
        assert format_stack(ValueError("bad")) == "ValueError: bad"


class TestRenderIssueComment:
    """Tests for the error logging issue comment body."""

    def test_automated_report_links_source_issue(self) -> None:
        """Automated reports prefix the issue with its repository."""
        body = render_issue_comment("REPORT", context=_context(), automated=True)

        assert "\nWorkflow: Triage\n" in body
        assert "\nError: REPORT\n" in body
        assert "\nIssue: octo/reef#42\n" in body
        assert "\nRepo: octo/reef\n" in body
        assert body.rstrip().endswith("-->")

    def test_manual_report_uses_bare_issue_number(self) -> None:
        """Non-automated reports show the bare issue number."""
        body = render_issue_comment("REPORT", context=_context(), automated=False)
        assert "\nIssue: 42\n" in body

    def test_context_block_cannot_close_html_comment(self) -> None:
        """Payload text cannot terminate or nest the context comment."""
        context = _context(comment={"body": "evil --> <!-- nested a/b\\c"})

        body = render_issue_comment("REPORT", context=context, automated=True)

        context_block = body.split("<!-- Context:\n", 1)[1]
        inner = context_block.rsplit("\n-->", 1)[0]
        assert "-->" not in inner
        assert "<!--" not in inner
        assert "--@>" in inner
        assert "<@--" in inner
        assert "aslash-b" in inner
        assert '"eventName": "issues"' in inner


class TestIssueCommentErrorReporter:
    """Tests for delivering reports to the error logging issue."""

    @pytest.mark.asyncio
    async def test_posts_comment_on_logging_issue(self) -> None:
        """Reports are posted to the configured issue and the client closed."""
        factory = FakeClientFactory()
        destination = ErrorLoggingIssue(owner="ops", repo="bots", issue=7)
        reporter = IssueCommentErrorReporter(_context(), destination, factory)

        await reporter.log_error("REPORT", automated=True, token="t")

        [client] = factory.created
        assert isinstance(client, FakeIssueClient)
        assert client.repo == RepoRef(owner="ops", name="bots")
        assert client.issue_number == 7
        assert client.closed
        [comment] = client.comments
        assert "\nError: REPORT\n" in comment
        assert "\nIssue: octo/reef#42\n" in comment
        assert factory.tokens == ["t"]

    @pytest.mark.asyncio
    async def test_without_destination_logs_and_swallows(self) -> None:
        """With no logging issue configured the report is only logged."""
        factory = FakeClientFactory()
        reporter = IssueCommentErrorReporter(_context(), None, factory)

        with capture_femto_logs("bosun.reporting") as capture:
            await reporter.log_error("REPORT", automated=True, token="t")

        capture.wait_for_count(1)
        assert factory.created == []
        [record] = capture.records
        assert record.level == "WARN"
        assert "no error logging issue defined" in record.message
        assert "REPORT" in record.message
