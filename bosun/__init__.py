"""bosun: dispatch core for webhook-triggered GitHub bots."""

from __future__ import annotations

from .context import EventContext, EventKind, IssueAction, RepoRef
from .dispatcher import DispatcherDependencies, EventDispatcher
from .errors import (
    ActionInputError,
    ConfigError,
    EventPayloadError,
    HandlerNotImplementedError,
    UnexpectedActionError,
)
from .reporting import FailureReport

__all__ = [
    "ActionInputError",
    "ConfigError",
    "DispatcherDependencies",
    "EventContext",
    "EventDispatcher",
    "EventKind",
    "EventPayloadError",
    "FailureReport",
    "HandlerNotImplementedError",
    "IssueAction",
    "RepoRef",
    "UnexpectedActionError",
]
