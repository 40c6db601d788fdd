"""Errors raised while configuring and routing a dispatcher run."""

from __future__ import annotations


class ActionInputError(RuntimeError):
    """Raised when a required workflow input is missing."""

    def __init__(self, message: str, *, input_name: str) -> None:
        """Initialise with a message and the offending input name."""
        self.input_name = input_name
        super().__init__(message)

    @classmethod
    def missing(cls, name: str) -> ActionInputError:
        """Return an error for a required input that was not supplied."""
        return cls(f"Input required and not supplied: {name}", input_name=name)


class ConfigError(RuntimeError):
    """Raised when bosun environment configuration is invalid."""

    @classmethod
    def invalid_error_logging_issue(cls, raw: str) -> ConfigError:
        """Return an error for a malformed ``BOSUN_ERROR_LOGGING_ISSUE``."""
        return cls(
            "BOSUN_ERROR_LOGGING_ISSUE must look like 'owner/repo#123', "
            f"got: {raw!r}"
        )

    @classmethod
    def invalid_telemetry_backend(
        cls, raw: str, valid: frozenset[str]
    ) -> ConfigError:
        """Return an error for an unrecognised telemetry backend."""
        options = ", ".join(sorted(valid))
        return cls(
            f"Invalid BOSUN_TELEMETRY_BACKEND value {raw!r}; expected one of: "
            f"{options}"
        )

    @classmethod
    def missing_event_context(cls, variable: str) -> ConfigError:
        """Return an error when the runner did not provide event data."""
        return cls(f"{variable} is required to build the event context")


class UnexpectedActionError(RuntimeError):
    """Raised when an ``issues`` event carries an unrecognised sub-action."""

    def __init__(self, message: str, *, action: str | None) -> None:
        """Initialise with a message and the unrecognised action."""
        self.action = action
        super().__init__(message)

    @classmethod
    def for_action(cls, action: str | None) -> UnexpectedActionError:
        """Return an error naming the unrecognised action."""
        return cls(f"Unexpected action: {action}", action=action)


class HandlerNotImplementedError(NotImplementedError):
    """Raised by handler hooks that a dispatcher does not override."""

    def __init__(self, message: str, *, hook: str) -> None:
        """Initialise with a message and the hook name."""
        self.hook = hook
        super().__init__(message)

    @classmethod
    def for_hook(cls, hook: str) -> HandlerNotImplementedError:
        """Return an error for the named unimplemented hook."""
        return cls(f"not implemented: {hook}", hook=hook)


class EventPayloadError(RuntimeError):
    """Raised when an event payload lacks a field its handler needs."""

    @classmethod
    def missing(cls, field: str) -> EventPayloadError:
        """Return an error for a missing payload field."""
        return cls(f"Event payload missing expected field: {field}")
