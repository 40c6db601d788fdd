"""GitHub Actions runner glue: workflow inputs and workflow commands.

The runner passes action inputs as ``INPUT_<NAME>`` environment variables and
interprets specially formatted stdout lines (``::command key=value::data``)
as workflow commands. This module reads the former and writes the latter.

Examples
--------
>>> import io
>>> stream = io.StringIO()
>>> commands = WorkflowCommands(stream)
>>> commands.set_failed("boom")
>>> stream.getvalue()
'::error::boom\\n'
>>> commands.exit_code
1

"""

from __future__ import annotations

import os
import sys
import typing as typ

from .errors import ActionInputError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

_FAILURE_EXIT_CODE = 1


def _input_variable(name: str) -> str:
    return "INPUT_" + name.replace(" ", "_").upper()


def get_input(name: str, env: cabc.Mapping[str, str] | None = None) -> str:
    """Return the named workflow input, stripped, or an empty string."""
    source = os.environ if env is None else env
    return source.get(_input_variable(name), "").strip()


def get_required_input(
    name: str, env: cabc.Mapping[str, str] | None = None
) -> str:
    """Return the named workflow input or raise when it is empty.

    Raises
    ------
    ActionInputError
        If the input is missing or blank.

    """
    value = get_input(name, env)
    if not value:
        raise ActionInputError.missing(name)
    return value


def escape_data(value: object) -> str:
    """Escape a workflow-command message body."""
    return str(value).replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def escape_property(value: object) -> str:
    """Escape a workflow-command property value."""
    return escape_data(value).replace(":", "%3A").replace(",", "%2C")


class WorkflowCommands:
    """Write workflow commands and track the run's terminal status.

    ``set_failed`` never raises; it records the failure so the host can exit
    with a non-zero status once the dispatcher returns.
    """

    def __init__(self, stream: typ.TextIO | None = None) -> None:
        """Initialise with the output stream (defaults to ``sys.stdout``)."""
        self._stream = stream
        self.exit_code = 0
        self.failure_message: str | None = None

    def issue(self, command: str, message: object = "", **properties: object) -> None:
        """Write a single ``::command props::message`` line."""
        line = f"::{command}"
        if properties:
            rendered = ",".join(
                f"{key}={escape_property(value)}"
                for key, value in properties.items()
                if value is not None
            )
            if rendered:
                line = f"{line} {rendered}"
        line = f"{line}::{escape_data(message)}"
        stream = self._stream or sys.stdout
        stream.write(line + "\n")
        stream.flush()

    def stop_commands(self, token: str) -> None:
        """Stop the runner from interpreting commands until ``token`` is seen."""
        self.issue("stop-commands", token)

    def set_failed(self, message: str) -> None:
        """Mark the run as failed with ``message``."""
        self.exit_code = _FAILURE_EXIT_CODE
        self.failure_message = message
        self.issue("error", message)


__all__ = [
    "WorkflowCommands",
    "escape_data",
    "escape_property",
    "get_input",
    "get_required_input",
]
