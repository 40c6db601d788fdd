"""Command-line entry point that runs a dispatcher class for the current event."""

from __future__ import annotations

import argparse
import asyncio
import importlib

from .config import log_level_from_env
from .dispatcher import EventDispatcher
from .logging import configure_logging, get_logger, log_error, log_warning

logger = get_logger(__name__)

_USAGE_EXIT_CODE = 2


class DispatcherLoadError(RuntimeError):
    """Raised when a ``module:Class`` target cannot be loaded."""

    @classmethod
    def malformed(cls, target: str) -> DispatcherLoadError:
        """Return an error for a target without a ``module:Class`` separator."""
        return cls(f"Expected 'package.module:ClassName', got {target!r}")

    @classmethod
    def not_a_dispatcher(cls, target: str) -> DispatcherLoadError:
        """Return an error for a target that is not an EventDispatcher."""
        return cls(f"{target} is not an EventDispatcher subclass")


def load_dispatcher(target: str) -> type[EventDispatcher]:
    """Import ``package.module:ClassName`` and return the dispatcher class.

    Raises
    ------
    DispatcherLoadError
        If the target is malformed or does not name an EventDispatcher.
    ImportError
        If the module cannot be imported.

    """
    module_name, sep, class_name = target.partition(":")
    if not sep or not module_name or not class_name:
        raise DispatcherLoadError.malformed(target)
    module = importlib.import_module(module_name)
    candidate = getattr(module, class_name, None)
    if not isinstance(candidate, type) or not issubclass(candidate, EventDispatcher):
        raise DispatcherLoadError.not_a_dispatcher(target)
    return candidate


async def _run(dispatcher_cls: type[EventDispatcher]) -> int:
    # Construct inside the loop so identity resolution starts immediately.
    dispatcher = dispatcher_cls()
    await dispatcher.run()
    return dispatcher.deps.commands.exit_code


def main(argv: list[str] | None = None) -> int:
    """Run one dispatcher for the event described by the runner environment.

    Parameters
    ----------
    argv : list[str] | None, optional
        Command-line arguments. ``None`` defaults to ``sys.argv``.

    Returns
    -------
    int
        Exit code: 0 on success, 1 when the run failed, 2 when the dispatcher
        class could not be loaded.

    """
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "dispatcher",
        help="Dispatcher class to run, as 'package.module:ClassName'",
    )
    args = parser.parse_args(argv)

    raw_level = log_level_from_env()
    normalized_level, invalid_level = configure_logging(raw_level)
    if invalid_level:
        log_warning(
            logger,
            "Invalid BOSUN_LOG_LEVEL %r, falling back to %s",
            raw_level,
            normalized_level,
        )

    try:
        dispatcher_cls = load_dispatcher(args.dispatcher)
    except (DispatcherLoadError, ImportError) as exc:
        log_error(logger, "Cannot load dispatcher %s: %s", args.dispatcher, exc)
        return _USAGE_EXIT_CODE

    return asyncio.run(_run(dispatcher_cls))


if __name__ == "__main__":
    raise SystemExit(main())
