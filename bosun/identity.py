"""Acting identity resolution for dispatcher runs.

The identity is only needed to tag metrics and failure reports, so it is
resolved in the background as soon as possible and awaited on first use.
Resolution never fails: any error degrades to :data:`UNKNOWN_IDENTITY`.
"""

from __future__ import annotations

import asyncio
import typing as typ

from bosun.logging import get_logger, log_warning

logger = get_logger(__name__)

UNKNOWN_IDENTITY = "unknown"


@typ.runtime_checkable
class IdentityProvider(typ.Protocol):
    """Resolve the display name of the principal behind a token."""

    async def get_authenticated_name(self, token: str) -> str:
        """Return the authenticated principal's display name."""
        ...


class ActingIdentity:
    """Single-assignment, lazily awaited identity for one run.

    Examples
    --------
    >>> identity = ActingIdentity(provider, token)
    >>> identity.start()  # schedules resolution if a loop is running
    >>> name = await identity.resolve()

    """

    def __init__(self, provider: IdentityProvider, token: str) -> None:
        """Store the provider and token; nothing is resolved yet."""
        self._provider = provider
        self._token = token
        self._task: asyncio.Task[str] | None = None

    @property
    def started(self) -> bool:
        """Return True once resolution has been scheduled."""
        return self._task is not None

    def start(self) -> None:
        """Schedule resolution on the running loop without waiting for it.

        Outside an event loop this is a no-op and :meth:`resolve` starts the
        lookup on first use instead.
        """
        if self._task is not None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._task = loop.create_task(self._lookup())

    async def resolve(self) -> str:
        """Return the identity, resolving it at most once."""
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._lookup())
        if self._task.cancelled():
            return UNKNOWN_IDENTITY
        try:
            return await self._task
        except asyncio.CancelledError:
            # Propagate only when the caller itself is being cancelled.
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            return UNKNOWN_IDENTITY

    def cancel(self) -> None:
        """Abandon an in-flight lookup; later reads return the fallback."""
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def _lookup(self) -> str:
        try:
            name = await self._provider.get_authenticated_name(self._token)
        except Exception as exc:  # noqa: BLE001 - identity must never fail the run
            log_warning(
                logger,
                "Could not resolve acting identity: %s",
                exc,
            )
            return UNKNOWN_IDENTITY
        return name or UNKNOWN_IDENTITY


__all__ = ["UNKNOWN_IDENTITY", "ActingIdentity", "IdentityProvider"]
