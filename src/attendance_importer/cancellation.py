"""Cooperative cancellation signal shared by every importer layer."""

from __future__ import annotations

import asyncio
import contextlib


class CancellationToken:
    """A single stop signal passed from the scheduling loop down to device I/O.

    Loops call :meth:`raise_if_cancelled` at unit boundaries so an
    in-flight unit finishes before shutdown takes effect.  The raised
    :class:`asyncio.CancelledError` is a ``BaseException``, so the
    per-unit ``except Exception`` isolation never swallows it.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation.  Idempotent."""
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise asyncio.CancelledError("cancellation requested")

    async def sleep(self, seconds: float) -> bool:
        """Sleep up to *seconds*, waking early on cancellation.

        Returns ``True`` when cancellation was requested before or during
        the wait.
        """
        if self._event.is_set():
            return True
        if seconds <= 0:
            return False
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(self._event.wait(), seconds)
        return self._event.is_set()
