"""Cooperative cancellation for generation attempts."""

from __future__ import annotations

import asyncio
import threading
from typing import Optional


class CancellationToken:
    """One-shot cancellation signal handed to a single attempt or wait."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Signal cancellation. Safe to call from any thread, more than once."""
        if self._cancelled:
            return
        self._cancelled = True
        loop = self._loop
        if loop is None:
            self._event.set()
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            self._event.set()
        elif not loop.is_closed():
            loop.call_soon_threadsafe(self._event.set)

    async def wait(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds; return True if cancelled first."""
        # The loop is bound before the check; cancel() reads it from other threads.
        self._loop = asyncio.get_running_loop()
        if self._cancelled:
            return True
        try:
            await asyncio.wait_for(self._event.wait(), timeout)
        except asyncio.TimeoutError:
            pass
        return self._cancelled


class AbortCoordinator:
    """Holds the token of whatever is currently in flight.

    Owned by a single controller. ``begin`` replaces the stored token, ``end``
    only clears it when it is still the caller's own token, and ``abort``
    cancels and clears whatever is stored.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current: Optional[CancellationToken] = None

    @property
    def active(self) -> bool:
        with self._lock:
            return self._current is not None

    def begin(self) -> CancellationToken:
        token = CancellationToken()
        with self._lock:
            self._current = token
        return token

    def end(self, token: CancellationToken) -> None:
        with self._lock:
            if self._current is token:
                self._current = None

    def abort(self) -> bool:
        """Cancel the stored token. Returns False when nothing was active."""
        with self._lock:
            token, self._current = self._current, None
        if token is None:
            return False
        token.cancel()
        return True
