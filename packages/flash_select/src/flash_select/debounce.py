"""
Debounced query commits.

Delays committing the raw search text until the user stops typing so that a
burst of keystrokes produces a single fetch.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

logger = logging.getLogger(__name__)


class QueryDebouncer:
    """
    Coalesces rapid changes of the raw search text into one committed text.

    Every ``push`` cancels the pending emission and reschedules it, so the
    callback only sees the text that stayed unchanged for ``delay_ms``.
    Cancelling a pending emission never touches work the callback already
    started.

    Examples:
        >>> debouncer = QueryDebouncer(print, delay_ms=300)
        >>> # inside a running event loop
        >>> debouncer.push("t")
        >>> debouncer.push("test")  # only "test" is printed, 300ms later
    """

    def __init__(self, callback: Callable[[str], None], delay_ms: int = 300) -> None:
        """
        Args:
            callback: Receives the committed text.
            delay_ms: Quiet period in milliseconds. 0 commits immediately.
        """
        if delay_ms < 0:
            raise ValueError("delay_ms must not be negative")
        self.delay_ms = delay_ms
        self._callback = callback
        self._task: asyncio.Task[None] | None = None
        self._pending_text: str | None = None

    @property
    def is_pending(self) -> bool:
        return self._pending_text is not None

    @property
    def pending_text(self) -> str | None:
        return self._pending_text

    def push(self, raw_text: str) -> None:
        """Schedule ``raw_text`` for commit, replacing any pending text."""
        self.cancel()
        self._pending_text = raw_text

        if self.delay_ms == 0:
            self._emit()
            return

        self._task = asyncio.create_task(self._delayed_emit())

    def flush(self) -> None:
        """Commit the pending text now."""
        if self._pending_text is None:
            return
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self._emit()

    def cancel(self) -> None:
        """Drop the pending text without committing it."""
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self._pending_text = None

    async def _delayed_emit(self) -> None:
        await asyncio.sleep(self.delay_ms / 1000)
        # Detach first: the callback may push again.
        self._task = None
        self._emit()

    def _emit(self) -> None:
        text = self._pending_text
        self._pending_text = None
        if text is None:
            return
        try:
            self._callback(text)
        except Exception:
            logger.exception("Error committing debounced query %r", text)
