"""Cancellable per-participant inactivity deadlines."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

# Callback type: (key) -> Awaitable[None]
ExpiryCallback = Callable[[str], Awaitable[None]]


class DeadlineRegistry:
    """Manage one deadline task per key.

    Arming a key replaces any deadline it already had. When a deadline
    fires, the key is dropped from the registry before the callback runs,
    so the callback may re-arm or cancel keys without tripping over its
    own task.
    """

    def __init__(self, timeout_seconds: float, on_expire: ExpiryCallback) -> None:
        self._timeout_seconds = timeout_seconds
        self._on_expire = on_expire
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._expires_at: dict[str, float] = {}  # key -> monotonic timestamp

    @property
    def timeout_seconds(self) -> float:
        return self._timeout_seconds

    def arm(self, key: str) -> None:
        """Start (or restart) the deadline for a key."""
        self.cancel(key)
        self._expires_at[key] = time.monotonic() + self._timeout_seconds
        self._tasks[key] = asyncio.create_task(self._run(key, self._timeout_seconds))

    def renew(self, key: str) -> bool:
        """Restart the deadline for an already armed key. Unknown keys are ignored."""
        if key not in self._tasks:
            return False
        self.arm(key)
        return True

    def cancel(self, key: str) -> bool:
        self._expires_at.pop(key, None)
        task = self._tasks.pop(key, None)
        if task is None:
            return False
        # a callback cancelling its own key must not abort itself
        if not task.done() and task is not asyncio.current_task():
            task.cancel()
        return True

    def cancel_all(self) -> None:
        for key in list(self._tasks):
            self.cancel(key)

    def is_armed(self, key: str) -> bool:
        return key in self._tasks

    def remaining(self, key: str) -> float | None:
        """Seconds left before the key expires, or None when it is not armed."""
        expires_at = self._expires_at.get(key)
        if expires_at is None:
            return None
        return max(0.0, expires_at - time.monotonic())

    def __len__(self) -> int:
        return len(self._tasks)

    async def _run(self, key: str, seconds: float) -> None:
        await asyncio.sleep(seconds)
        if self._tasks.get(key) is not asyncio.current_task():
            return
        self._tasks.pop(key, None)
        self._expires_at.pop(key, None)
        try:
            await self._on_expire(key)
        except Exception:
            logger.exception("deadline callback failed for %s", key)
