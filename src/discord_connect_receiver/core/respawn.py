"""
Restart delay policy shared by the source supervisor and the audio pipeline.

Each owner keeps its own :class:`RespawnPolicy`. The policy holds the current
delay and at most one pending respawn task.
"""

import asyncio
from typing import Awaitable, Callable, Optional

from discord_connect_receiver.infrastructure import setup_logging

logger = setup_logging("respawn")


class RespawnPolicy:
    """
    Exponential restart delay with a cap and an optional attempt limit.

    ``current_delay`` starts at ``base_delay``, doubles on every
    :meth:`backoff` up to ``max_delay`` and returns to ``base_delay`` on
    :meth:`reset`. A fixed delay is a policy whose base equals its max.
    """

    def __init__(
        self,
        base_delay: float,
        max_delay: Optional[float] = None,
        max_attempts: Optional[int] = None,
        name: str = "respawn",
    ):
        if max_delay is None:
            max_delay = base_delay
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.max_attempts = max_attempts
        self.name = name
        self.current_delay = base_delay
        self.attempts = 0
        self._pending: Optional[asyncio.Task] = None

    def delay_for(self, n: int) -> float:
        """Delay before the n-th consecutive restart (1-based)."""
        return min(self.base_delay * (2 ** (n - 1)), self.max_delay)

    def backoff(self) -> float:
        """Double the current delay, capped, and count a failed attempt."""
        self.attempts += 1
        self.current_delay = min(self.current_delay * 2, self.max_delay)
        return self.current_delay

    def reset(self) -> None:
        self.current_delay = self.base_delay
        self.attempts = 0

    @property
    def exhausted(self) -> bool:
        return self.max_attempts is not None and self.attempts >= self.max_attempts

    @property
    def pending(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def schedule(
        self,
        callback: Callable[[], Awaitable[None]],
        delay: Optional[float] = None,
    ) -> bool:
        """
        Run ``callback`` after ``delay`` (default: the current delay).

        Returns False without scheduling anything if a respawn is already
        pending.
        """
        if self.pending:
            logger.debug(f"[{self.name}] respawn already pending, ignoring request")
            return False

        if delay is None:
            delay = self.current_delay
        self._pending = asyncio.create_task(self._fire(callback, delay))
        return True

    async def _fire(self, callback: Callable[[], Awaitable[None]], delay: float) -> None:
        await asyncio.sleep(delay)
        # Clear before the callback so it can schedule the next attempt.
        self._pending = None
        await callback()

    def cancel(self) -> None:
        if self._pending is not None:
            if not self._pending.done():
                self._pending.cancel()
            self._pending = None
