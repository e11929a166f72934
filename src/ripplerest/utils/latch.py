"""One-shot completion latch for event-driven transaction lifecycles.

A submitted transaction can report several competing events (error, proposed,
validated). The first caller to claim the latch decides the outcome; every
later claim is a no-op.
"""

import asyncio
import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)


class LatchTimeoutError(Exception):
    """Raised when nothing claims the latch within the timeout period."""

    pass


class CompletionLatch:
    """Single-resolution future with an explicit "already claimed" guard.

    Example:
        latch = CompletionLatch("tx:ABC")
        transaction.on("proposed", lambda event: latch.resolve(event))
        event = await latch.wait(timeout=30.0)
    """

    def __init__(self, name: str = "latch"):
        """Initialize the latch.

        Args:
            name: Description used in log messages
        """
        self.name = name
        self._future: Optional[asyncio.Future] = None

    def _get_future(self) -> asyncio.Future:
        if self._future is None:
            self._future = asyncio.get_running_loop().create_future()
        return self._future

    @property
    def claimed(self) -> bool:
        """True once a value, error or timeout has been recorded."""
        return self._future is not None and self._future.done()

    def resolve(self, value: Any) -> bool:
        """Claim the latch with a value.

        Returns:
            True if this call claimed the latch, False if it was already claimed
        """
        future = self._get_future()
        if future.done():
            logger.debug(f"Latch {self.name} already claimed, ignoring value")
            return False
        future.set_result(value)
        return True

    def fail(self, error: BaseException) -> bool:
        """Claim the latch with an error.

        Returns:
            True if this call claimed the latch, False if it was already claimed
        """
        future = self._get_future()
        if future.done():
            logger.debug(f"Latch {self.name} already claimed, ignoring error: {error}")
            return False
        future.set_exception(error)
        return True

    async def wait(self, timeout: Optional[float] = None) -> Any:
        """Wait for the latch to be claimed.

        Args:
            timeout: Seconds to wait (None = wait forever)

        Returns:
            The value passed to resolve()

        Raises:
            The error passed to fail()
            LatchTimeoutError: If the timeout elapsed first. The latch is then
                claimed so that late resolve()/fail() calls are ignored.
        """
        future = self._get_future()

        if timeout is None:
            return await future

        try:
            return await asyncio.wait_for(asyncio.shield(future), timeout=timeout)
        except asyncio.TimeoutError:
            if future.done():
                return future.result()
            error = LatchTimeoutError(
                f"{self.name} was not resolved within {timeout}s"
            )
            self.fail(error)
            # Mark the exception as retrieved
            future.exception()
            logger.warning(f"Latch timeout for {self.name} after {timeout}s")
            raise error from None
