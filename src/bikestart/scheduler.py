"""
One-shot delayed actions on the asyncio event loop.

All actions are dispatched on the loop that owns the controller, so they are
serialized with BLE callbacks and never run concurrently with them.
"""

import asyncio
import logging
import math
from typing import Callable, Optional, Set, Union

from .exceptions import ConfigError

logger = logging.getLogger(__name__)


def seconds_to_millis(value: Union[str, float]) -> int:
    """Convert a delay in fractional seconds to whole milliseconds.

    The value is parsed as a float, multiplied by 1000 and truncated.

    Args:
        value: Delay as a number or numeric string (e.g. "2.5")

    Returns:
        Delay in milliseconds

    Raises:
        ConfigError: If value is not a finite, non-negative number
    """
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid delay value: {value!r}") from None

    if not math.isfinite(seconds) or seconds < 0:
        raise ConfigError(f"Delay must be a non-negative number: {value!r}")

    return int(seconds * 1000)


class TimerScheduler:
    """Schedules delayed one-shot actions on a single event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Initialize scheduler.

        Args:
            loop: Event loop to schedule on (defaults to the running loop)
        """
        self._loop = loop
        self._handles: Set[asyncio.TimerHandle] = set()

    @property
    def pending(self) -> int:
        """Number of actions that have not fired yet."""
        return len(self._handles)

    def schedule(self, delay_ms: int, action: Callable[[], None]) -> None:
        """Run action once after delay_ms milliseconds.

        Args:
            delay_ms: Delay in milliseconds
            action: Callable with no arguments
        """
        loop = self._loop or asyncio.get_running_loop()
        handle: Optional[asyncio.TimerHandle] = None

        def fire() -> None:
            self._handles.discard(handle)  # type: ignore[arg-type]
            try:
                action()
            except Exception:
                logger.exception("Scheduled action failed")

        handle = loop.call_later(delay_ms / 1000, fire)
        self._handles.add(handle)
        logger.debug(f"Scheduled action in {delay_ms} ms")

    def cancel_all(self) -> None:
        """Cancel every pending action."""
        if self._handles:
            logger.debug(f"Cancelling {len(self._handles)} scheduled action(s)")
        for handle in self._handles:
            handle.cancel()
        self._handles.clear()
