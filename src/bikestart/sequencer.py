"""
Timed ignition/engine command sequence.

Ignition start is sent as soon as the link is ready, engine start follows
after the configured delay and engine stop after the configured duration.
Commands are fire-and-forget: nothing is acknowledged by the start module.
"""

import logging
from enum import Enum
from typing import Callable, Optional

from .protocol import Opcode, encode_command
from .scheduler import TimerScheduler
from .settings import RemoteStartConfig
from .supervisor import LinkLease

logger = logging.getLogger(__name__)


class SequenceStep(Enum):
    """Progress of the start sequence."""

    IDLE = "idle"
    IGNITION_ON = "ignition_on"
    ENGINE_RUNNING = "engine_running"
    COMPLETE = "complete"
    ABORTED = "aborted"


class CommandSequencer:
    """Sends the start sequence over a leased link."""

    def __init__(
        self,
        config: RemoteStartConfig,
        scheduler: TimerScheduler,
        on_finished: Optional[Callable[[SequenceStep], None]] = None,
    ) -> None:
        self._config = config
        self._scheduler = scheduler
        self._on_finished = on_finished
        self._step = SequenceStep.IDLE

    @property
    def step(self) -> SequenceStep:
        return self._step

    def set_on_finished(self, callback: Callable[[SequenceStep], None]) -> None:
        """Set callback for the end of a sequence (COMPLETE or ABORTED)."""
        self._on_finished = callback

    def run(self, lease: LinkLease) -> None:
        """Start the sequence with ignition start."""
        logger.info("Starting ignition")
        if not self._send(lease, Opcode.IGNITION_START):
            return
        self._step = SequenceStep.IGNITION_ON
        self._scheduler.schedule(
            self._config.engine_start_delay_ms, lambda: self._engine_start(lease)
        )

    def abort(self) -> None:
        """Abandon a sequence that is still in progress."""
        if self._step in (SequenceStep.IGNITION_ON, SequenceStep.ENGINE_RUNNING):
            logger.warning(f"Sequence aborted at {self._step.value}")
            self._finish(SequenceStep.ABORTED)

    def _engine_start(self, lease: LinkLease) -> None:
        logger.info("Starting engine")
        if not self._send(lease, Opcode.ENGINE_START):
            return
        self._step = SequenceStep.ENGINE_RUNNING
        self._scheduler.schedule(
            self._config.engine_start_duration_ms, lambda: self._engine_stop(lease)
        )

    def _engine_stop(self, lease: LinkLease) -> None:
        logger.info("Releasing engine start")
        if not self._send(lease, Opcode.ENGINE_STOP):
            return
        self._finish(SequenceStep.COMPLETE)

    def _send(self, lease: LinkLease, opcode: Opcode) -> bool:
        payload = encode_command(self._config.password, self._config.opcode(opcode))
        if lease.write(payload):
            logger.debug(f"Sent {opcode.value}")
            return True

        logger.warning(f"Sequence aborted before {opcode.value}")
        self._finish(SequenceStep.ABORTED)
        return False

    def _finish(self, step: SequenceStep) -> None:
        self._step = step
        if self._on_finished:
            try:
                self._on_finished(step)
            except Exception as e:
                logger.error(f"Sequence callback error: {e}")
