"""
Lifecycle controller for the remote start subsystem.

Wires the BLE adapter, connection supervisor, command sequencer and timer
scheduler together and exposes enable/disable to the hosting layer (the CLI
or REPL), together with observable status flags.
"""

import logging
from typing import Callable, Optional

from .interfaces import BLEAdapter
from .restart import ExponentialBackoff, RestartPolicy
from .scheduler import TimerScheduler
from .sequencer import CommandSequencer, SequenceStep
from .settings import RemoteStartConfig
from .status import ConnectionState, NullNotifier, ServiceStatus, StatusNotifier
from .supervisor import ConnectionSupervisor, LinkLease

logger = logging.getLogger(__name__)


class RemoteStartController:
    """Starts and stops discovery, connection and the start sequence."""

    def __init__(
        self,
        config: Optional[RemoteStartConfig] = None,
        adapter: Optional[BLEAdapter] = None,
        notifier: Optional[StatusNotifier] = None,
        scheduler: Optional[TimerScheduler] = None,
        restart_policy: Optional[RestartPolicy] = None,
        status: Optional[ServiceStatus] = None,
    ) -> None:
        """Initialize controller in the disabled state.

        Args:
            config: Device configuration (built-in defaults if None)
            adapter: BLE adapter (bleak-based if None)
            notifier: Status notice channel (log only if None)
            scheduler: Timer scheduler for the sequence and delayed restarts
            restart_policy: Policy applied after an unexpected disconnect
            status: Status flags to update (a new object if None)
        """
        self._config = config or RemoteStartConfig()
        if adapter is None:
            from .drivers.bleak_driver import BleakBLEAdapter

            adapter = BleakBLEAdapter()
        self._adapter = adapter
        self._notifier = notifier or NullNotifier()
        self._scheduler = scheduler or TimerScheduler()
        self._restart_policy = restart_policy or ExponentialBackoff(
            self._config.restart_backoff_base, self._config.restart_backoff_cap
        )
        self.status = status or ServiceStatus()

        self._sequencer = CommandSequencer(self._config, self._scheduler)
        self._supervisor = ConnectionSupervisor(
            self._config,
            self._adapter,
            self.status,
            self._notifier,
            on_ready=self._on_link_ready,
            on_fatal=self._on_fatal,
            on_disconnect=self._on_link_lost,
        )

        self._enabling = False
        self._enable_cancelled = False
        self._restart_pending = False
        self._on_error: Optional[Callable[[str], None]] = None

    @property
    def config(self) -> RemoteStartConfig:
        return self._config

    @property
    def is_running(self) -> bool:
        return self.status.is_running

    @property
    def is_connected(self) -> bool:
        return self.status.is_connected

    @property
    def is_scanning(self) -> bool:
        return self.status.is_scanning

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._supervisor.state

    @property
    def sequence_step(self) -> SequenceStep:
        return self._sequencer.step

    @property
    def restart_pending(self) -> bool:
        """True while waiting out a restart delay after a disconnect."""
        return self._restart_pending

    def set_on_sequence_finished(self, callback: Callable[[SequenceStep], None]) -> None:
        """Set callback for the end of the start sequence.

        Args:
            callback: Function called with SequenceStep.COMPLETE or ABORTED
        """
        self._sequencer.set_on_finished(callback)

    def set_on_error(self, callback: Callable[[str], None]) -> None:
        """Set callback for fatal errors.

        Args:
            callback: Function called with an error message before teardown
        """
        self._on_error = callback

    async def enable(self) -> bool:
        """Start scanning for the motorcycle.

        Does nothing if already running.

        Returns:
            True if running afterwards, False if Bluetooth is unavailable or
            disable() was called during the check
        """
        if self.status.is_running or self._enabling:
            logger.debug("Already enabled")
            return True

        self._enabling = True
        self._enable_cancelled = False
        try:
            radio_on = await self._adapter.is_radio_enabled()
        finally:
            self._enabling = False

        if not radio_on:
            logger.warning("Bluetooth is off or unavailable")
            return False

        if self._enable_cancelled:
            logger.info("Enable cancelled while checking Bluetooth")
            return False

        if self.status.is_running:
            return True

        # Supersedes a restart that is still waiting out its delay
        self._scheduler.cancel_all()
        self._restart_pending = False
        self._start()
        return True

    def disable(self) -> None:
        """Stop everything and release the link. Safe to call repeatedly."""
        if self._enabling:
            self._enable_cancelled = True

        if (
            not self.status.is_running
            and not self._restart_pending
            and self._supervisor.state is ConnectionState.IDLE
        ):
            return

        logger.info("Stopping remote start service")
        self._sequencer.abort()
        self._scheduler.cancel_all()
        self._restart_pending = False
        self._supervisor.stop()
        self.status.reset()
        self._notifier.clear()

    def get_status(self) -> dict:
        """Get current state and flags.

        Returns:
            Dictionary with state, sequence step and status flags
        """
        status = {
            "state": self.state.value,
            "sequence": self.sequence_step.value,
            "restart_pending": self._restart_pending,
        }
        status.update(self.status.as_dict())
        return status

    def _start(self) -> None:
        if self.status.is_running:
            return
        logger.info("Starting remote start service")
        self.status.is_running = True
        self._supervisor.start()

    def _restart(self) -> None:
        self._restart_pending = False
        self._start()

    def _on_link_ready(self, lease: LinkLease) -> None:
        self._restart_policy.reset()
        self._sequencer.run(lease)

    def _on_fatal(self) -> None:
        if self._on_error:
            try:
                self._on_error("Start module characteristic not found")
            except Exception as e:
                logger.error(f"Error callback error: {e}")
        self.disable()

    def _on_link_lost(self) -> None:
        if not self.status.is_running:
            return

        delay = self._restart_policy.next_delay()
        self.disable()

        if delay <= 0:
            logger.info("Restarting scan")
            self._start()
            return

        logger.info(f"Restarting scan in {delay:.1f}s")
        self._restart_pending = True
        self._scheduler.schedule(int(delay * 1000), self._restart)
