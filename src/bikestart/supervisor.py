"""
Connection supervisor: the scan → connect → discover → resolve state machine.

Owns the one GATT link to the start module. All methods are called on the
controller's event loop, so no locking is needed.
"""

import logging
from typing import Any, Callable, Optional

from .exceptions import MalformedUuid
from .interfaces import BLEAdapter, Link, LinkState, ScanResult, ScanSettings
from .settings import RemoteStartConfig
from .status import ConnectionState, ServiceStatus, StatusNotice, StatusNotifier

logger = logging.getLogger(__name__)


class LinkLease:
    """Ownership-checked handle to the link and its command characteristic.

    A lease is only valid while the link it was issued for is still the
    supervisor's current, ready link. Writes through a stale lease are
    dropped.
    """

    def __init__(
        self,
        owner: "ConnectionSupervisor",
        link: Link,
        characteristic: Any,
        epoch: int,
    ) -> None:
        self._owner = owner
        self.link = link
        self.characteristic = characteristic
        self.epoch = epoch

    @property
    def is_valid(self) -> bool:
        return self._owner.holds(self)

    def write(self, payload: bytes) -> bool:
        """Write payload to the characteristic if the link is still current.

        Returns:
            True if the write was dispatched, False if it was dropped
        """
        if not self.is_valid:
            logger.warning(f"Dropping write on stale link (epoch {self.epoch})")
            return False
        self.link.write_characteristic(self.characteristic, payload)
        return True


class ConnectionSupervisor:
    """Manages discovery of, and the connection to, the start module."""

    def __init__(
        self,
        config: RemoteStartConfig,
        adapter: BLEAdapter,
        status: ServiceStatus,
        notifier: StatusNotifier,
        on_ready: Callable[[LinkLease], None],
        on_fatal: Callable[[], None],
        on_disconnect: Callable[[], None],
        scan_settings: Optional[ScanSettings] = None,
    ) -> None:
        """Initialize supervisor in the IDLE state.

        Args:
            config: Device configuration
            adapter: BLE capability provider
            status: Shared status flags (connected/scanning are set here)
            notifier: Status notice channel
            on_ready: Called with a lease once the characteristic is resolved
            on_fatal: Called when the characteristic cannot be resolved
            on_disconnect: Called when the current link reports a disconnect
            scan_settings: Scan parameters (defaults to active scanning)
        """
        self._config = config
        self._adapter = adapter
        self._status = status
        self._notifier = notifier
        self._on_ready = on_ready
        self._on_fatal = on_fatal
        self._on_disconnect = on_disconnect
        self._scan_settings = scan_settings or ScanSettings()

        self._state = ConnectionState.IDLE
        self._link: Optional[Link] = None
        self._epoch = 0

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def link(self) -> Optional[Link]:
        """The link currently owned, if any."""
        return self._link

    @property
    def epoch(self) -> int:
        """Incremented whenever a link is created or released."""
        return self._epoch

    def holds(self, lease: LinkLease) -> bool:
        """Check that lease refers to the current, ready link."""
        return (
            lease.epoch == self._epoch
            and lease.link is self._link
            and self._state is ConnectionState.READY
        )

    def start(self) -> None:
        """Start scanning for the configured device."""
        if self._state not in (ConnectionState.IDLE, ConnectionState.DISCONNECTED):
            logger.warning(f"Cannot start scanning while {self._state.value}")
            return

        self._set_state(ConnectionState.SCANNING)
        self._adapter.start_scan(
            self._config.device_address, self._scan_settings, self._on_scan_result
        )
        self._status.is_scanning = True
        self._notifier.show(StatusNotice.SCANNING)
        logger.info(f"Scanning for {self._config.device_address}")

    def stop(self) -> None:
        """Stop scanning, release the link and return to IDLE."""
        self._stop_scan()

        link = self._link
        if link is not None:
            logger.info("Releasing link")
            link.disconnect()
            link.close()
            self._link = None
            self._epoch += 1

        self._status.is_connected = False
        self._set_state(ConnectionState.IDLE)

    def _stop_scan(self) -> bool:
        if not self._status.is_scanning:
            return False
        self._adapter.stop_scan()
        self._status.is_scanning = False
        return True

    def _set_state(self, state: ConnectionState) -> None:
        if state is not self._state:
            logger.debug(f"State {self._state.value} -> {state.value}")
            self._state = state

    def _on_scan_result(self, result: ScanResult) -> None:
        # Repeated advertisements arrive until the link reports connected
        if self._state is not ConnectionState.SCANNING:
            logger.debug(f"Ignoring scan result while {self._state.value}")
            return
        if result.address.upper() != self._config.device_address.upper():
            return

        logger.info(f"Found {result.name or 'device'} ({result.address}), connecting...")
        self._set_state(ConnectionState.CONNECTING)
        self._notifier.show(StatusNotice.DEVICE_FOUND)
        self._epoch += 1
        self._link = self._adapter.connect(
            result.device, auto_reconnect=False, on_state_change=self._on_link_state
        )

    def _on_link_state(self, link: Link, state: LinkState) -> None:
        if link is not self._link:
            logger.debug(f"Ignoring {state.value} from stale link")
            return

        if state is LinkState.CONNECTED:
            logger.info("Device connected")
            self._set_state(ConnectionState.CONNECTED)
            self._status.is_connected = True
            if self._stop_scan():
                self._notifier.show(StatusNotice.SCAN_STOPPED)
            self._notifier.show(StatusNotice.CONNECTED)
            self._set_state(ConnectionState.DISCOVERING_SERVICES)
            link.discover_services(self._on_services_discovered)

        elif state is LinkState.DISCONNECTED:
            logger.warning("Device disconnected")
            self._status.is_connected = False
            self._set_state(ConnectionState.DISCONNECTED)
            self._on_disconnect()

    def _on_services_discovered(self, link: Link) -> None:
        if link is not self._link or self._state is not ConnectionState.DISCOVERING_SERVICES:
            logger.debug("Ignoring service discovery result for stale link")
            return

        characteristic = self._resolve_characteristic(link)
        if characteristic is None:
            logger.error(
                f"Characteristic {self._config.characteristic_uuid} not found "
                f"on service {self._config.service_uuid}"
            )
            self._notifier.show(StatusNotice.CHARACTERISTIC_ERROR)
            self._on_fatal()
            return

        logger.info("Command characteristic resolved")
        self._set_state(ConnectionState.READY)
        self._on_ready(LinkLease(self, link, characteristic, self._epoch))

    def _resolve_characteristic(self, link: Link) -> Optional[Any]:
        try:
            return link.get_characteristic(
                self._config.service_uuid, self._config.characteristic_uuid
            )
        except MalformedUuid as e:
            logger.error(f"{e}")
            return None
