"""
Default BLE implementation using the `bleak` library.

Provides scanning, connection and characteristic writes for
Windows/macOS/Linux. Bleak is coroutine based; every operation here is
started as a task on the running loop and its outcome is delivered through
the callbacks of the capability interface.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Set

from bleak import BleakClient, BleakScanner
from bleak.backends.characteristic import BleakGATTCharacteristic
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData
from bleak.exc import BleakError

from ..interfaces import (
    BLEAdapter,
    Link,
    LinkState,
    LinkStateCallback,
    ScanResult,
    ScanSettings,
)
from ..uuids import parse_uuid

logger = logging.getLogger(__name__)

# Strong references to in-flight tasks so they are not garbage collected
_background_tasks: Set[asyncio.Task] = set()


def _spawn(coro: Awaitable[Any], description: str) -> asyncio.Task:
    """Run a coroutine in the background and log its failure."""
    task = asyncio.ensure_future(coro)
    _background_tasks.add(task)

    def done(t: asyncio.Task) -> None:
        _background_tasks.discard(t)
        if t.cancelled():
            return
        exc = t.exception()
        if exc is not None:
            logger.error(f"{description} failed: {exc}")

    task.add_done_callback(done)
    return task


class BleakBLEAdapter(BLEAdapter):
    """
    BLE adapter using the `bleak` library.

    Works on Windows, macOS, and Linux.
    """

    def __init__(self) -> None:
        self._scanner: Optional[BleakScanner] = None
        self._started: Set[BleakScanner] = set()
        self._scan_lock = asyncio.Lock()

    async def is_radio_enabled(self) -> bool:
        """Briefly start a scanner to check that Bluetooth is usable."""
        try:
            async with BleakScanner():
                pass
        except (BleakError, OSError) as e:
            logger.warning(f"Bluetooth not available: {e}")
            return False
        return True

    def start_scan(
        self,
        address_filter: str,
        settings: ScanSettings,
        on_result: Callable[[ScanResult], None],
    ) -> None:
        """Start scanning, reporting only advertisements from address_filter."""
        target = address_filter.upper()
        scanner: Optional[BleakScanner] = None

        def detection_callback(device: BLEDevice, adv_data: AdvertisementData) -> None:
            # Late results from a stopped scanner are dropped
            if self._scanner is not scanner:
                return
            if device.address.upper() != target:
                return
            on_result(
                ScanResult(
                    address=device.address,
                    device=device,
                    name=device.name,
                    rssi=adv_data.rssi,
                )
            )

        scanner = BleakScanner(
            detection_callback=detection_callback,
            scanning_mode=settings.scanning_mode,  # type: ignore[arg-type]
        )
        self._scanner = scanner
        logger.debug(f"Scanning for {address_filter} ({settings.scanning_mode})")
        _spawn(self._start_scanner(scanner), "Scan start")

    def stop_scan(self) -> None:
        """Stop the current scan, if any."""
        scanner = self._scanner
        self._scanner = None
        if scanner is not None:
            _spawn(self._stop_scanner(scanner), "Scan stop")

    def connect(
        self,
        device: Any,
        auto_reconnect: bool,
        on_state_change: LinkStateCallback,
    ) -> Link:
        """Create a link and start connecting to it."""
        if auto_reconnect:
            logger.warning("Bleak does not reconnect automatically, ignoring")
        link = BleakLink(device, on_state_change)
        link.open()
        return link

    async def _start_scanner(self, scanner: BleakScanner) -> None:
        async with self._scan_lock:
            if self._scanner is not scanner:
                # Stopped before it got going
                return
            await scanner.start()
            self._started.add(scanner)

    async def _stop_scanner(self, scanner: BleakScanner) -> None:
        async with self._scan_lock:
            if scanner not in self._started:
                return
            self._started.discard(scanner)
            await scanner.stop()


class BleakLink(Link):
    """GATT link backed by a BleakClient."""

    def __init__(self, device: Any, on_state_change: LinkStateCallback) -> None:
        self._on_state_change = on_state_change
        self._client = BleakClient(
            device, disconnected_callback=self._handle_disconnected
        )
        self._closed = False
        self._disconnect_reported = False

    @property
    def is_connected(self) -> bool:
        return not self._closed and self._client.is_connected

    def open(self) -> None:
        """Start the connection attempt."""
        _spawn(self._connect(), "Connect")

    def discover_services(self, on_discovered: Callable[[Link], None]) -> None:
        """Bleak resolves services while connecting, so report them right away."""
        asyncio.get_running_loop().call_soon(self._deliver_services, on_discovered)

    def get_characteristic(
        self, service_uuid: str, characteristic_uuid: str
    ) -> Optional[BleakGATTCharacteristic]:
        service_uuid = parse_uuid(service_uuid)
        characteristic_uuid = parse_uuid(characteristic_uuid)

        try:
            service = self._client.services.get_service(service_uuid)
        except BleakError as e:
            logger.warning(f"Services not available: {e}")
            return None

        if service is None:
            logger.warning(f"Service {service_uuid} not found")
            return None
        return service.get_characteristic(characteristic_uuid)

    def write_characteristic(self, characteristic: Any, payload: bytes) -> None:
        if not self.is_connected:
            logger.warning("Write dropped: link is not connected")
            return

        response = "write" in getattr(characteristic, "properties", [])
        _spawn(
            self._client.write_gatt_char(characteristic, payload, response=response),
            "Characteristic write",
        )

    def disconnect(self) -> None:
        _spawn(self._client.disconnect(), "Disconnect")

    def close(self) -> None:
        self._closed = True

    async def _connect(self) -> None:
        try:
            await self._client.connect()
        except (BleakError, asyncio.TimeoutError, OSError) as e:
            logger.warning(f"Connection attempt failed: {e}")
            self._report(LinkState.DISCONNECTED)
            return

        if self._closed:
            # Released while the attempt was in flight
            await self._client.disconnect()
            return

        self._report(LinkState.CONNECTED)

    def _deliver_services(self, on_discovered: Callable[[Link], None]) -> None:
        if not self._closed:
            on_discovered(self)

    def _handle_disconnected(self, client: BleakClient) -> None:
        self._report(LinkState.DISCONNECTED)

    def _report(self, state: LinkState) -> None:
        if self._closed:
            return
        if state is LinkState.DISCONNECTED:
            if self._disconnect_reported:
                return
            self._disconnect_reported = True
        self._on_state_change(self, state)
