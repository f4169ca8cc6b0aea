"""
Abstract BLE capability interface consumed by the connection supervisor.

The default implementation uses the `bleak` library (see
``drivers/bleak_driver.py``). Tests and other platforms can provide their own.

All callbacks must be invoked on the event loop that drives the controller.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional


class LinkState(Enum):
    """Connection state reported by a link."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


@dataclass(frozen=True)
class ScanSettings:
    """Scan parameters.

    The start module is looked for in the foreground, so scanning is active
    (low latency) by default.
    """

    scanning_mode: str = "active"


@dataclass
class ScanResult:
    """An advertisement from the target address."""

    address: str
    device: Any  # Backend-specific device handle passed back to connect()
    name: Optional[str] = None
    rssi: Optional[int] = None


class Link(ABC):
    """A GATT link to one peripheral."""

    @abstractmethod
    def discover_services(self, on_discovered: Callable[["Link"], None]) -> None:
        """Request service discovery; on_discovered is called when done."""

    @abstractmethod
    def get_characteristic(
        self, service_uuid: str, characteristic_uuid: str
    ) -> Optional[Any]:
        """Look up a characteristic on a discovered service.

        Returns:
            Backend-specific characteristic, or None if not present

        Raises:
            MalformedUuid: If either UUID cannot be parsed
        """

    @abstractmethod
    def write_characteristic(self, characteristic: Any, payload: bytes) -> None:
        """Write payload to a characteristic without waiting for the result."""

    @abstractmethod
    def disconnect(self) -> None:
        """Request disconnection."""

    @abstractmethod
    def close(self) -> None:
        """Release the link. No callbacks are delivered afterwards."""


LinkStateCallback = Callable[[Link, LinkState], None]


class BLEAdapter(ABC):
    """Local Bluetooth adapter: scanning and connecting."""

    @abstractmethod
    async def is_radio_enabled(self) -> bool:
        """Check whether Bluetooth is available and switched on."""

    @abstractmethod
    def start_scan(
        self,
        address_filter: str,
        settings: ScanSettings,
        on_result: Callable[[ScanResult], None],
    ) -> None:
        """Start scanning for advertisements from address_filter only."""

    @abstractmethod
    def stop_scan(self) -> None:
        """Stop scanning. No further results are delivered."""

    @abstractmethod
    def connect(
        self,
        device: Any,
        auto_reconnect: bool,
        on_state_change: LinkStateCallback,
    ) -> Link:
        """Start connecting to a scanned device.

        The returned link reports CONNECTED or DISCONNECTED through
        on_state_change. A failed attempt is reported as DISCONNECTED.
        """
