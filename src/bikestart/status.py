"""
Connection state, status flags and the status notice channel.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, List

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """State of the single link to the start module."""

    IDLE = "idle"
    SCANNING = "scanning"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCOVERING_SERVICES = "discovering_services"
    READY = "ready"
    DISCONNECTED = "disconnected"


class StatusNotice(Enum):
    """User-visible status messages, each with a fixed icon."""

    SCANNING = ("Scanning for motorcycle...", "scan")
    DEVICE_FOUND = ("Motorcycle found, connecting...", "scan")
    CONNECTED = ("Motorcycle connected", "bluetooth_connected")
    SCAN_STOPPED = ("Scanning stopped", "scan")
    CHARACTERISTIC_ERROR = ("Start module characteristic not found", "error")

    def __init__(self, message: str, icon: str):
        self.message = message
        self.icon = icon


class StatusNotifier(ABC):
    """Single persistent status notice, replaced in place on every update."""

    @abstractmethod
    def show(self, notice: StatusNotice) -> None:
        """Show notice, replacing the current one."""

    @abstractmethod
    def clear(self) -> None:
        """Remove the notice."""


class NullNotifier(StatusNotifier):
    """Notifier that only logs."""

    def show(self, notice: StatusNotice) -> None:
        logger.debug(f"Notice: {notice.message}")

    def clear(self) -> None:
        pass


StatusListener = Callable[["ServiceStatus"], None]


class ServiceStatus:
    """Observable running/connected/scanning flags.

    Mutated by the controller and the connection supervisor only. All flags
    start out False and are never persisted.
    """

    def __init__(self) -> None:
        self._running = False
        self._connected = False
        self._scanning = False
        self._listeners: List[StatusListener] = []

    @property
    def is_running(self) -> bool:
        return self._running

    @is_running.setter
    def is_running(self, value: bool) -> None:
        self._update("_running", value)

    @property
    def is_connected(self) -> bool:
        return self._connected

    @is_connected.setter
    def is_connected(self, value: bool) -> None:
        self._update("_connected", value)

    @property
    def is_scanning(self) -> bool:
        return self._scanning

    @is_scanning.setter
    def is_scanning(self, value: bool) -> None:
        self._update("_scanning", value)

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """Register a listener called after every flag change.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def reset(self) -> None:
        """Clear all flags."""
        self.is_scanning = False
        self.is_connected = False
        self.is_running = False

    def as_dict(self) -> dict:
        return {
            "running": self._running,
            "connected": self._connected,
            "scanning": self._scanning,
        }

    def _update(self, attr: str, value: bool) -> None:
        if getattr(self, attr) == value:
            return
        setattr(self, attr, value)
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                logger.error(f"Status listener error: {e}")
