"""Shared fixtures: in-memory BLE adapter, virtual-time scheduler, notifier."""

import heapq
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from bikestart.controller import RemoteStartController
from bikestart.interfaces import BLEAdapter, Link, LinkState, ScanResult, ScanSettings
from bikestart.restart import ExponentialBackoff
from bikestart.settings import RemoteStartConfig
from bikestart.status import StatusNotice, StatusNotifier
from bikestart.uuids import parse_uuid

COMMAND_CHARACTERISTIC = "command-characteristic"


class FakeScheduler:
    """Scheduler running on a virtual millisecond clock."""

    def __init__(self) -> None:
        self.now = 0
        self._queue: List[Tuple[int, int, Callable[[], None]]] = []
        self._seq = 0

    @property
    def pending(self) -> int:
        return len(self._queue)

    def schedule(self, delay_ms: int, action: Callable[[], None]) -> None:
        self._seq += 1
        heapq.heappush(self._queue, (self.now + delay_ms, self._seq, action))

    def cancel_all(self) -> None:
        self._queue.clear()

    def advance(self, ms: int) -> None:
        target = self.now + ms
        while self._queue and self._queue[0][0] <= target:
            due, _, action = heapq.heappop(self._queue)
            self.now = due
            action()
        self.now = target


class FakeLink(Link):
    """Link that records calls and lets tests inject events."""

    def __init__(
        self,
        device: Any,
        on_state_change: Callable[[Link, LinkState], None],
        characteristics: Dict[Tuple[str, str], Any],
        clock: Callable[[], int],
    ) -> None:
        self.device = device
        self._on_state_change = on_state_change
        self.characteristics = characteristics
        self._clock = clock
        self.writes: List[Tuple[int, Any, bytes]] = []
        self.discovery_requests: List[Callable[[Link], None]] = []
        self.disconnect_calls = 0
        self.close_calls = 0

    @property
    def payloads(self) -> List[bytes]:
        return [payload for _, _, payload in self.writes]

    def discover_services(self, on_discovered: Callable[[Link], None]) -> None:
        self.discovery_requests.append(on_discovered)

    def get_characteristic(self, service_uuid: str, characteristic_uuid: str) -> Any:
        key = (parse_uuid(service_uuid), parse_uuid(characteristic_uuid))
        return self.characteristics.get(key)

    def write_characteristic(self, characteristic: Any, payload: bytes) -> None:
        self.writes.append((self._clock(), characteristic, payload))

    def disconnect(self) -> None:
        self.disconnect_calls += 1

    def close(self) -> None:
        self.close_calls += 1

    # Test helpers

    def report(self, state: LinkState) -> None:
        self._on_state_change(self, state)

    def complete_discovery(self) -> None:
        self.discovery_requests[-1](self)


class FakeAdapter(BLEAdapter):
    """Adapter that records scans and creates FakeLinks."""

    def __init__(
        self,
        address: str,
        characteristics: Dict[Tuple[str, str], Any],
        clock: Callable[[], int] = lambda: 0,
    ) -> None:
        self.address = address
        self.characteristics = characteristics
        self.clock = clock
        self.radio_on = True
        self.scans: List[Tuple[str, ScanSettings]] = []
        self.stop_scan_calls = 0
        self.links: List[FakeLink] = []
        self._on_result: Optional[Callable[[ScanResult], None]] = None

    @property
    def scanning(self) -> bool:
        return self._on_result is not None

    async def is_radio_enabled(self) -> bool:
        return self.radio_on

    def start_scan(
        self,
        address_filter: str,
        settings: ScanSettings,
        on_result: Callable[[ScanResult], None],
    ) -> None:
        self.scans.append((address_filter, settings))
        self._on_result = on_result

    def stop_scan(self) -> None:
        self.stop_scan_calls += 1
        self._on_result = None

    def connect(
        self,
        device: Any,
        auto_reconnect: bool,
        on_state_change: Callable[[Link, LinkState], None],
    ) -> Link:
        assert auto_reconnect is False
        link = FakeLink(device, on_state_change, self.characteristics, self.clock)
        self.links.append(link)
        return link

    # Test helpers

    def advertise(self, address: Optional[str] = None) -> None:
        address = address or self.address
        assert self._on_result is not None, "not scanning"
        self._on_result(ScanResult(address=address, device=f"device:{address}"))

    def bring_up(self) -> FakeLink:
        """Advertise, connect and finish service discovery."""
        self.advertise()
        link = self.links[-1]
        link.report(LinkState.CONNECTED)
        link.complete_discovery()
        return link


class RecordingNotifier(StatusNotifier):
    def __init__(self) -> None:
        self.shown: List[StatusNotice] = []
        self.current: Optional[StatusNotice] = None
        self.clear_calls = 0

    def show(self, notice: StatusNotice) -> None:
        self.shown.append(notice)
        self.current = notice

    def clear(self) -> None:
        self.clear_calls += 1
        self.current = None


@pytest.fixture
def config() -> RemoteStartConfig:
    return RemoteStartConfig()


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def adapter(config: RemoteStartConfig, scheduler: FakeScheduler) -> FakeAdapter:
    characteristics = {
        (config.service_uuid, config.characteristic_uuid): COMMAND_CHARACTERISTIC
    }
    return FakeAdapter(config.device_address, characteristics, lambda: scheduler.now)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def controller(
    config: RemoteStartConfig,
    adapter: FakeAdapter,
    notifier: RecordingNotifier,
    scheduler: FakeScheduler,
) -> RemoteStartController:
    return RemoteStartController(
        config,
        adapter=adapter,
        notifier=notifier,
        scheduler=scheduler,  # type: ignore[arg-type]
        restart_policy=ExponentialBackoff(base=1.0, cap=30.0),
    )
