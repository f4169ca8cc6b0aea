"""Tests for the connection supervisor state machine."""

import pytest

from bikestart.interfaces import LinkState
from bikestart.settings import RemoteStartConfig
from bikestart.status import ConnectionState, ServiceStatus, StatusNotice
from bikestart.supervisor import ConnectionSupervisor


class Calls:
    def __init__(self):
        self.leases = []
        self.fatal = 0
        self.disconnects = 0


@pytest.fixture
def calls():
    return Calls()


@pytest.fixture
def status():
    return ServiceStatus()


@pytest.fixture
def supervisor(config, adapter, status, notifier, calls):
    def on_fatal():
        calls.fatal += 1

    def on_disconnect():
        calls.disconnects += 1

    return ConnectionSupervisor(
        config,
        adapter,
        status,
        notifier,
        on_ready=calls.leases.append,
        on_fatal=on_fatal,
        on_disconnect=on_disconnect,
    )


def test_starts_idle(supervisor, adapter):
    assert supervisor.state is ConnectionState.IDLE
    assert supervisor.link is None
    assert adapter.scans == []


def test_start_scans_for_configured_address(supervisor, adapter, status, notifier, config):
    supervisor.start()

    assert supervisor.state is ConnectionState.SCANNING
    assert adapter.scans[0][0] == config.device_address
    assert adapter.scans[0][1].scanning_mode == "active"
    assert status.is_scanning
    assert notifier.current is StatusNotice.SCANNING


def test_scan_result_connects_once(supervisor, adapter, notifier):
    supervisor.start()

    adapter.advertise()
    adapter.advertise()
    adapter.advertise()

    assert supervisor.state is ConnectionState.CONNECTING
    assert len(adapter.links) == 1
    assert notifier.shown.count(StatusNotice.DEVICE_FOUND) == 1


def test_scan_result_for_other_address_is_ignored(supervisor, adapter):
    supervisor.start()

    adapter.advertise("AA:BB:CC:DD:EE:FF")

    assert supervisor.state is ConnectionState.SCANNING
    assert adapter.links == []


def test_address_match_is_case_insensitive(adapter, status, notifier, calls):
    config = RemoteStartConfig(device_address="c8:2b:96:a1:5e:02")
    supervisor = ConnectionSupervisor(
        config, adapter, status, notifier, calls.leases.append, lambda: None, lambda: None
    )
    supervisor.start()

    adapter.advertise("C8:2B:96:A1:5E:02")

    assert supervisor.state is ConnectionState.CONNECTING


def test_connected_stops_scan_and_discovers(supervisor, adapter, status, notifier):
    supervisor.start()
    adapter.advertise()
    link = adapter.links[0]

    link.report(LinkState.CONNECTED)

    assert supervisor.state is ConnectionState.DISCOVERING_SERVICES
    assert adapter.stop_scan_calls == 1
    assert not status.is_scanning
    assert status.is_connected
    assert len(link.discovery_requests) == 1
    assert notifier.shown[-2:] == [StatusNotice.SCAN_STOPPED, StatusNotice.CONNECTED]


def test_discovery_resolves_characteristic(supervisor, adapter, calls):
    supervisor.start()

    link = adapter.bring_up()

    assert supervisor.state is ConnectionState.READY
    assert len(calls.leases) == 1
    lease = calls.leases[0]
    assert lease.link is link
    assert lease.is_valid


def test_missing_characteristic_is_fatal(supervisor, adapter, notifier, calls):
    adapter.characteristics.clear()
    supervisor.start()

    adapter.bring_up()

    assert calls.fatal == 1
    assert calls.leases == []
    assert notifier.shown.count(StatusNotice.CHARACTERISTIC_ERROR) == 1


def test_malformed_uuid_is_treated_as_not_found(adapter, status, notifier, calls):
    config = RemoteStartConfig(characteristic_uuid_fragment="zzzz")
    supervisor = ConnectionSupervisor(
        config,
        adapter,
        status,
        notifier,
        calls.leases.append,
        lambda: setattr(calls, "fatal", calls.fatal + 1),
        lambda: None,
    )
    supervisor.start()

    adapter.bring_up()

    assert calls.fatal == 1
    assert notifier.current is StatusNotice.CHARACTERISTIC_ERROR


def test_disconnect_reports_and_clears_connected(supervisor, adapter, status, calls):
    supervisor.start()
    link = adapter.bring_up()

    link.report(LinkState.DISCONNECTED)

    assert supervisor.state is ConnectionState.DISCONNECTED
    assert not status.is_connected
    assert calls.disconnects == 1
    assert not calls.leases[0].is_valid


def test_stop_releases_link(supervisor, adapter, status):
    supervisor.start()
    link = adapter.bring_up()
    epoch = supervisor.epoch

    supervisor.stop()

    assert supervisor.state is ConnectionState.IDLE
    assert supervisor.link is None
    assert supervisor.epoch == epoch + 1
    assert link.disconnect_calls == 1
    assert link.close_calls == 1
    assert not status.is_connected
    assert not status.is_scanning


def test_stop_while_scanning_stops_scan(supervisor, adapter, status):
    supervisor.start()

    supervisor.stop()

    assert adapter.stop_scan_calls == 1
    assert not adapter.scanning
    assert not status.is_scanning
    assert supervisor.state is ConnectionState.IDLE


def test_events_from_released_link_are_ignored(supervisor, adapter, calls):
    supervisor.start()
    link = adapter.bring_up()
    supervisor.stop()

    link.report(LinkState.DISCONNECTED)

    assert calls.disconnects == 0
    assert supervisor.state is ConnectionState.IDLE


def test_start_is_ignored_unless_idle(supervisor, adapter):
    supervisor.start()
    supervisor.start()

    assert len(adapter.scans) == 1


def test_stale_lease_drops_writes(supervisor, adapter, calls):
    supervisor.start()
    link = adapter.bring_up()
    lease = calls.leases[0]
    supervisor.stop()

    assert lease.write(b"payload") is False
    assert link.writes == []
