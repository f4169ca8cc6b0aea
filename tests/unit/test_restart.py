"""Tests for restart policies."""

from bikestart.restart import ExponentialBackoff, ImmediateRestart


def test_immediate_restart_never_waits():
    policy = ImmediateRestart()
    assert [policy.next_delay() for _ in range(5)] == [0.0] * 5


def test_backoff_first_restart_is_immediate_then_doubles():
    policy = ExponentialBackoff(base=1.0, cap=10.0)

    delays = [policy.next_delay() for _ in range(7)]

    assert delays == [0.0, 1.0, 2.0, 4.0, 8.0, 10.0, 10.0]


def test_backoff_reset():
    policy = ExponentialBackoff(base=2.0, cap=60.0)
    policy.next_delay()
    policy.next_delay()

    policy.reset()

    assert policy.attempts == 0
    assert policy.next_delay() == 0.0
