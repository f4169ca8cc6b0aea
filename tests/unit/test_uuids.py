"""Tests for UUID composition."""

import pytest

from bikestart.exceptions import MalformedUuid
from bikestart.uuids import compose_uuid, parse_uuid

BASE = "00000000-0000-1000-8000-00805f9b34fb"


def test_compose_replaces_offsets_4_to_7():
    assert compose_uuid(BASE, "ffe1") == "0000ffe1-0000-1000-8000-00805f9b34fb"


@pytest.mark.parametrize(
    "base, fragment",
    [
        (BASE, "abcd"),
        ("6e400001-b5a3-f393-e0a9-e50e24dcca9e", "1234"),
        ("xxxxxxxxxx", "WXYZ"),
    ],
)
def test_compose_only_touches_fragment(base, fragment):
    result = compose_uuid(base, fragment)

    assert len(result) == len(base)
    assert result[4:8] == fragment
    assert result[:4] == base[:4]
    assert result[8:] == base[8:]


def test_long_fragment_is_truncated():
    assert compose_uuid(BASE, "ffe1ffff") == compose_uuid(BASE, "ffe1")


def test_short_fragment_fails():
    with pytest.raises(IndexError):
        compose_uuid(BASE, "ff")


def test_parse_uuid_normalises_case():
    assert parse_uuid("0000FFE1-0000-1000-8000-00805F9B34FB") == (
        "0000ffe1-0000-1000-8000-00805f9b34fb"
    )


def test_parse_uuid_rejects_non_hex():
    with pytest.raises(MalformedUuid):
        parse_uuid(compose_uuid(BASE, "zzzz"))
