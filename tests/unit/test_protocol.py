"""Tests for command payloads."""

import pytest

from bikestart.protocol import Opcode, build_command, encode_command
from bikestart.settings import RemoteStartConfig


@pytest.mark.parametrize("opcode", ["IGN_ON", "ENG_START", "ENG_STOP", ""])
def test_command_is_password_plus_opcode(opcode):
    command = build_command("123456", opcode)

    assert command == "123456" + opcode
    assert len(command) == len("123456") + len(opcode)


def test_encode_command_is_utf8():
    assert encode_command("pw", "A1") == b"pwA1"


def test_config_maps_every_opcode():
    config = RemoteStartConfig(
        ignition_start_command="I", engine_start_command="S", engine_stop_command="X"
    )

    assert [config.opcode(op) for op in Opcode] == ["I", "S", "X"]
