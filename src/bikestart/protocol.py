"""
Command payloads understood by the start module.

A command is the device password immediately followed by an opcode string.
There is no framing, checksum or acknowledgment.
"""

from enum import Enum

PAYLOAD_ENCODING = "utf-8"


class Opcode(Enum):
    """Commands in the remote start sequence."""

    IGNITION_START = "ignition_start"
    ENGINE_START = "engine_start"
    ENGINE_STOP = "engine_stop"


def build_command(password: str, opcode: str) -> str:
    """Build a command string.

    Args:
        password: Static device password
        opcode: Opcode string as configured for the device

    Returns:
        password + opcode
    """
    return password + opcode


def encode_command(password: str, opcode: str) -> bytes:
    """Build a command and encode it for a characteristic write."""
    return build_command(password, opcode).encode(PAYLOAD_ENCODING)
