"""
UUID composition for the start module's GATT service and characteristic.

The peripheral exposes UUIDs built from a common base template with a
4-character fragment written over characters 4..7.
"""

import uuid

from .exceptions import MalformedUuid

FRAGMENT_OFFSET = 4
FRAGMENT_LENGTH = 4


def compose_uuid(base_template: str, fragment: str) -> str:
    """Overlay a 4-character fragment onto a base UUID template.

    Args:
        base_template: Full UUID string used as the template
        fragment: Specific part, at least 4 characters (extra characters are ignored)

    Returns:
        String of the same length as base_template

    Raises:
        IndexError: If fragment is shorter than 4 characters
    """
    chars = []
    for i, char in enumerate(base_template):
        if FRAGMENT_OFFSET <= i < FRAGMENT_OFFSET + FRAGMENT_LENGTH:
            chars.append(fragment[i - FRAGMENT_OFFSET])
        else:
            chars.append(char)
    return "".join(chars)


def parse_uuid(value: str) -> str:
    """Validate a UUID string and return it in canonical lowercase form.

    Raises:
        MalformedUuid: If value is not a valid UUID
    """
    try:
        return str(uuid.UUID(value))
    except (ValueError, TypeError, AttributeError):
        raise MalformedUuid(value) from None
