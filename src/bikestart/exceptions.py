"""Exceptions raised by the remote start controller."""


class BikeStartError(Exception):
    """Base class for all remote start errors."""


class MalformedUuid(BikeStartError, ValueError):
    """A composed service or characteristic UUID could not be parsed."""

    def __init__(self, value: str):
        super().__init__(f"Malformed UUID: {value!r}")
        self.value = value


class ConfigError(BikeStartError):
    """Configuration file or value is invalid."""
