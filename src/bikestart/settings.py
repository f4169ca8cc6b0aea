"""
Configuration for the remote start controller.

Built-in values live in ``core.py``. A JSON file in the user's config
directory may override any of them, e.g.::

    {
        "device_address": "C8:2B:96:A1:5E:02",
        "password": "987654",
        "engine_start_delay": "1.5"
    }
"""

import json
import logging
import os
import platform
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional, Union

from . import core
from .exceptions import ConfigError
from .protocol import Opcode
from .scheduler import seconds_to_millis
from .uuids import FRAGMENT_LENGTH, compose_uuid

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config.json"


@dataclass(frozen=True)
class RemoteStartConfig:
    """Static device and timing configuration."""

    device_address: str = core.DEVICE_ADDRESS
    base_uuid: str = core.BASE_UUID
    service_uuid_fragment: str = core.SERVICE_UUID_FRAGMENT
    characteristic_uuid_fragment: str = core.CHARACTERISTIC_UUID_FRAGMENT
    password: str = core.DEVICE_PASSWORD
    ignition_start_command: str = core.COMMAND_IGNITION_START
    engine_start_command: str = core.COMMAND_ENGINE_START
    engine_stop_command: str = core.COMMAND_ENGINE_STOP
    engine_start_delay: Union[str, float] = core.ENGINE_START_DELAY
    engine_start_duration: Union[str, float] = core.ENGINE_START_DURATION
    restart_backoff_base: float = core.RESTART_BACKOFF_BASE
    restart_backoff_cap: float = core.RESTART_BACKOFF_CAP

    @property
    def service_uuid(self) -> str:
        """Full UUID of the start module's GATT service."""
        return compose_uuid(self.base_uuid, self.service_uuid_fragment)

    @property
    def characteristic_uuid(self) -> str:
        """Full UUID of the command characteristic."""
        return compose_uuid(self.base_uuid, self.characteristic_uuid_fragment)

    @property
    def engine_start_delay_ms(self) -> int:
        """Delay between ignition start and engine start."""
        return seconds_to_millis(self.engine_start_delay)

    @property
    def engine_start_duration_ms(self) -> int:
        """How long the engine start command is held before engine stop."""
        return seconds_to_millis(self.engine_start_duration)

    def opcode(self, opcode: Opcode) -> str:
        """Get the configured opcode string for a command."""
        return {
            Opcode.IGNITION_START: self.ignition_start_command,
            Opcode.ENGINE_START: self.engine_start_command,
            Opcode.ENGINE_STOP: self.engine_stop_command,
        }[opcode]

    def validate(self) -> None:
        """Check values that would otherwise only fail once connected.

        Raises:
            ConfigError: If any value is unusable
        """
        for name in (
            "device_address",
            "base_uuid",
            "password",
            "ignition_start_command",
            "engine_start_command",
            "engine_stop_command",
        ):
            value = getattr(self, name)
            if not isinstance(value, str):
                raise ConfigError(f"{name} must be a string: {value!r}")

        if not self.device_address:
            raise ConfigError("device_address must not be empty")

        for name in ("service_uuid_fragment", "characteristic_uuid_fragment"):
            value = getattr(self, name)
            if not isinstance(value, str) or len(value) != FRAGMENT_LENGTH:
                raise ConfigError(
                    f"{name} must be exactly {FRAGMENT_LENGTH} characters: {value!r}"
                )

        # Raises ConfigError for bad delays
        self.engine_start_delay_ms
        self.engine_start_duration_ms

        for name in ("restart_backoff_base", "restart_backoff_cap"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or value < 0:
                raise ConfigError(f"{name} must be a non-negative number: {value!r}")


def get_config_file() -> Path:
    """Get the standard location of the config file."""
    # Check XDG_CONFIG_HOME first (Linux/Unix standard)
    config_dir = os.environ.get("XDG_CONFIG_HOME")
    if config_dir:
        config_path = Path(config_dir) / "bikestart"
    else:
        system = platform.system()
        if system == "Darwin":  # macOS
            config_path = Path.home() / "Library" / "Application Support" / "bikestart"
        elif system == "Windows":
            appdata = os.environ.get(
                "APPDATA", str(Path.home() / "AppData" / "Roaming")
            )
            config_path = Path(appdata) / "bikestart"
        else:  # Linux/Unix fallback
            config_path = Path.home() / ".config" / "bikestart"

    return config_path / CONFIG_FILE_NAME


def load_config(path: Optional[Path] = None) -> RemoteStartConfig:
    """Load configuration, applying overrides from a JSON file.

    Args:
        path: Explicit config file. If None, the standard location is used
            and a missing file means built-in defaults.

    Returns:
        Validated configuration

    Raises:
        ConfigError: If the file is unreadable, malformed or has bad values
    """
    explicit = path is not None
    config_file = Path(path) if explicit else get_config_file()

    if not config_file.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {config_file}")
        logger.debug(f"No config file at {config_file}, using defaults")
        config = RemoteStartConfig()
        config.validate()
        return config

    try:
        with open(config_file, "r") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Failed to read config file {config_file}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_file} must contain a JSON object")

    known = {field.name for field in fields(RemoteStartConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")

    config = RemoteStartConfig(**data)
    config.validate()
    logger.info(f"Loaded config from {config_file}")
    return config
