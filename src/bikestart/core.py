"""
Core constants for the motorcycle remote start controller.

These are the built-in configuration values. Any of them can be overridden
through the JSON config file (see ``settings.py``).
"""

# Fixed address of the start module fitted to the motorcycle
DEVICE_ADDRESS = "00:11:22:33:44:55"

# Base UUID template; characters 4..7 are replaced by a 4-digit fragment
BASE_UUID = "00000000-0000-1000-8000-00805f9b34fb"
SERVICE_UUID_FRAGMENT = "ffe0"
CHARACTERISTIC_UUID_FRAGMENT = "ffe1"

# Every command is sent as password + opcode
DEVICE_PASSWORD = "123456"
COMMAND_IGNITION_START = "IGN_ON"
COMMAND_ENGINE_START = "ENG_START"
COMMAND_ENGINE_STOP = "ENG_STOP"

# Delays in (fractional) seconds
ENGINE_START_DELAY = "2.0"
ENGINE_START_DURATION = "5.0"

# Reconnection backoff (seconds)
RESTART_BACKOFF_BASE = 1.0
RESTART_BACKOFF_CAP = 30.0
