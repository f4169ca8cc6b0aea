"""
BikeStart - Motorcycle Remote Start over Bluetooth LE

Scans for a fixed start module, connects to it and sends the timed
ignition start / engine start / engine stop command sequence.
"""

__version__ = "0.1.0"
__description__ = (
    "Remote ignition and engine start for motorcycles over Bluetooth LE"
)

from .controller import RemoteStartController
from .settings import RemoteStartConfig, load_config
from .status import ConnectionState, ServiceStatus, StatusNotice

__all__ = [
    "RemoteStartController",
    "RemoteStartConfig",
    "load_config",
    "ConnectionState",
    "ServiceStatus",
    "StatusNotice",
]
