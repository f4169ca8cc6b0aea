"""BLE backends for the remote start controller."""

from .bleak_driver import BleakBLEAdapter, BleakLink

__all__ = ["BleakBLEAdapter", "BleakLink"]
