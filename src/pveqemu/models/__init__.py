"""Data models for pveqemu."""

from pveqemu.models.device import (
    Device,
    DeviceTable,
    DeviceValue,
    FlatConfig,
    Scalar,
)
from pveqemu.models.vm import VmConfig, VmRef

__all__ = [
    "Device",
    "DeviceTable",
    "DeviceValue",
    "FlatConfig",
    "Scalar",
    "VmConfig",
    "VmRef",
]
