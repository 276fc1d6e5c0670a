"""pveqemu - Proxmox QEMU VM definitions: device codec and provisioning flows."""

from __future__ import annotations

from importlib.metadata import version

from .client import ApiClient
from .config import Settings, get_settings
from .core import (
    Action,
    CodecOptions,
    Provisioner,
    ProvisionResult,
    RetryPolicy,
    config_from_api,
)
from .errors import (
    ConfigLockedError,
    DeviceValidationError,
    MalformedConfigError,
    OperationCancelledError,
    PveQemuError,
)
from .models import Device, DeviceTable, VmConfig, VmRef

__all__ = [
    "Action",
    "ApiClient",
    "CodecOptions",
    "ConfigLockedError",
    "Device",
    "DeviceTable",
    "DeviceValidationError",
    "MalformedConfigError",
    "OperationCancelledError",
    "ProvisionResult",
    "Provisioner",
    "PveQemuError",
    "RetryPolicy",
    "Settings",
    "VmConfig",
    "VmRef",
    "__version__",
    "config_from_api",
    "get_settings",
]

__version__ = version("pveqemu")
