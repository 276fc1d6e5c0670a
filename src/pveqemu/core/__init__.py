from __future__ import annotations

from .codec import (
    Action,
    CodecOptions,
    DeviceKind,
    EncodedDevice,
    decode_device_table,
    decode_disk,
    decode_network,
    encode_device_table,
    encode_disk,
    encode_network,
)
from .coercion import coerce_value
from .legacy import disk_table, network_table
from .mac import generate_mac
from .provisioner import ProvisionResult, ProvisionState, Provisioner
from .retry import RetryPolicy, wait_for_unlock
from .vmspec import (
    clone_params,
    config_from_api,
    create_params,
    device_params,
    update_params,
)

__all__ = [
    "Action",
    "CodecOptions",
    "DeviceKind",
    "EncodedDevice",
    "ProvisionResult",
    "ProvisionState",
    "Provisioner",
    "RetryPolicy",
    "clone_params",
    "coerce_value",
    "config_from_api",
    "create_params",
    "decode_device_table",
    "decode_disk",
    "decode_network",
    "device_params",
    "disk_table",
    "encode_device_table",
    "encode_disk",
    "encode_network",
    "generate_mac",
    "network_table",
    "update_params",
    "wait_for_unlock",
]
