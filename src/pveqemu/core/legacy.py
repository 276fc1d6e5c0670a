"""Single-device fields from the pre multi-device schema.

Older definitions describe one disk through ``storage``/``diskGB`` and one
NIC through ``nic``/``bridge``/``vlan``. When the matching device table is
empty these fields are turned into an index 0 entry; a non-empty table
always wins and the deprecated fields are ignored.
"""

from __future__ import annotations

from pveqemu.models import Device, DeviceTable, VmConfig

from .codec import DEFAULT_DISK_TYPE


def _format_size(size: float) -> str:
    return f"{size:g}G"


def disk_table(config: VmConfig) -> DeviceTable:
    if config.disks or not config.storage:
        return config.disks

    device: Device = {
        "type": DEFAULT_DISK_TYPE,
        "storage": config.storage,
        "size": _format_size(config.disk_size),
    }
    return {0: device}


def network_table(config: VmConfig) -> DeviceTable:
    if config.networks or not config.nic_model:
        return config.networks

    device: Device = {"model": config.nic_model, "bridge": config.bridge}
    if config.vlan_tag > 0:
        device["tag"] = config.vlan_tag
    return {0: device}


def uses_legacy_disk(config: VmConfig) -> bool:
    return not config.disks and bool(config.storage)


def uses_legacy_network(config: VmConfig) -> bool:
    return not config.networks and bool(config.nic_model)
