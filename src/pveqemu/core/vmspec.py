"""Translation between ``VmConfig`` and the API's flat configuration map."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pveqemu.errors import MalformedConfigError
from pveqemu.models import FlatConfig, VmConfig, VmRef

from .codec import (
    Action,
    CodecOptions,
    DeviceKind,
    decode_device_table,
    encode_device_table,
)
from .legacy import disk_table, network_table, uses_legacy_disk, uses_legacy_network

logger = logging.getLogger(__name__)

DEFAULT_CPU = "host"
ISO_SLOT = "ide2"
ISO_MEDIA_SUFFIX = ",media"


def device_params(
    config: VmConfig,
    vm_id: int,
    action: Action,
    options: CodecOptions | None = None,
) -> FlatConfig:
    """Encode disks and NICs into ``virtioN``/``netN`` parameters.

    Generated MAC addresses are stored back into ``config.networks`` so a
    caller can see which address was sent.
    """
    if uses_legacy_disk(config):
        logger.debug("VM %d: deprecated storage/diskGB fields used for disk 0", vm_id)
    if uses_legacy_network(config):
        logger.debug("VM %d: using deprecated nic/bridge/vlan fields for net0", vm_id)

    disks = encode_device_table(
        disk_table(config), DeviceKind.DISK, vm_id, action, options
    )
    nics = encode_device_table(
        network_table(config), DeviceKind.NETWORK, vm_id, action, options
    )

    if config.networks:
        config.networks = {nic.index: nic.device for nic in nics}

    params: FlatConfig = {}
    for encoded in (*disks, *nics):
        params[encoded.name] = encoded.value
    return params


def create_params(
    config: VmConfig,
    vm_id: int,
    options: CodecOptions | None = None,
    cpu: str = DEFAULT_CPU,
) -> FlatConfig:
    params: FlatConfig = {
        "vmid": vm_id,
        "name": config.name,
        "onboot": int(config.onboot),
        "ostype": config.qemu_os,
        "sockets": config.sockets,
        "cores": config.cores,
        "cpu": cpu,
        "memory": config.memory,
        "description": config.description,
    }
    if config.iso:
        params[ISO_SLOT] = f"{config.iso},media=cdrom"

    params.update(device_params(config, vm_id, Action.CREATE, options))
    return params


def update_params(
    config: VmConfig, vm_id: int, options: CodecOptions | None = None
) -> FlatConfig:
    params: FlatConfig = {
        "description": config.description,
        "onboot": int(config.onboot),
        "sockets": config.sockets,
        "cores": config.cores,
        "memory": config.memory,
    }
    params.update(device_params(config, vm_id, Action.UPDATE, options))
    return params


def clone_params(config: VmConfig, target: VmRef) -> FlatConfig:
    params: FlatConfig = {
        "newid": target.vm_id,
        "target": target.node,
        "name": config.name,
        "full": "0" if config.full_clone is False else "1",
    }
    if config.storage:
        params["storage"] = config.storage
    return params


def extract_iso(value: str) -> str:
    iso, _, _ = value.partition(ISO_MEDIA_SUFFIX)
    return iso


def _require(data: Mapping[str, Any], key: str) -> Any:
    value = data.get(key)
    if value is None:
        raise MalformedConfigError(f"Remote config is missing required field {key!r}")
    return value


def _as_int(data: Mapping[str, Any], key: str, default: int | None = None) -> int:
    value = data.get(key)
    if value is None:
        if default is None:
            raise MalformedConfigError(
                f"Remote config is missing required field {key!r}"
            )
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise MalformedConfigError(
            f"Remote config field {key!r} is not numeric: {value!r}"
        ) from exc


def config_from_api(
    data: Mapping[str, Any], options: CodecOptions | None = None
) -> VmConfig:
    """Rebuild a ``VmConfig`` from a flat configuration map."""
    options = options or CodecOptions()

    name = _require(data, "name")
    ostype = _require(data, "ostype")
    description = data.get("description") or ""

    iso = ""
    if data.get(ISO_SLOT) is not None:
        iso = extract_iso(str(data[ISO_SLOT]))

    return VmConfig(
        name=str(name),
        description=str(description).strip(),
        onboot=bool(_as_int(data, "onboot", default=0)),
        memory=_as_int(data, "memory"),
        cores=_as_int(data, "cores"),
        sockets=_as_int(data, "sockets"),
        qemu_os=str(ostype),
        iso=iso,
        full_clone=bool(_as_int(data, "fullclone", default=1)),
        disks=decode_device_table(data, DeviceKind.DISK, strict=options.strict),
        networks=decode_device_table(data, DeviceKind.NETWORK, strict=options.strict),
    )
