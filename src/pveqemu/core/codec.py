"""Codec between device tables and the API's flat device strings.

A disk is stored remotely as
``virtio0 = "local:vm-101-disk-1,size=20G,cache=writeback"`` and a NIC as
``net0 = "virtio=AA:BB:CC:DD:EE:FF,bridge=vmbr0,tag=10"``. The first comma
separated segment is positional; every following segment is a ``key=value``
option.

Encoding depends on the action. On ``create`` the API allocates the volume
itself, so a disk is sent as ``storage:size``. On ``update`` the volume must
be named explicitly, which needs the storage backend class
(``storage_type``) and, for file based storage, the image ``format``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pveqemu.errors import DeviceValidationError, MalformedConfigError
from pveqemu.models import Device, DeviceTable, DeviceValue

from .coercion import coerce_value
from .mac import generate_mac

logger = logging.getLogger(__name__)


class Action(str, Enum):
    CREATE = "create"
    UPDATE = "update"


class DeviceKind(str, Enum):
    DISK = "disk"
    NETWORK = "network"


DEFAULT_DISK_TYPE = "virtio"

DISK_NAME_RE = re.compile(r"^(virtio)(\d+)$")
NETWORK_NAME_RE = re.compile(r"^(net)(\d+)$")

# Block storage names volumes without a vm directory or file extension.
BLOCK_STORAGE_RE = re.compile(r"(zfspool|lvm)")

DISK_IGNORED_KEYS: dict[Action, frozenset[str]] = {
    Action.CREATE: frozenset(
        {"id", "type", "storage", "storage_type", "size", "cache", "file"}
    ),
    Action.UPDATE: frozenset(
        {"id", "type", "storage", "storage_type", "size", "cache", "file", "format"}
    ),
}
NETWORK_IGNORED_KEYS = frozenset({"id", "model", "bridge", "macaddr"})


def _default_disk_ignored_keys() -> dict[Action, frozenset[str]]:
    return dict(DISK_IGNORED_KEYS)


@dataclass(frozen=True)
class CodecOptions:
    """Knobs for decoding and encoding.

    ``strict`` makes decoding reject option segments that are not
    ``key=value``; by default they are skipped with a debug log line.
    The ignored key sets list the keys consumed explicitly by the encoder
    and therefore left out of the generic option pass.
    ``locally_administered_macs`` makes generated MAC addresses unicast and
    locally administered instead of raw random bytes.
    """

    strict: bool = False
    disk_ignored_keys: Mapping[Action, frozenset[str]] = field(
        default_factory=_default_disk_ignored_keys
    )
    network_ignored_keys: frozenset[str] = NETWORK_IGNORED_KEYS
    locally_administered_macs: bool = False

    def ignored_keys(self, kind: DeviceKind, action: Action) -> frozenset[str]:
        if kind is DeviceKind.DISK:
            return self.disk_ignored_keys[action]
        return self.network_ignored_keys


@dataclass(frozen=True)
class EncodedDevice:
    """One device rendered for the API.

    ``device`` is the descriptor that was encoded, including any value the
    encoder filled in (a generated MAC address).
    """

    index: int
    name: str
    value: str
    device: Device


# Decoding


def _read_options(
    device: Device, segments: Iterable[str], source: str, strict: bool
) -> None:
    for segment in segments:
        key, sep, value = segment.partition("=")
        if not sep or not key:
            if strict:
                raise MalformedConfigError(
                    f"Malformed option {segment!r} in device string {source!r}"
                )
            logger.debug("Skipping malformed option %r in %r", segment, source)
            continue
        device[key] = coerce_value(value)


def decode_disk(value: str, *, strict: bool = False) -> Device:
    """Decode ``storage:file[,key=value...]`` into a disk descriptor."""
    primary, *options = value.split(",")
    storage, sep, file = primary.partition(":")
    if not sep or not storage:
        raise MalformedConfigError(
            f"Disk string {value!r} has no 'storage:file' primary token"
        )

    device: Device = {"storage": storage, "file": file}
    _read_options(device, options, value, strict)
    return device


def decode_network(value: str, *, strict: bool = False) -> Device:
    """Decode ``model=macaddr[,key=value...]`` into a NIC descriptor.

    A bare model name without an address is accepted as well.
    """
    primary, *options = value.split(",")
    model, sep, macaddr = primary.partition("=")
    if not model:
        raise MalformedConfigError(f"Network string {value!r} has no model token")

    device: Device = {"model": model}
    if sep:
        device["macaddr"] = macaddr
    _read_options(device, options, value, strict)
    return device


def decode_device_table(
    config: Mapping[str, Any], kind: DeviceKind, *, strict: bool = False
) -> DeviceTable:
    """Collect and decode every ``virtioN``/``netN`` entry of a flat config."""
    name_re = DISK_NAME_RE if kind is DeviceKind.DISK else NETWORK_NAME_RE
    table: DeviceTable = {}

    for key, raw in config.items():
        match = name_re.match(key)
        if not match:
            continue
        if not isinstance(raw, str):
            raise MalformedConfigError(
                f"Device {key} has a {type(raw).__name__} value, expected a string"
            )

        prefix, index = match.group(1), int(match.group(2))
        if kind is DeviceKind.DISK:
            device: Device = {"type": prefix, **decode_disk(raw, strict=strict)}
        else:
            device = decode_network(raw, strict=strict)

        if device:
            table[index] = device

    return table


# Encoding


def format_option_value(key: str, value: DeviceValue) -> str | None:
    """Render one option value, or ``None`` when it should be left out.

    False, empty strings and integers <= 0 are dropped; True becomes ``1``.
    """
    if isinstance(value, bool):
        return "1" if value else None
    if isinstance(value, int):
        return str(value) if value > 0 else None
    if isinstance(value, str):
        return value or None
    raise DeviceValidationError(
        f"Option {key!r} has unsupported type {type(value).__name__}"
    )


def device_options(
    device: Mapping[str, DeviceValue], ignored: frozenset[str]
) -> list[str]:
    options = []
    for key, value in device.items():
        if key in ignored:
            continue
        rendered = format_option_value(key, value)
        if rendered is not None:
            options.append(f"{key}={rendered}")
    return options


def _require_str(device: Mapping[str, DeviceValue], key: str, label: str) -> str:
    value = device.get(key)
    if isinstance(value, bool) or value is None or value == "":
        raise DeviceValidationError(f"{label} is missing required attribute {key!r}")
    return str(value)


def _size_token(size: str) -> str:
    return size.removesuffix("G")


def encode_disk(
    device: Device,
    index: int,
    vm_id: int,
    action: Action,
    options: CodecOptions | None = None,
) -> EncodedDevice:
    options = options or CodecOptions()
    disk_type = device.get("type", DEFAULT_DISK_TYPE)
    if not isinstance(disk_type, str) or not disk_type:
        raise DeviceValidationError(f"Disk {index} has an invalid type {disk_type!r}")
    name = f"{disk_type}{index}"

    storage = _require_str(device, "storage", f"Disk {name}")
    size = _require_str(device, "size", f"Disk {name}")

    params: list[str] = []
    if action is Action.CREATE:
        params.append(f"{storage}:{_size_token(size)}")
    else:
        storage_type = _require_str(device, "storage_type", f"Disk {name}")
        params.append(f"size={size}")

        # Volume names count from 1 while device indices count from 0.
        volume = f"vm-{vm_id}-disk-{index + 1}"
        if BLOCK_STORAGE_RE.search(storage_type):
            params.append(f"file={storage}:{volume}")
        else:
            disk_format = _require_str(device, "format", f"Disk {name}")
            params.append(f"file={storage}:{vm_id}/{volume}.{disk_format}")

    cache = device.get("cache")
    if cache not in (None, "", "none"):
        params.append(f"cache={cache}")

    params.extend(device_options(device, options.ignored_keys(DeviceKind.DISK, action)))
    return EncodedDevice(index=index, name=name, value=",".join(params), device=device)


def encode_network(
    device: Device,
    index: int,
    vm_id: int,
    options: CodecOptions | None = None,
) -> EncodedDevice:
    options = options or CodecOptions()
    name = f"net{index}"
    model = _require_str(device, "model", f"Network {name}")

    macaddr = device.get("macaddr")
    if macaddr in (None, ""):
        macaddr = generate_mac(
            vm_id, index, locally_administered=options.locally_administered_macs
        )
        device = {**device, "macaddr": macaddr}
    elif not isinstance(macaddr, str):
        raise DeviceValidationError(
            f"Network {name} has an invalid macaddr {macaddr!r}"
        )

    # The API reads "<model>=<mac>" as the positional model token.
    params = [f"{model}={macaddr}"]

    bridge = device.get("bridge")
    if bridge not in (None, "", "nat"):
        params.append(f"bridge={bridge}")

    params.extend(
        device_options(device, options.ignored_keys(DeviceKind.NETWORK, Action.CREATE))
    )
    return EncodedDevice(index=index, name=name, value=",".join(params), device=device)


def encode_device_table(
    table: DeviceTable,
    kind: DeviceKind,
    vm_id: int,
    action: Action,
    options: CodecOptions | None = None,
) -> list[EncodedDevice]:
    """Encode a whole table, validating every device before returning."""
    options = options or CodecOptions()

    if kind is DeviceKind.DISK:
        if action is Action.UPDATE and sorted(table) != list(range(len(table))):
            raise DeviceValidationError(
                "Disk indices must be contiguous from 0 to derive volume names, "
                f"got {sorted(table)}"
            )
        return [
            encode_disk(device, index, vm_id, action, options)
            for index, device in sorted(table.items())
        ]

    return [
        encode_network(device, index, vm_id, options)
        for index, device in sorted(table.items())
    ]
