"""In-memory stand-in for the Proxmox API client, for development and tests."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pveqemu.models import FlatConfig, VmRef

logger = logging.getLogger(__name__)

CLONE_LOCK = "clone"


class MockApiError(Exception):
    """Raised for requests the mock cannot serve, like an unknown VM id."""


@dataclass
class _MockVm:
    node: str
    config: dict[str, Any]
    status: str = "stopped"
    lock: str | None = None
    locked_reads: int | None = 0


@dataclass
class MockApiClient:
    """Stores flat configs per VM id and records every call.

    ``clone_lock_reads`` is the number of ``fetch_config`` calls that still
    report ``lock: clone`` after a clone, mimicking the API while it copies
    disks. ``lock_vm`` locks a VM explicitly, optionally forever.
    """

    clone_lock_reads: int = 0
    calls: list[tuple[str, Any]] = field(default_factory=list)
    _vms: dict[int, _MockVm] = field(default_factory=dict)

    def add_vm(self, vm_ref: VmRef, config: Mapping[str, Any]) -> None:
        self._vms[vm_ref.vm_id] = _MockVm(node=vm_ref.node, config=dict(config))

    def lock_vm(self, vm_id: int, lock: str, reads: int | None = None) -> None:
        vm = self._get(vm_id)
        vm.lock = lock
        vm.locked_reads = reads

    def config_of(self, vm_id: int) -> dict[str, Any]:
        return dict(self._get(vm_id).config)

    def node_of(self, vm_id: int) -> str:
        return self._get(vm_id).node

    def fetch_config(self, vm_ref: VmRef) -> Mapping[str, Any]:
        self.calls.append(("fetch_config", vm_ref.vm_id))
        vm = self._get(vm_ref.vm_id)
        config = dict(vm.config)
        if vm.lock is None:
            return config

        config["lock"] = vm.lock
        if vm.locked_reads is not None:
            vm.locked_reads -= 1
            if vm.locked_reads <= 0:
                logger.debug("Mock VM %d unlocked", vm_ref.vm_id)
                vm.lock = None
        return config

    def fetch_state(self, vm_ref: VmRef) -> Mapping[str, Any]:
        self.calls.append(("fetch_state", vm_ref.vm_id))
        return {"status": self._get(vm_ref.vm_id).status}

    def create_vm(self, node: str, params: FlatConfig) -> str:
        self.calls.append(("create_vm", dict(params)))
        config = dict(params)
        vm_id = int(config.pop("vmid"))
        if vm_id in self._vms:
            raise MockApiError(f"VM {vm_id} already exists")
        self._vms[vm_id] = _MockVm(node=node, config=config)
        logger.debug("Mock created VM %d on %s", vm_id, node)
        return f"UPID:{node}:qmcreate:{vm_id}"

    def clone_vm(self, source_ref: VmRef, params: FlatConfig) -> str:
        self.calls.append(("clone_vm", dict(params)))
        source = self._get(source_ref.vm_id)
        vm_id = int(params["newid"])
        if vm_id in self._vms:
            raise MockApiError(f"VM {vm_id} already exists")

        config = dict(source.config)
        config["name"] = params.get("name", config.get("name"))
        node = str(params.get("target") or source.node)
        clone = _MockVm(node=node, config=config)
        if self.clone_lock_reads > 0:
            clone.lock = CLONE_LOCK
            clone.locked_reads = self.clone_lock_reads
        self._vms[vm_id] = clone
        logger.debug("Mock cloned VM %d into %d", source_ref.vm_id, vm_id)
        return f"UPID:{node}:qmclone:{source_ref.vm_id}"

    def set_config(self, vm_ref: VmRef, params: FlatConfig) -> None:
        self.calls.append(("set_config", dict(params)))
        vm = self._get(vm_ref.vm_id)
        if vm.lock is not None:
            raise MockApiError(f"VM {vm_ref.vm_id} is locked ({vm.lock})")
        vm.config.update(params)

    def list_vms(self) -> list[Mapping[str, Any]]:
        self.calls.append(("list_vms", None))
        return [
            {"vmid": vm_id, "name": vm.config.get("name", ""), "status": vm.status}
            for vm_id, vm in sorted(self._vms.items())
        ]

    def _get(self, vm_id: int) -> _MockVm:
        try:
            return self._vms[vm_id]
        except KeyError:
            raise MockApiError(f"VM {vm_id} does not exist") from None
