from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from pveqemu.models import FlatConfig, VmRef


class ApiClient(Protocol):
    """The slice of the Proxmox API client used by pveqemu.

    Authentication, sessions and HTTP transport stay with the implementation;
    its errors are passed through untouched.
    """

    def fetch_config(self, vm_ref: VmRef) -> Mapping[str, Any]: ...

    def fetch_state(self, vm_ref: VmRef) -> Mapping[str, Any]: ...

    def create_vm(self, node: str, params: FlatConfig) -> Any: ...

    def clone_vm(self, source_ref: VmRef, params: FlatConfig) -> Any: ...

    def set_config(self, vm_ref: VmRef, params: FlatConfig) -> Any: ...

    def list_vms(self) -> list[Mapping[str, Any]]: ...
