from __future__ import annotations

from pydantic import BaseModel, Field

from .device import DeviceTable


class VmRef(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    vm_id: int = Field(ge=0)
    node: str = ""


class VmConfig(BaseModel):
    """Structured definition of one QEMU virtual machine.

    Accepts both the Python field names and the historical JSON keys
    (``desc``, ``os``, ``disk``, ``network``, ``nic``, ``vlan``, ...).
    ``nic_model``, ``bridge``, ``vlan_tag`` and ``disk_size`` describe a single
    implicit NIC/disk and only apply while the matching device table is empty.
    """

    model_config = {"extra": "forbid", "populate_by_name": True}

    name: str
    description: str = Field(default="", alias="desc")
    onboot: bool = False
    memory: int = Field(default=512, ge=0)
    sockets: int = Field(default=1, ge=0)
    cores: int = Field(default=1, ge=0)
    qemu_os: str = Field(default="other", alias="os")
    iso: str = ""
    storage: str = ""
    full_clone: bool | None = Field(default=None, alias="fullclone")
    disks: DeviceTable = Field(default_factory=dict, alias="disk")
    networks: DeviceTable = Field(default_factory=dict, alias="network")

    # Deprecated single-device fields.
    nic_model: str = Field(default="", alias="nic")
    bridge: str = ""
    vlan_tag: int = Field(default=-1, alias="vlan")
    disk_size: float = Field(default=0, ge=0, alias="diskGB")
