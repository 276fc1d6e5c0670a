"""Tests for the create/clone/update flows against the mock API client."""

from __future__ import annotations

import threading

import pytest

from pveqemu.config import CodecConfig, DefaultsConfig, RetryConfig, Settings
from pveqemu.core import Provisioner, ProvisionState, RetryPolicy, generate_mac
from pveqemu.errors import (
    ConfigLockedError,
    DeviceValidationError,
    OperationCancelledError,
)
from pveqemu.mock_client import MockApiClient, MockApiError
from pveqemu.models import VmConfig, VmRef

TEMPLATE = VmRef(vm_id=9000, node="pve")
TEMPLATE_CONFIG = {
    "name": "template",
    "ostype": "l26",
    "memory": 1024,
    "cores": 1,
    "sockets": 1,
    "virtio0": "local-lvm:vm-9000-disk-1,size=8G",
    "net0": "virtio=62:DF:00:11:22:33,bridge=vmbr0",
}


def _client(**kwargs) -> MockApiClient:
    client = MockApiClient(**kwargs)
    client.add_vm(TEMPLATE, TEMPLATE_CONFIG)
    return client


def _call_names(client: MockApiClient) -> list[str]:
    return [name for name, _ in client.calls]


def _clone_config() -> VmConfig:
    return VmConfig(
        name="web1",
        description="web server",
        memory=4096,
        cores=4,
        storage="local-lvm",
        disks={
            0: {"storage": "local-lvm", "size": "32G", "storage_type": "lvmthin"}
        },
        networks={0: {"model": "virtio", "bridge": "vmbr0"}},
    )


def test_create():
    """Test create sends encoded parameters."""
    client = MockApiClient()
    config = VmConfig(
        name="vm1",
        cores=2,
        memory=2048,
        disks={0: {"type": "virtio", "storage": "local", "size": "20G"}},
    )
    vm_ref = VmRef(vm_id=101, node="pve")

    result = Provisioner(client).create(config, vm_ref)

    assert result.state is ProvisionState.CREATED
    assert result.path == [ProvisionState.ABSENT, ProvisionState.CREATED]
    assert result.vm_ref == vm_ref
    assert _call_names(client) == ["create_vm"]
    assert client.config_of(101)["virtio0"] == "local:20"


def test_create_invalid_device_makes_no_remote_call():
    """Test an invalid device aborts before any call."""
    client = MockApiClient()
    config = VmConfig(name="vm1", disks={0: {"size": "20G"}})

    with pytest.raises(DeviceValidationError):
        Provisioner(client).create(config, VmRef(vm_id=101, node="pve"))

    assert client.calls == []


def test_transport_errors_pass_through():
    """Test client errors are not wrapped."""
    client = _client()
    config = VmConfig(name="dup")

    with pytest.raises(MockApiError, match="already exists"):
        Provisioner(client).create(config, TEMPLATE)


def test_update():
    """Test update stores the encoded configuration."""
    client = _client()
    config = VmConfig(
        name="template",
        memory=2048,
        disks={0: {"storage": "local-lvm", "size": "16G", "storage_type": "lvm"}},
    )

    result = Provisioner(client).update(config, TEMPLATE)

    assert result.state is ProvisionState.CONFIGURED
    stored = client.config_of(9000)
    assert stored["memory"] == 2048
    assert stored["virtio0"] == "size=16G,file=local-lvm:vm-9000-disk-1"


def test_clone_waits_for_lock_then_updates():
    """Test clone waits for the lock before applying the config."""
    client = _client(clone_lock_reads=2)
    sleeps: list[float] = []
    target = VmRef(vm_id=145, node="pve2")
    config = _clone_config()

    result = Provisioner(client, sleep=sleeps.append).clone(config, TEMPLATE, target)

    assert result.state is ProvisionState.CONFIGURED
    assert result.vm_ref == target
    assert result.path == [
        ProvisionState.ABSENT,
        ProvisionState.CLONING,
        ProvisionState.LOCK_WAIT,
        ProvisionState.CONFIGURED,
    ]
    assert sleeps == [8.0, 8.0]
    assert _call_names(client) == [
        "clone_vm",
        "fetch_config",
        "fetch_config",
        "fetch_config",
        "set_config",
    ]

    clone_call = client.calls[0][1]
    assert clone_call["newid"] == 145
    assert clone_call["full"] == "1"

    stored = client.config_of(145)
    assert stored["name"] == "web1"
    assert stored["memory"] == 4096
    assert stored["virtio0"] == "size=32G,file=local-lvm:vm-145-disk-1"
    assert config.networks[0]["macaddr"] in stored["net0"]


def test_clone_validation_happens_before_clone_call():
    """Test clone validates devices before cloning."""
    client = _client()
    config = VmConfig(
        name="web1", disks={0: {"storage": "local", "size": "32G"}}
    )

    with pytest.raises(DeviceValidationError, match="storage_type"):
        Provisioner(client).clone(config, TEMPLATE, VmRef(vm_id=145, node="pve"))

    assert client.calls == []


def test_clone_lock_outlasting_budget_fails():
    """Test a lasting clone lock fails without applying config."""
    client = _client(clone_lock_reads=5)
    sleeps: list[float] = []

    with pytest.raises(ConfigLockedError):
        Provisioner(client, sleep=sleeps.append).clone(
            _clone_config(), TEMPLATE, VmRef(vm_id=145, node="pve")
        )

    assert "set_config" not in _call_names(client)
    assert sleeps == [8.0, 8.0]


def test_read_config_locked_forever():
    """Test reading a permanently locked VM fails after the budget."""
    client = _client()
    client.lock_vm(9000, "backup")
    sleeps: list[float] = []

    with pytest.raises(ConfigLockedError, match="backup"):
        Provisioner(client, sleep=sleeps.append).read_config(TEMPLATE)

    assert _call_names(client).count("fetch_config") == 3
    assert sum(sleeps) == 16.0


def test_read_config_can_be_cancelled():
    """Test a set cancel event stops the read."""
    client = _client()
    client.lock_vm(9000, "clone")
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(OperationCancelledError):
        Provisioner(client).read_config(TEMPLATE, cancel=cancel)


def test_read_config_after_create():
    """Test a created VM reads back as a definition."""
    client = MockApiClient()
    vm_ref = VmRef(vm_id=101, node="pve")
    config = VmConfig(
        name="vm1",
        qemu_os="l26",
        memory=2048,
        disks={0: {"storage": "local", "size": "20G"}},
        networks={0: {"model": "virtio", "bridge": "vmbr0", "firewall": True}},
    )
    provisioner = Provisioner(client)
    provisioner.create(config, vm_ref)

    remote = provisioner.read_config(vm_ref)

    assert remote.name == "vm1"
    assert remote.memory == 2048
    assert remote.disks[0]["storage"] == "local"
    assert remote.disks[0]["file"] == "20"
    assert remote.networks == {
        0: {
            "model": "virtio",
            "macaddr": config.networks[0]["macaddr"],
            "bridge": "vmbr0",
            "firewall": 1,
        }
    }


def test_max_vm_id():
    """Test the highest VM id is reported."""
    client = _client()
    client.add_vm(VmRef(vm_id=105, node="pve"), {"name": "a"})
    client.add_vm(VmRef(vm_id=101, node="pve"), {"name": "b"})

    assert Provisioner(client).max_vm_id() == 9000
    assert Provisioner(MockApiClient()).max_vm_id() == 0


def test_from_settings():
    """Test settings configure retry, MACs and the default node."""
    settings = Settings(
        retry=RetryConfig(max_attempts=5, delay=1.5, deadline=30),
        codec=CodecConfig(locally_administered_macs=True),
        defaults=DefaultsConfig(node="pve2"),
    )
    client = MockApiClient()

    provisioner = Provisioner.from_settings(client, settings)

    assert provisioner.retry == RetryPolicy(max_attempts=5, delay=1.5, deadline=30)

    config = VmConfig(name="vm1", networks={0: {"model": "virtio"}})
    result = provisioner.create(config, VmRef(vm_id=101))
    assert result.vm_ref.node == "pve2"
    assert client.node_of(101) == "pve2"
    mac = generate_mac(101, 0, locally_administered=True)
    assert client.config_of(101)["net0"] == f"virtio={mac}"


def test_explicit_node_wins_over_default():
    """Test a ref with a node keeps it."""
    client = MockApiClient()

    result = Provisioner(client, node="pve2").create(
        VmConfig(name="vm1"), VmRef(vm_id=101, node="pve3")
    )

    assert result.vm_ref.node == "pve3"
    assert client.node_of(101) == "pve3"


def test_clone_target_without_node_uses_default():
    """Test a clone target without node goes to the default node."""
    client = _client()

    result = Provisioner(client, node="pve2").clone(
        VmConfig(name="web1"), TEMPLATE, VmRef(vm_id=145)
    )

    assert result.vm_ref == VmRef(vm_id=145, node="pve2")
    assert client.calls[0] == (
        "clone_vm",
        {"newid": 145, "target": "pve2", "name": "web1", "full": "1"},
    )
    assert client.node_of(145) == "pve2"
