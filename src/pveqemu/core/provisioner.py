from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from pveqemu.client import ApiClient
from pveqemu.config import Settings
from pveqemu.models import FlatConfig, VmConfig, VmRef

from .codec import CodecOptions
from .retry import RetryPolicy, wait_for_unlock
from .vmspec import (
    DEFAULT_CPU,
    clone_params,
    config_from_api,
    create_params,
    update_params,
)

logger = logging.getLogger(__name__)


class ProvisionState(str, Enum):
    ABSENT = "absent"
    CREATED = "created"
    CLONING = "cloning"
    LOCK_WAIT = "lock_wait"
    CONFIGURED = "configured"


@dataclass
class ProvisionResult:
    vm_ref: VmRef
    state: ProvisionState
    params: FlatConfig
    path: list[ProvisionState] = field(default_factory=list)


class Provisioner:
    """Drive create, clone and update calls for QEMU VMs.

    All parameters are encoded before the first remote call, so an invalid
    device definition never leaves a half-applied VM behind. Failures are
    raised; client errors propagate unchanged.

    A ``VmRef`` without a node is placed on ``node``, the configured default.
    """

    def __init__(
        self,
        client: ApiClient,
        *,
        codec: CodecOptions | None = None,
        retry: RetryPolicy | None = None,
        cpu: str = DEFAULT_CPU,
        node: str = "",
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._codec = codec or CodecOptions()
        self._retry = retry or RetryPolicy()
        self._cpu = cpu
        self._node = node
        self._sleep = sleep
        self._clock = clock

    @classmethod
    def from_settings(cls, client: ApiClient, settings: Settings) -> Provisioner:
        return cls(
            client,
            codec=CodecOptions(
                strict=settings.codec.strict,
                locally_administered_macs=settings.codec.locally_administered_macs,
            ),
            retry=RetryPolicy(
                max_attempts=settings.retry.max_attempts,
                delay=settings.retry.delay,
                deadline=settings.retry.deadline,
            ),
            cpu=settings.defaults.cpu,
            node=settings.defaults.node,
        )

    @property
    def retry(self) -> RetryPolicy:
        return self._retry

    def create(self, config: VmConfig, vm_ref: VmRef) -> ProvisionResult:
        vm_ref = self._on_default_node(vm_ref)
        params = create_params(config, vm_ref.vm_id, self._codec, cpu=self._cpu)
        logger.info(
            "Creating VM %d '%s' on %s", vm_ref.vm_id, config.name, vm_ref.node
        )
        self._client.create_vm(vm_ref.node, params)
        return ProvisionResult(
            vm_ref,
            ProvisionState.CREATED,
            params,
            [ProvisionState.ABSENT, ProvisionState.CREATED],
        )

    def clone(
        self,
        config: VmConfig,
        source_ref: VmRef,
        target_ref: VmRef,
        cancel: threading.Event | None = None,
    ) -> ProvisionResult:
        """Clone ``source_ref`` into ``target_ref`` and apply ``config`` on top.

        The clone call only copies the source; resources, description and
        devices are layered on with an update once the clone lock is gone.
        """
        source_ref = self._on_default_node(source_ref)
        target_ref = self._on_default_node(target_ref)
        overrides = update_params(config, target_ref.vm_id, self._codec)
        params = clone_params(config, target_ref)

        logger.info(
            "Cloning VM %d into %d '%s' on %s",
            source_ref.vm_id,
            target_ref.vm_id,
            config.name,
            target_ref.node,
        )
        self._client.clone_vm(source_ref, params)

        logger.debug("Waiting for clone lock on VM %d to clear", target_ref.vm_id)
        self._wait_unlocked(target_ref, cancel)
        logger.info("Applying configuration to cloned VM %d", target_ref.vm_id)
        self._client.set_config(target_ref, overrides)
        return ProvisionResult(
            target_ref,
            ProvisionState.CONFIGURED,
            overrides,
            [
                ProvisionState.ABSENT,
                ProvisionState.CLONING,
                ProvisionState.LOCK_WAIT,
                ProvisionState.CONFIGURED,
            ],
        )

    def update(self, config: VmConfig, vm_ref: VmRef) -> ProvisionResult:
        vm_ref = self._on_default_node(vm_ref)
        params = update_params(config, vm_ref.vm_id, self._codec)
        logger.info("Updating VM %d configuration", vm_ref.vm_id)
        self._client.set_config(vm_ref, params)
        return ProvisionResult(
            vm_ref, ProvisionState.CONFIGURED, params, [ProvisionState.CONFIGURED]
        )

    def read_config(
        self, vm_ref: VmRef, cancel: threading.Event | None = None
    ) -> VmConfig:
        """Fetch a VM's configuration, waiting out a transient lock."""
        vm_ref = self._on_default_node(vm_ref)
        data = self._wait_unlocked(vm_ref, cancel)
        return config_from_api(data, self._codec)

    def max_vm_id(self) -> int:
        return max((int(vm["vmid"]) for vm in self._client.list_vms()), default=0)

    def _on_default_node(self, vm_ref: VmRef) -> VmRef:
        if vm_ref.node or not self._node:
            return vm_ref
        return vm_ref.model_copy(update={"node": self._node})

    def _wait_unlocked(self, vm_ref: VmRef, cancel: threading.Event | None):
        return wait_for_unlock(
            lambda: self._client.fetch_config(vm_ref),
            self._retry,
            vm_id=vm_ref.vm_id,
            cancel=cancel,
            sleep=self._sleep,
            clock=self._clock,
        )
