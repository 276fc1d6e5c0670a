from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)
from tenacity.stop import stop_base

from pveqemu.errors import ConfigLockedError, OperationCancelledError

logger = logging.getLogger(__name__)

LOCK_KEY = "lock"


@dataclass(frozen=True)
class RetryPolicy:
    """How long to keep polling a locked configuration.

    ``deadline`` bounds the total time in seconds across all attempts; a wait
    that would cross it is not started.
    """

    max_attempts: int = 3
    delay: float = 8.0
    deadline: float | None = None

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay < 0:
            raise ValueError("delay must not be negative")
        if self.deadline is not None and self.deadline < 0:
            raise ValueError("deadline must not be negative")


def _is_locked(config: Mapping[str, Any]) -> bool:
    return config.get(LOCK_KEY) is not None


def _stop_before_deadline(
    policy: RetryPolicy, started: float, clock: Callable[[], float]
) -> Callable[[RetryCallState], bool]:
    deadline = policy.deadline

    def stop(retry_state: RetryCallState) -> bool:
        if deadline is None or clock() - started + policy.delay <= deadline:
            return False
        logger.warning("Lock wait deadline of %.1fs reached", deadline)
        return True

    return stop


def _log_lock_wait(
    vm_id: int, policy: RetryPolicy
) -> Callable[[RetryCallState], None]:
    def before_sleep(retry_state: RetryCallState) -> None:
        config = retry_state.outcome.result() if retry_state.outcome else {}
        logger.warning(
            "VM %d config locked (%s), retrying in %.1fs (attempt %d/%d)",
            vm_id,
            config.get(LOCK_KEY),
            policy.delay,
            retry_state.attempt_number,
            policy.max_attempts,
        )

    return before_sleep


def wait_for_unlock(
    fetch: Callable[[], Mapping[str, Any]],
    policy: RetryPolicy,
    *,
    vm_id: int,
    cancel: threading.Event | None = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> Mapping[str, Any]:
    """Fetch a config until it carries no ``lock`` marker.

    The API sets ``lock`` (e.g. ``clone``) while a long running task owns
    the VM. Fetch errors propagate unchanged. When ``cancel`` is given the
    wait happens on the event, so setting it aborts promptly.
    """
    started = clock()

    def fetch_unless_cancelled() -> Mapping[str, Any]:
        if cancel is not None and cancel.is_set():
            raise OperationCancelledError(f"Read of VM {vm_id} config cancelled")
        return fetch()

    def wait(seconds: float) -> None:
        if cancel is None:
            sleep(seconds)
        elif cancel.wait(seconds):
            raise OperationCancelledError(f"Read of VM {vm_id} config cancelled")

    stop: stop_base = stop_after_attempt(policy.max_attempts)
    if policy.deadline is not None:
        stop = stop | _stop_before_deadline(policy, started, clock)

    retrying = Retrying(
        stop=stop,
        wait=wait_fixed(policy.delay),
        retry=retry_if_result(_is_locked),
        before_sleep=_log_lock_wait(vm_id, policy),
        sleep=wait,
    )
    try:
        return retrying(fetch_unless_cancelled)
    except RetryError as exc:
        last = exc.last_attempt
        raise ConfigLockedError(
            vm_id, str(last.result().get(LOCK_KEY)), last.attempt_number
        ) from None
