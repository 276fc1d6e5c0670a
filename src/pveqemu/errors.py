"""Exceptions raised by pveqemu.

Transport errors coming from the API client are never wrapped; they
propagate to the caller as-is.
"""

from __future__ import annotations


class PveQemuError(Exception):
    """Base class for pveqemu failures."""


class ConfigLockedError(PveQemuError):
    """Remote configuration still locked after the retry budget."""

    def __init__(self, vm_id: int, lock: str, attempts: int) -> None:
        self.vm_id = vm_id
        self.lock = lock
        self.attempts = attempts
        super().__init__(
            f"VM {vm_id} still locked ({lock}) after {attempts} attempt(s), "
            "could not obtain config"
        )


class OperationCancelledError(PveQemuError):
    """Cancellation token was set while waiting on a locked config."""


class MalformedConfigError(PveQemuError):
    """Remote flat configuration is missing a field or has an unexpected shape."""


class DeviceValidationError(PveQemuError):
    """Device descriptor cannot be encoded for the requested action."""
