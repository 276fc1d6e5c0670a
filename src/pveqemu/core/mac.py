from __future__ import annotations

import logging
import random

logger = logging.getLogger(__name__)


def generate_mac(
    vm_id: int, nic_index: int, *, locally_administered: bool = False
) -> str:
    """Derive a stable MAC address for a NIC.

    The generator is seeded with ``vm_id + nic_index``, so re-applying a
    config yields the same address every time. Not collision free: VMs whose
    id/index sums coincide get the same MAC.

    The six drawn bytes are used as they are. With ``locally_administered``
    the first octet is rewritten to a unicast, locally administered value,
    which some bridges require.
    """
    rng = random.Random(vm_id + nic_index)
    octets = bytearray(rng.randbytes(6))
    if locally_administered:
        octets[0] = (octets[0] & 0xFE) | 0x02
    mac = ":".join(f"{octet:02X}" for octet in octets)
    logger.debug("Generated MAC %s for vm %d nic %d", mac, vm_id, nic_index)
    return mac
