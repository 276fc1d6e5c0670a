from __future__ import annotations

import random
import re

from pveqemu.core import generate_mac

MAC_RE = re.compile(r"^([0-9A-F]{2}:){5}[0-9A-F]{2}$")


def test_mac_is_deterministic():
    """Test the same VM and index give the same MAC."""
    assert generate_mac(101, 0) == generate_mac(101, 0)
    assert generate_mac(2048, 3) == generate_mac(2048, 3)


def test_mac_format_is_uppercase_colon_hex():
    """Test MACs are uppercase colon separated hex."""
    for vm_id, index in [(0, 0), (101, 0), (101, 1), (99999, 7)]:
        assert MAC_RE.match(generate_mac(vm_id, index))


def test_mac_uses_drawn_bytes_unchanged():
    """Test the drawn bytes are formatted as they are."""
    rng = random.Random(101)
    expected = ":".join(f"{octet:02X}" for octet in rng.randbytes(6))
    assert generate_mac(101, 0) == expected


def test_locally_administered_mac():
    """Test the option only rewrites the first octet."""
    mac = generate_mac(101, 0, locally_administered=True)
    first_octet = int(mac[:2], 16)
    assert first_octet & 0x01 == 0
    assert first_octet & 0x02 == 0x02
    assert mac[2:] == generate_mac(101, 0)[2:]


def test_nics_of_one_vm_get_different_macs():
    """Test NICs of one VM get distinct MACs."""
    assert generate_mac(101, 0) != generate_mac(101, 1)


def test_equal_id_index_sums_collide():
    """Test equal id and index sums share a seed."""
    # Known limitation: the seed is vm_id + nic_index.
    assert generate_mac(100, 1) == generate_mac(101, 0)
