"""MAC address normalisation and instance matching."""

from __future__ import annotations

import logging
import re
from typing import Iterable

from rangeconfig.schemas import InstanceRecord

logger = logging.getLogger(__name__)

# Config keys holding MAC addresses, e.g. volatile.eth-0.hwaddr
HWADDR_KEY_MARKER = "hwaddr"

_MAC_RE = re.compile(r"^[0-9a-f]{2}(:[0-9a-f]{2}){5}$")


def normalize_mac(mac: str) -> str:
    """Lower-case a MAC address and convert hyphens to colons."""
    return mac.strip().lower().replace("-", ":")


def is_valid_mac(mac: str) -> bool:
    """Check a normalised MAC address (six colon-separated hex octets)."""
    return bool(_MAC_RE.match(mac))


def instance_macs(instance: InstanceRecord) -> list[str]:
    """Return every normalised MAC address declared by an instance."""
    return [
        normalize_mac(value)
        for key, value in instance.config.items()
        if HWADDR_KEY_MARKER in key and value
    ]


def find_instance_by_mac(mac: str, instances: Iterable[InstanceRecord]) -> InstanceRecord | None:
    """Find the instance owning a normalised MAC address.

    The first record in inventory order wins. Returns None when no record
    declares the address.
    """
    for instance in instances:
        if mac in instance_macs(instance):
            return instance
    return None


def find_duplicate_macs(instances: Iterable[InstanceRecord]) -> dict[str, list[str]]:
    """Map each MAC declared by more than one instance to the owning names."""
    owners: dict[str, list[str]] = {}
    for instance in instances:
        for mac in set(instance_macs(instance)):
            owners.setdefault(mac, []).append(instance.name)
    return {mac: names for mac, names in owners.items() if len(names) > 1}
