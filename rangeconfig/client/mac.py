"""Local network interface discovery."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import psutil

from rangeconfig.errors import MacDiscoveryError

logger = logging.getLogger(__name__)

_NULL_MAC = "00:00:00:00:00:00"


@dataclass(frozen=True)
class LocalInterface:
    """A local interface as seen by the client."""
    name: str
    mac: str  # Lower-case, colon separated; "" if none
    is_up: bool

    @property
    def is_loopback(self) -> bool:
        lowered = self.name.lower()
        return lowered == "lo" or lowered.startswith("lo0") or "loopback" in lowered

    @property
    def has_mac(self) -> bool:
        return bool(self.mac) and self.mac != _NULL_MAC


def list_interfaces() -> list[LocalInterface]:
    """Enumerate interfaces in OS order with their hardware address and state."""
    addrs = psutil.net_if_addrs()
    stats = psutil.net_if_stats()

    interfaces = []
    for name, entries in addrs.items():
        mac = ""
        for entry in entries:
            if entry.family == psutil.AF_LINK and entry.address:
                mac = entry.address.lower().replace("-", ":")
                break
        stat = stats.get(name)
        interfaces.append(LocalInterface(name=name, mac=mac, is_up=bool(stat and stat.isup)))
    return interfaces


def get_primary_mac() -> str:
    """MAC of the first interface that is up, not loopback, and has a hardware address."""
    for iface in list_interfaces():
        if iface.is_loopback or not iface.has_mac or not iface.is_up:
            continue
        return iface.mac
    raise MacDiscoveryError("No valid network interface found")


def get_mac_by_name(name: str) -> str:
    """MAC address of a specific interface."""
    for iface in list_interfaces():
        if iface.name == name:
            if not iface.has_mac:
                raise MacDiscoveryError(f"Interface {name} has no MAC address")
            return iface.mac
    raise MacDiscoveryError(f"Interface {name} not found")


def get_primary_interface() -> str:
    """Name of the primary interface for single-network configuration.

    Prefers an up ``eth*``/``en*`` interface, then any non-loopback
    interface with a hardware address.
    """
    interfaces = [i for i in list_interfaces() if not i.is_loopback and i.has_mac]

    for iface in interfaces:
        if iface.is_up and iface.name.startswith(("eth", "en")):
            return iface.name

    if interfaces:
        return interfaces[0].name
    raise MacDiscoveryError("No suitable network interface found")
