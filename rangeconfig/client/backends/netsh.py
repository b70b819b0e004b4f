"""Windows backend (netsh).

Windows guests are configured on exactly one adapter, using the first
(primary) entry of the interface map.
"""

from __future__ import annotations

import logging

from rangeconfig.client.backends.base import ApplyResult, NetworkBackend, validate_config
from rangeconfig.client.cmd import CommandRunner
from rangeconfig.client.mac import LocalInterface, list_interfaces
from rangeconfig.errors import BackendError, MacDiscoveryError
from rangeconfig.schemas import NetworkConfig

logger = logging.getLogger(__name__)

WIRED_NAME_HINTS = ("ethernet", "local area")


def find_primary_adapter(interfaces: list[LocalInterface] | None = None) -> str:
    """Pick the adapter to configure.

    Prefers a wired-looking adapter ("Ethernet", "Local Area Connection"),
    otherwise the first non-loopback adapter with a hardware address.
    """
    if interfaces is None:
        interfaces = list_interfaces()
    candidates = [i for i in interfaces if not i.is_loopback and i.has_mac]

    for iface in candidates:
        lowered = iface.name.lower()
        if any(hint in lowered for hint in WIRED_NAME_HINTS):
            return iface.name

    if candidates:
        return candidates[0].name
    raise MacDiscoveryError("No suitable network adapter found")


class NetshBackend(NetworkBackend):
    """Sets address and DNS on the primary adapter with netsh."""

    name = "netsh"

    def __init__(self, runner: CommandRunner | None = None, adapter: str | None = None):
        super().__init__(runner)
        self._adapter = adapter

    @property
    def adapter(self) -> str:
        if self._adapter is None:
            self._adapter = find_primary_adapter()
        return self._adapter

    def apply(self, networks: dict[str, NetworkConfig]) -> ApplyResult:
        result = ApplyResult(backend=self.name)

        if networks:
            source, config = next(iter(networks.items()))
            if len(networks) > 1:
                logger.warning(
                    f"Windows configures a single adapter; using {source} and ignoring "
                    f"{', '.join(list(networks)[1:])}"
                )
        else:
            source, config = "default", NetworkConfig(dhcp=True)

        adapter = self.adapter
        if self._should_skip(adapter, config, result):
            return result

        try:
            if config.dhcp:
                self.configure_dhcp(adapter)
            else:
                self.configure_static(adapter, config)
        except BackendError as e:
            logger.error(f"Failed to configure {adapter}: {e.message}")
            result.failed[adapter] = e.message
            return result

        if config.routes:
            logger.warning(f"Ignoring {len(config.routes)} custom route(s) from {source}; netsh backend applies the gateway only")

        result.configured.append(adapter)
        return result

    def configure_dhcp(self, adapter: str) -> None:
        self._check(["netsh", "interface", "ip", "set", "address", adapter, "dhcp"], interface=adapter)
        self._check(["netsh", "interface", "ip", "set", "dns", adapter, "dhcp"], interface=adapter)
        logger.info(f"Configured {adapter} for DHCP")

    def configure_static(self, adapter: str, config: NetworkConfig) -> None:
        static = validate_config(adapter, config)

        cmd = ["netsh", "interface", "ip", "set", "address", adapter, "static", static.ip, static.netmask]
        if config.gateway:
            cmd.append(config.gateway)
        self._check(cmd, interface=adapter)

        if config.dns:
            self._check(
                ["netsh", "interface", "ip", "set", "dns", adapter, "static", config.dns[0]],
                interface=adapter,
            )
            for index, server in enumerate(config.dns[1:], start=2):
                self._check(
                    ["netsh", "interface", "ip", "add", "dns", adapter, server, f"index={index}"],
                    interface=adapter,
                )

        logger.info(f"Configured {adapter} with static address {static.cidr}")
