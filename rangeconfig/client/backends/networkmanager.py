"""NetworkManager backend (nmcli)."""

from __future__ import annotations

import logging

from rangeconfig.client.backends.base import ApplyResult, NetworkBackend, validate_config
from rangeconfig.errors import BackendError
from rangeconfig.schemas import NetworkConfig

logger = logging.getLogger(__name__)

PROFILE_PREFIX = "rangeconfig-"


def _split_terse(line: str) -> list[str]:
    """Split an ``nmcli -t`` line on unescaped colons."""
    fields = []
    current = []
    escaped = False
    for char in line:
        if escaped:
            current.append(char)
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == ":":
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
    fields.append("".join(current))
    return fields


def format_routes(config: NetworkConfig) -> str:
    """ipv4.routes value: "dest next-hop, dest next-hop"; empty clears."""
    return ", ".join(f"{route.destination} {route.via}" for route in config.routes)


class NetworkManagerBackend(NetworkBackend):
    """Applies configuration by modifying one connection profile per interface."""

    name = "networkmanager"

    def apply(self, networks: dict[str, NetworkConfig]) -> ApplyResult:
        result = ApplyResult(backend=self.name)
        for interface, config in networks.items():
            if self._should_skip(interface, config, result):
                continue
            try:
                self.configure_interface(interface, config)
            except BackendError as e:
                logger.error(f"Failed to configure {interface}: {e.message}")
                result.failed[interface] = e.message
                continue
            result.configured.append(interface)
        return result

    def list_connections(self) -> list[tuple[str, str]]:
        """Return (profile name, bound device) pairs."""
        output = self._check(["nmcli", "-t", "-f", "NAME,DEVICE", "connection", "show"]).stdout
        connections = []
        for line in output.strip().splitlines():
            fields = _split_terse(line)
            if len(fields) >= 2:
                connections.append((fields[0], fields[1]))
            elif fields and fields[0]:
                connections.append((fields[0], ""))
        return connections

    def get_connection_for_interface(self, interface: str) -> str:
        """Find the profile bound to ``interface``, else one named after it, else create one."""
        connections = self.list_connections()

        for name, device in connections:
            if device == interface:
                return name

        for name, _device in connections:
            if name == interface:
                return name

        # Profiles from an earlier run are not bound while the device is down
        profile = f"{PROFILE_PREFIX}{interface}"
        for name, _device in connections:
            if name == profile:
                return name

        logger.info(f"Creating NetworkManager connection {profile} for {interface}")
        self._check(
            ["nmcli", "connection", "add", "type", "ethernet", "con-name", profile, "ifname", interface],
            interface=interface,
        )
        return profile

    def configure_interface(self, interface: str, config: NetworkConfig) -> None:
        static = validate_config(interface, config)
        connection = self.get_connection_for_interface(interface)
        dns = ",".join(config.dns)

        if static is None:
            settings_args = [
                "ipv4.method", "auto",
                "ipv4.addresses", "",
                "ipv4.gateway", "",
                "ipv4.dns", dns,
            ]
        else:
            settings_args = [
                "ipv4.method", "manual",
                "ipv4.addresses", static.cidr,
                "ipv4.gateway", config.gateway or "",
                "ipv4.dns", dns,
            ]

        self._check(["nmcli", "connection", "modify", connection, *settings_args], interface=interface)

        # Replaces the whole route list; an empty value clears it
        self._check(
            ["nmcli", "connection", "modify", connection, "ipv4.routes", format_routes(config)],
            interface=interface,
        )

        self._check(["nmcli", "connection", "up", connection], interface=interface, timeout=60)
        logger.info(f"Configured {interface} via NetworkManager connection {connection}")
