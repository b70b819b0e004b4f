"""Netplan backend.

Netplan is configured with a single generated document covering every
interface, applied with one ``netplan apply``. The document is validated as
a whole: any invalid interface aborts before the file is written.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from rangeconfig.client.backends.base import ApplyResult, NetworkBackend, validate_config
from rangeconfig.client.cmd import CommandRunner
from rangeconfig.errors import BackendError
from rangeconfig.schemas import NetworkConfig

logger = logging.getLogger(__name__)

NETPLAN_CONFIG_PATH = "/etc/netplan/99-rangeconfig.yaml"

HEADER = "# Generated by rangeconfig client. Local changes will be overwritten.\n"


def render_ethernet(interface: str, config: NetworkConfig) -> dict[str, Any]:
    """Netplan ``ethernets`` entry for one validated interface."""
    entry: dict[str, Any] = {"dhcp4": config.dhcp}
    routes: list[dict[str, str]] = []

    if not config.dhcp:
        entry["addresses"] = [config.address]
        if config.gateway:
            routes.append({"to": "default", "via": config.gateway})

    routes.extend({"to": route.destination, "via": route.via} for route in config.routes)
    if routes:
        entry["routes"] = routes

    if config.dns:
        entry["nameservers"] = {"addresses": list(config.dns)}

    return entry


def render_document(networks: dict[str, NetworkConfig]) -> tuple[dict[str, Any], list[str]]:
    """Build the netplan document.

    Returns:
        (document, skipped interface names)

    Raises:
        BackendError: any interface has an invalid address, gateway, DNS
            server or route
    """
    ethernets: dict[str, Any] = {}
    skipped = []
    for interface, config in networks.items():
        if not config.dhcp and not config.address:
            skipped.append(interface)
            continue
        validate_config(interface, config)
        ethernets[interface] = render_ethernet(interface, config)

    return {"network": {"version": 2, "ethernets": ethernets}}, skipped


class NetplanBackend(NetworkBackend):
    """Writes one netplan document for all interfaces and applies it."""

    name = "netplan"

    def __init__(self, runner: CommandRunner | None = None, config_path: str | Path = NETPLAN_CONFIG_PATH):
        super().__init__(runner)
        self.config_path = Path(config_path)

    def apply(self, networks: dict[str, NetworkConfig]) -> ApplyResult:
        result = ApplyResult(backend=self.name)

        document, skipped = render_document(networks)
        for interface in skipped:
            logger.info(f"No static address for {interface}, leaving it unchanged")
        result.skipped.extend(skipped)

        ethernets = document["network"]["ethernets"]
        if not ethernets:
            logger.info("Nothing to write for netplan")
            return result

        self.write(document)
        self._check(["netplan", "apply"], timeout=60)

        result.configured.extend(ethernets)
        logger.info(f"Applied netplan config for {', '.join(ethernets)}")
        return result

    def write(self, document: dict[str, Any]) -> None:
        content = HEADER + yaml.safe_dump(document, default_flow_style=False, sort_keys=False)
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            self.config_path.write_text(content)
            # netplan warns about world-readable configs
            os.chmod(self.config_path, 0o600)
        except OSError as e:
            raise BackendError(f"Failed to write netplan config {self.config_path}: {e}") from e
