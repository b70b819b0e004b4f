"""Cloud-init network declaration parsing.

Instances carry their network declaration in the ``cloud-init.network-config``
config key, either as the literal string ``DHCP`` or as a netplan v2 style
document::

    version: 2
    ethernets:
      eth-0:
        dhcp4: false
        addresses: [192.168.1.15/24]
        routes:
          - {to: default, via: 192.168.1.1}
        nameservers:
          addresses: [192.168.1.1]

The document is reduced to one canonical NetworkConfig per declared
interface. Parse failures never fail the request; they degrade to an empty
map, which clients treat as DHCP.
"""

from __future__ import annotations

import logging
from typing import Any

import yaml

from rangeconfig.schemas import ConfigurationResponse, InstanceRecord, NetworkConfig, Route

logger = logging.getLogger(__name__)

NETWORK_CONFIG_KEY = "cloud-init.network-config"

DEFAULT_ROUTE_DESTINATIONS = ("default", "0.0.0.0/0")


def _ethernets(document: Any) -> dict[str, Any] | None:
    """Locate the ethernets mapping, with or without the ``network:`` wrapper."""
    if not isinstance(document, dict):
        return None
    network = document.get("network")
    if isinstance(network, dict) and "ethernets" in network:
        document = network
    ethernets = document.get("ethernets")
    if ethernets is None:
        return {}
    if not isinstance(ethernets, dict):
        return None
    return ethernets


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "on", "1")
    return bool(value)


def _parse_ethernet(iface: str, eth: dict[str, Any], instance_name: str) -> NetworkConfig:
    config = NetworkConfig(dhcp=_as_bool(eth.get("dhcp4", False)))

    addresses = eth.get("addresses") or []
    if isinstance(addresses, list) and addresses:
        config.address = str(addresses[0])

    gateway = eth.get("gateway4")
    if gateway:
        config.gateway = str(gateway)

    for route in eth.get("routes") or []:
        if not isinstance(route, dict) or not route.get("to") or not route.get("via"):
            logger.warning(f"Skipping incomplete route {route!r} on {instance_name}/{iface}")
            continue
        to = str(route["to"])
        via = str(route["via"])
        if to in DEFAULT_ROUTE_DESTINATIONS:
            if config.gateway is None:
                config.gateway = via
            continue
        config.routes.append(Route(destination=to, via=via))

    nameservers = eth.get("nameservers") or {}
    if isinstance(nameservers, dict):
        config.dns = [str(addr) for addr in nameservers.get("addresses") or []]

    return config


def parse_network_declaration(raw: str | None, instance_name: str = "") -> dict[str, NetworkConfig]:
    """Parse a raw network declaration into ``{interface: NetworkConfig}``.

    Args:
        raw: Value of the declaration field (may be None or empty)
        instance_name: Used for log context only

    Returns:
        Interface map in declaration order. Empty for ``DHCP``, missing
        declarations and unparseable documents.
    """
    if raw is None or not raw.strip():
        return {}

    if raw.strip().upper() == "DHCP":
        return {}

    try:
        document = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        logger.warning(f"Failed to parse cloud-init config for {instance_name}: {e}")
        return {}

    ethernets = _ethernets(document)
    if ethernets is None:
        logger.warning(f"Unexpected cloud-init config structure for {instance_name}")
        return {}

    networks: dict[str, NetworkConfig] = {}
    for iface, eth in ethernets.items():
        if not isinstance(eth, dict):
            # A bare "eth0:" key parses as None
            eth = {}
        networks[str(iface)] = _parse_ethernet(str(iface), eth, instance_name)
    return networks


def build_configuration(instance: InstanceRecord) -> ConfigurationResponse:
    """Assemble the response for a matched instance."""
    networks = parse_network_declaration(instance.config.get(NETWORK_CONFIG_KEY), instance.name)

    if networks:
        primary = next(iter(networks.values()))
    else:
        primary = NetworkConfig(dhcp=True)

    return ConfigurationResponse(hostname=instance.name, network=primary, networks=networks)
