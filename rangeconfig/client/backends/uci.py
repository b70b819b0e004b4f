"""OpenWrt backend (UCI).

Cloud-init interface names are mapped onto the UCI interface aliases of a
stock OpenWrt firewall (wan, lan, lan2, ...). All changes are staged with
``uci set``/``uci delete``/``uci add_list`` and committed once for the whole
batch. Hostname is never touched here.
"""

from __future__ import annotations

import logging
import re

from rangeconfig.client.backends.base import ApplyResult, NetworkBackend, validate_config
from rangeconfig.errors import BackendError
from rangeconfig.schemas import NetworkConfig

logger = logging.getLogger(__name__)

INTERFACE_MAPPING = {
    "eth0": "wan",
    "eth-0": "wan",
    "eth1": "lan",
    "eth-1": "lan",
    "eth2": "lan2",
    "eth-2": "lan2",
    "eth3": "lan3",
    "eth-3": "lan3",
}

NETWORK_RESTART_CMD = ["/etc/init.d/network", "restart"]


def map_interface_name(name: str) -> str:
    """Map a cloud-init interface name to its UCI interface alias.

    Unlisted names drop an ``eth-``/``eth`` prefix and use the remaining
    suffix: 0 is wan, 1 is lan, anything else lan<N>.
    """
    if name in INTERFACE_MAPPING:
        return INTERFACE_MAPPING[name]
    suffix = re.sub(r"^eth-?", "", name.lower())
    if suffix == "0":
        return "wan"
    if suffix == "1":
        return "lan"
    return f"lan{suffix}"


class UciBackend(NetworkBackend):
    """Stages UCI network changes per interface and commits them together."""

    name = "uci"

    def apply(self, networks: dict[str, NetworkConfig]) -> ApplyResult:
        result = ApplyResult(backend=self.name)

        for cloud_init_name, config in networks.items():
            uci_name = map_interface_name(cloud_init_name)
            logger.info(
                f"Configuring {cloud_init_name} -> UCI {uci_name}: "
                f"dhcp={config.dhcp}, address={config.address}"
            )
            if self._should_skip(uci_name, config, result):
                continue
            try:
                self.configure_interface(uci_name, config)
            except BackendError as e:
                logger.warning(f"Failed to configure {uci_name}: {e.message}")
                self.revert(uci_name)
                result.failed[uci_name] = e.message
                continue
            result.configured.append(uci_name)

        if result.configured:
            self.commit()
        return result

    def configure_interface(self, uci_interface: str, config: NetworkConfig) -> None:
        static = validate_config(uci_interface, config)
        prefix = f"network.{uci_interface}"

        if static is None:
            self._check(["uci", "set", f"{prefix}.proto=dhcp"], interface=uci_interface)
            for option in ("ipaddr", "netmask", "gateway", "dns"):
                self._delete(f"{prefix}.{option}")
            return

        self._check(["uci", "set", f"{prefix}.proto=static"], interface=uci_interface)
        self._check(["uci", "set", f"{prefix}.ipaddr={static.ip}"], interface=uci_interface)
        self._check(["uci", "set", f"{prefix}.netmask={static.netmask}"], interface=uci_interface)

        if config.gateway:
            self._check(["uci", "set", f"{prefix}.gateway={config.gateway}"], interface=uci_interface)
        else:
            self._delete(f"{prefix}.gateway")

        self._delete(f"{prefix}.dns")
        for server in config.dns:
            self._check(["uci", "add_list", f"{prefix}.dns={server}"], interface=uci_interface)

    def _delete(self, key: str) -> None:
        # uci exits non-zero when the option does not exist
        self._run(["uci", "delete", key])

    def revert(self, uci_interface: str) -> None:
        """Drop staged changes for one interface so commit leaves it as it was."""
        self._run(["uci", "revert", f"network.{uci_interface}"])

    def commit(self) -> None:
        self._check(["uci", "commit", "network"])
        logger.info("Committed UCI network changes")

    def restart_network(self) -> None:
        self._check(NETWORK_RESTART_CMD, timeout=120)
