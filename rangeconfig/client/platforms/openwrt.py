"""OpenWrt client (UCI)."""

from __future__ import annotations

import logging

from rangeconfig.client.backends.base import NetworkBackend
from rangeconfig.client.backends.uci import UciBackend
from rangeconfig.client.platforms.base import PlatformClient
from rangeconfig.errors import BackendError

logger = logging.getLogger(__name__)


class OpenWrtClient(PlatformClient):
    platform = "openwrt"
    # LAN side of the firewall carries the registered MAC
    default_interface = "eth1"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._backend: UciBackend | None = None

    def set_hostname(self, hostname: str) -> None:
        logger.info(f"Leaving hostname unchanged on OpenWrt (instance {hostname})")

    def select_backend(self) -> NetworkBackend:
        if self._backend is None:
            self._backend = UciBackend(runner=self._run)
        return self._backend

    def fallback_interface(self) -> str:
        # Maps to the UCI "lan" interface
        return "eth1"

    def finish(self) -> None:
        logger.info("Restarting network service")
        try:
            self.select_backend().restart_network()
        except BackendError as e:
            logger.warning(f"Failed to restart network: {e.message}")
            logger.warning("You may need to restart the network manually or reboot.")
            return
        logger.info("Network service restarted successfully")
