"""Generic Linux client (systemd hosts)."""

from __future__ import annotations

import logging

from rangeconfig.client.backends.base import NetworkBackend
from rangeconfig.client.backends.registry import UNKNOWN, build_backend, detect_linux_backend
from rangeconfig.client.mac import get_primary_interface
from rangeconfig.client.platforms.base import PlatformClient
from rangeconfig.config import settings
from rangeconfig.errors import ClientError, MacDiscoveryError

logger = logging.getLogger(__name__)

# Tried in order until one starts
REBOOT_METHODS = [
    ["systemctl", "reboot"],
    ["shutdown", "-r", "now"],
    ["reboot"],
    ["/sbin/reboot"],
    ["init", "6"],
]


class LinuxClient(PlatformClient):
    platform = "linux"
    # Linux guests may boot long before the server: 60 x 60s
    max_retries = 60
    retry_delay = 60.0

    def set_hostname(self, hostname: str) -> None:
        logger.info(f"Setting hostname to: {hostname}")
        self._check(["hostnamectl", "set-hostname", hostname], "hostnamectl")

    def select_backend(self) -> NetworkBackend:
        name = detect_linux_backend(self._run)
        if name == UNKNOWN:
            raise ClientError("No supported network configuration method found")
        return build_backend(name, runner=self._run)

    def fallback_interface(self) -> str:
        try:
            return get_primary_interface()
        except MacDiscoveryError as e:
            raise ClientError(f"Failed to find primary interface: {e.message}") from e

    def finish(self) -> None:
        logger.info(f"Initiating system reboot in {settings.reboot_delay} seconds")
        if settings.reboot_delay > 0:
            self._sleep(settings.reboot_delay)

        errors = []
        for method in REBOOT_METHODS:
            result = self._run(method)
            if result.returncode == 0:
                return
            errors.append(f"{' '.join(method)}: exit {result.returncode}")
        raise ClientError(f"All reboot methods failed: {'; '.join(errors)}")
