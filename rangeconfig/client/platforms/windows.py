"""Windows client (netsh)."""

from __future__ import annotations

import logging

from rangeconfig.client.backends.base import NetworkBackend
from rangeconfig.client.backends.netsh import NetshBackend, find_primary_adapter
from rangeconfig.client.platforms.base import PlatformClient
from rangeconfig.config import settings
from rangeconfig.errors import ClientError, MacDiscoveryError

logger = logging.getLogger(__name__)

REBOOT_COMMENT = "Range configuration complete - rebooting"


def rename_script(hostname: str) -> str:
    """PowerShell that renames the computer unless it already has the name.

    Rename-Computer fails when the new name equals the current one, which
    happens when an earlier run was interrupted after the rename.
    """
    quoted = hostname.replace("'", "''")
    return (
        f"if ($env:COMPUTERNAME -ne '{quoted}') "
        f"{{ Rename-Computer -NewName '{quoted}' -Force -ErrorAction Stop }}"
    )


class WindowsClient(PlatformClient):
    platform = "windows"

    def set_hostname(self, hostname: str) -> None:
        # Takes effect after the reboot in finish()
        logger.info(f"Setting hostname to: {hostname}")
        self._check(
            ["powershell.exe", "-NoProfile", "-NonInteractive", "-Command", rename_script(hostname)],
            "Rename-Computer",
        )

    def select_backend(self) -> NetworkBackend:
        adapter = self.options.interface or None
        return NetshBackend(runner=self._run, adapter=adapter)

    def fallback_interface(self) -> str:
        try:
            return self.options.interface or find_primary_adapter()
        except MacDiscoveryError as e:
            raise ClientError(f"Failed to find network adapter: {e.message}") from e

    def finish(self) -> None:
        logger.info(f"Initiating system reboot in {settings.reboot_delay} seconds")
        self._check(
            ["shutdown", "/r", "/t", str(settings.reboot_delay), "/c", REBOOT_COMMENT],
            "shutdown /r",
        )
