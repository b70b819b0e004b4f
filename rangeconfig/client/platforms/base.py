"""Shared client run sequence.

marker check -> MAC discovery -> startup jitter -> fetch with retry ->
hostname -> backend apply -> marker -> reboot/restart
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from random import Random

import httpx

from rangeconfig.client.backends.base import ApplyResult, NetworkBackend
from rangeconfig.client.cmd import CommandRunner, command_output, run_cmd
from rangeconfig.client.delivery import Sleeper, request_config_with_retry, startup_jitter
from rangeconfig.client.mac import get_mac_by_name, get_primary_mac
from rangeconfig.client.marker import DEFAULT_MARKER_DIRS, Marker
from rangeconfig.config import settings
from rangeconfig.errors import BackendError, ClientError, MacDiscoveryError, RetriesExhaustedError
from rangeconfig.schemas import ConfigurationResponse, NetworkConfig

logger = logging.getLogger(__name__)


@dataclass
class ClientOptions:
    server_url: str
    interface: str | None = None
    no_delay: bool = False


class PlatformClient(ABC):
    """One configuration run on one platform."""

    platform: str = ""
    max_retries: int = 10
    retry_delay: float = 15.0
    default_interface: str | None = None

    def __init__(
        self,
        options: ClientOptions,
        marker: Marker | None = None,
        runner: CommandRunner | None = None,
        sleep: Sleeper = time.sleep,
        rng: Random | None = None,
        http_client: httpx.Client | None = None,
    ):
        self.options = options
        self.marker = marker or Marker(default_marker_dir(self.platform))
        self._run = runner or run_cmd
        self._sleep = sleep
        self._rng = rng
        self._http_client = http_client

    def run(self) -> int:
        """Configure this machine once.

        Returns:
            Process exit status (0); fatal problems raise ClientError
        """
        logger.info(f"=== Range Config client ({self.platform}) starting ===")

        if self.marker.is_configured():
            logger.info("System already configured (marker file exists). Exiting.")
            return 0

        if not self.options.server_url:
            raise ClientError("Server URL is required")

        mac = self.discover_mac()
        logger.info(f"Using MAC address: {mac}")

        if not self.options.no_delay:
            startup_jitter(settings.max_startup_delay, rng=self._rng, sleep=self._sleep)

        try:
            response = request_config_with_retry(
                self.options.server_url,
                mac,
                self.max_retries,
                self.retry_delay,
                sleep=self._sleep,
                client=self._http_client,
            )
        except RetriesExhaustedError as e:
            raise ClientError(f"Failed to get configuration: {e.message}") from e
        logger.info(f"Received config: hostname={response.hostname}, networks={len(response.networks)}")

        self.set_hostname(response.hostname)

        networks = self.networks_for(response)
        for name, config in networks.items():
            logger.info(f"  - {name}: dhcp={config.dhcp}, address={config.address}, routes={len(config.routes)}")

        result = self.apply(networks)
        logger.info(f"Network configuration result: {result.to_dict()}")

        self.marker.create(response.hostname)
        logger.info("Marker file created")
        logger.info("=== Configuration complete ===")

        self.finish()
        return 0

    def discover_mac(self) -> str:
        interface = self.options.interface or self.default_interface
        try:
            if interface:
                return get_mac_by_name(interface)
            return get_primary_mac()
        except MacDiscoveryError as e:
            raise ClientError(f"Failed to get MAC address: {e.message}") from e

    def networks_for(self, response: ConfigurationResponse) -> dict[str, NetworkConfig]:
        """Per-interface map, or the single primary network for older servers."""
        if response.networks:
            return dict(response.networks)
        logger.info("No per-interface config; using single network config")
        return {self.fallback_interface(): response.network}

    def apply(self, networks: dict[str, NetworkConfig]) -> ApplyResult:
        backend = self.select_backend()
        try:
            result = backend.apply(networks)
        except BackendError as e:
            raise ClientError(f"Failed to configure network via {backend.name}: {e.message}") from e
        if result.failed and not result.configured:
            raise ClientError(f"No interface could be configured via {backend.name}: {result.failed}")
        return result

    def _check(self, cmd: list[str], what: str) -> None:
        result = self._run(cmd)
        if result.returncode != 0:
            raise ClientError(f"{what} failed: {command_output(result) or f'exit {result.returncode}'}")

    @abstractmethod
    def set_hostname(self, hostname: str) -> None:
        """Apply the hostname (may need a reboot to take effect)."""

    @abstractmethod
    def select_backend(self) -> NetworkBackend:
        """Pick the network backend for this host."""

    @abstractmethod
    def fallback_interface(self) -> str:
        """Interface used when the server sends no per-interface map."""

    @abstractmethod
    def finish(self) -> None:
        """Reboot or restart services so the configuration takes effect."""


def default_marker_dir(platform: str) -> str:
    return settings.marker_dir or DEFAULT_MARKER_DIRS[platform]
