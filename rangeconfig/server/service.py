"""Configuration service: inventory, activity and response assembly."""

from __future__ import annotations

import logging
from datetime import timedelta
from pathlib import Path

from rangeconfig import metrics
from rangeconfig.errors import InstanceNotFoundError, InvalidMacError, InventoryLoadError
from rangeconfig.schemas import ConfigurationResponse, StatusResponse
from rangeconfig.server.activity import ActivityTracker
from rangeconfig.server.cloud_init import build_configuration
from rangeconfig.server.inventory import InventoryStore
from rangeconfig.server.matcher import is_valid_mac, normalize_mac

logger = logging.getLogger(__name__)


class ConfigService:
    """Resolves MAC addresses to instance configuration."""

    def __init__(self, instances_file: str | Path, tracker: ActivityTracker | None = None):
        self.store = InventoryStore(instances_file)
        self.tracker = tracker or ActivityTracker()

    def load(self) -> int:
        """Initial load; errors propagate to the caller (fatal at startup)."""
        count = self.store.load()
        metrics.inventory_instances.set(count)
        return count

    def reload(self, path: str | Path | None = None) -> int:
        """Reload the inventory file, keeping the old snapshot on failure."""
        self.touch()
        try:
            count = self.store.load(path)
        except InventoryLoadError as e:
            metrics.reload_total.labels(status="error").inc()
            logger.error(f"Error reloading instances: {e.message}")
            raise
        metrics.reload_total.labels(status="success").inc()
        metrics.inventory_instances.set(count)
        return count

    def resolve(self, mac: str) -> ConfigurationResponse:
        """Build the configuration for the instance owning ``mac``.

        Raises:
            InvalidMacError: missing or malformed MAC
            InstanceNotFoundError: no instance declares the MAC
        """
        self.touch()

        if not mac or not mac.strip():
            metrics.resolve_requests.labels(result="invalid").inc()
            raise InvalidMacError("Missing 'mac' query parameter")

        normalized = normalize_mac(mac)
        if not is_valid_mac(normalized):
            metrics.resolve_requests.labels(result="invalid").inc()
            raise InvalidMacError(f"Invalid MAC address: {mac!r}")

        logger.info(f"Config request for MAC: {normalized}")
        instance = self.store.find_by_mac(normalized)
        if instance is None:
            metrics.resolve_requests.labels(result="miss").inc()
            logger.warning(f"No instance found for MAC: {normalized}")
            raise InstanceNotFoundError(normalized)

        response = build_configuration(instance)
        metrics.resolve_requests.labels(result="hit").inc()
        logger.info(
            f"Sent config for {instance.name}: {len(response.networks)} network(s), "
            f"primary: dhcp={response.network.dhcp}, address={response.network.address}"
        )
        return response

    def touch(self) -> None:
        self.tracker.touch()

    def idle_since(self) -> timedelta:
        return self.tracker.idle_since()

    def status(self) -> StatusResponse:
        """Report inventory size and the activity seen before this query."""
        status = StatusResponse(
            instances=self.store.count(),
            last_activity=self.tracker.last_activity.isoformat(),
            idle_seconds=self.idle_since().total_seconds(),
        )
        self.touch()
        return status
