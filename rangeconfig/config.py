"""Server and client configuration."""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Settings loaded from environment variables."""

    # Server listener
    server_host: str = "0.0.0.0"
    server_port: int = 8080

    # Inventory (output of `lxc list --format json`)
    instances_file: str = "instances.json"

    # Idle shutdown (seconds, 0 disables)
    idle_timeout: float = 900.0
    idle_check_interval: float = 30.0
    shutdown_grace_period: int = 10

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # "json" or "text"

    # Client behaviour
    client_request_timeout: float = 10.0
    max_startup_delay: int = 30
    marker_dir: str = ""  # Platform default if empty
    reboot_delay: int = 5
    command_timeout: float = 30.0

    class Config:
        env_prefix = "RANGECONFIG_"


settings = Settings()


def parse_listen(listen: str) -> tuple[str, int]:
    """Split a Go-style listen address (":8080", "10.0.0.1:8080").

    An empty host means all interfaces.
    """
    host, sep, port = listen.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"Invalid listen address: {listen!r}")
    return host or "0.0.0.0", int(port)


def load_server_config(path: str | Path, target: Settings | None = None) -> Settings:
    """Apply an optional YAML server config file onto settings.

    Recognised keys are ``listen`` and ``instances_file``. A missing or
    unreadable file is not fatal; the current settings are kept.
    """
    target = target or settings
    try:
        data = yaml.safe_load(Path(path).read_text()) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not load config file {path}: {e}")
        return target

    if not isinstance(data, dict):
        logger.warning(f"Ignoring config file {path}: expected a mapping")
        return target

    listen = data.get("listen")
    if listen:
        try:
            target.server_host, target.server_port = parse_listen(str(listen))
        except ValueError as e:
            logger.warning(f"Ignoring listen in {path}: {e}")
    instances_file = data.get("instances_file")
    if instances_file:
        target.instances_file = str(instances_file)

    return target
