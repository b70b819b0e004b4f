"""ifupdown backend (/etc/network/interfaces)."""

from __future__ import annotations

import logging
from pathlib import Path

from rangeconfig.client.backends.base import ApplyResult, NetworkBackend, validate_config
from rangeconfig.client.cmd import CommandRunner, command_output
from rangeconfig.errors import BackendError
from rangeconfig.schemas import NetworkConfig

logger = logging.getLogger(__name__)

INTERFACES_FILE = "/etc/network/interfaces"
INTERFACES_D_CONFIG = "/etc/network/interfaces.d/rangeconfig"

HEADER = "# Generated by rangeconfig client. Local changes will be overwritten.\n"


def render_stanza(interface: str, config: NetworkConfig) -> str:
    """One ``auto``/``iface`` stanza. Raises BackendError on invalid input."""
    static = validate_config(interface, config)

    lines = [f"auto {interface}"]
    if static is None:
        lines.append(f"iface {interface} inet dhcp")
    else:
        lines.append(f"iface {interface} inet static")
        lines.append(f"    address {static.ip}")
        lines.append(f"    netmask {static.netmask}")
        if config.gateway:
            lines.append(f"    gateway {config.gateway}")

    if config.dns:
        lines.append(f"    dns-nameservers {' '.join(config.dns)}")

    for route in config.routes:
        lines.append(f"    post-up ip route add {route.destination} via {route.via}")
        lines.append(f"    pre-down ip route del {route.destination} via {route.via}")

    return "\n".join(lines) + "\n"


class IfupdownBackend(NetworkBackend):
    """Writes one interfaces.d file with a stanza per interface."""

    name = "ifupdown"

    def __init__(
        self,
        runner: CommandRunner | None = None,
        config_path: str | Path = INTERFACES_D_CONFIG,
        interfaces_file: str | Path = INTERFACES_FILE,
    ):
        super().__init__(runner)
        self.config_path = Path(config_path)
        self.interfaces_file = Path(interfaces_file)

    def apply(self, networks: dict[str, NetworkConfig]) -> ApplyResult:
        result = ApplyResult(backend=self.name)
        stanzas = []

        for interface, config in networks.items():
            if self._should_skip(interface, config, result):
                continue
            try:
                stanzas.append(render_stanza(interface, config))
            except BackendError as e:
                logger.error(f"Failed to configure {interface}: {e.message}")
                result.failed[interface] = e.message
                continue
            result.configured.append(interface)

        if not stanzas:
            return result

        self._warn_if_not_sourced()
        content = HEADER + "".join(f"\n{stanza}" for stanza in stanzas)
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            self.config_path.write_text(content)
        except OSError as e:
            raise BackendError(f"Failed to write interfaces config {self.config_path}: {e}") from e

        for interface, error in self.restart(result.configured).items():
            result.configured.remove(interface)
            result.failed[interface] = error
        return result

    def restart(self, interfaces: list[str]) -> dict[str, str]:
        """Restart networking, falling back to ifdown/ifup per interface.

        Returns:
            Interfaces that could not be brought up, with the error
        """
        restart = self._run(["systemctl", "restart", "networking"], timeout=120)
        if restart.returncode == 0:
            return {}

        logger.warning("systemctl restart networking failed, cycling interfaces individually")
        failed = {}
        for interface in interfaces:
            self._run(["ifdown", interface])
            up = self._run(["ifup", interface])
            if up.returncode != 0:
                error = command_output(up) or f"exit {up.returncode}"
                logger.warning(f"ifup {interface} failed: {error}")
                failed[interface] = f"ifup {interface} failed: {error}"
        return failed

    def _warn_if_not_sourced(self) -> None:
        try:
            content = self.interfaces_file.read_text()
        except OSError:
            return
        if "interfaces.d" not in content:
            logger.warning(
                f"{self.interfaces_file} does not source interfaces.d; "
                f"{self.config_path} may be ignored"
            )
