"""Network backend abstraction for applying canonical configuration."""

from __future__ import annotations

import ipaddress
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from rangeconfig.client.cmd import CommandRunner, command_output, run_cmd
from rangeconfig.errors import BackendError
from rangeconfig.schemas import NetworkConfig

logger = logging.getLogger(__name__)


@dataclass
class ApplyResult:
    """Outcome of one apply() call."""
    backend: str
    configured: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict:
        return {
            "backend": self.backend,
            "configured": list(self.configured),
            "skipped": list(self.skipped),
            "failed": dict(self.failed),
        }


@dataclass(frozen=True)
class StaticAddress:
    """A validated CIDR address split for backends that want ip + netmask."""
    ip: str
    prefixlen: int
    netmask: str

    @property
    def cidr(self) -> str:
        return f"{self.ip}/{self.prefixlen}"


def parse_cidr(address: str, interface: str | None = None) -> StaticAddress:
    """Validate an IPv4 CIDR address.

    Raises:
        BackendError: not a valid IPv4 interface address
    """
    try:
        iface = ipaddress.IPv4Interface(address)
    except (ipaddress.AddressValueError, ipaddress.NetmaskValueError, ValueError) as e:
        raise BackendError(f"Invalid address format {address!r}: {e}", interface=interface) from e
    if "/" not in address:
        raise BackendError(f"Address {address!r} has no prefix length", interface=interface)
    return StaticAddress(
        ip=str(iface.ip),
        prefixlen=iface.network.prefixlen,
        netmask=str(iface.netmask),
    )


def validate_host(address: str, what: str, interface: str | None = None) -> str:
    """Validate an IPv4 host address (gateway, next hop, DNS server)."""
    try:
        return str(ipaddress.IPv4Address(address))
    except (ipaddress.AddressValueError, ValueError) as e:
        raise BackendError(f"Invalid {what} {address!r}: {e}", interface=interface) from e


def validate_destination(destination: str, interface: str | None = None) -> str:
    try:
        return str(ipaddress.IPv4Network(destination, strict=False))
    except (ipaddress.AddressValueError, ipaddress.NetmaskValueError, ValueError) as e:
        raise BackendError(f"Invalid route destination {destination!r}: {e}", interface=interface) from e


def validate_config(interface: str, config: NetworkConfig) -> StaticAddress | None:
    """Validate everything a backend will write for one interface.

    Returns the parsed static address, or None for DHCP.
    """
    static = None
    if not config.dhcp:
        static = parse_cidr(config.address or "", interface)
        if config.gateway:
            validate_host(config.gateway, "gateway", interface)
    for server in config.dns:
        validate_host(server, "DNS server", interface)
    for route in config.routes:
        validate_destination(route.destination, interface)
        validate_host(route.via, "route next hop", interface)
    return static


class NetworkBackend(ABC):
    """One mechanism for applying network configuration.

    Implementations translate each ``{interface: NetworkConfig}`` entry into
    backend mutations. Applying the same map twice must leave the backend in
    the same state as applying it once.
    """

    name: str = ""

    def __init__(self, runner: CommandRunner | None = None):
        self._run = runner or run_cmd

    @abstractmethod
    def apply(self, networks: dict[str, NetworkConfig]) -> ApplyResult:
        """Apply configuration for every interface in ``networks``.

        A failure on one interface is recorded in the result and the
        remaining interfaces are still processed, unless the backend can
        only write all interfaces at once.
        """

    def _should_skip(self, interface: str, config: NetworkConfig, result: ApplyResult) -> bool:
        """Static entries without an address leave the interface untouched."""
        if not config.dhcp and not config.address:
            logger.info(f"No static address for {interface}, leaving it unchanged")
            result.skipped.append(interface)
            return True
        return False

    def _check(self, cmd: list[str], interface: str | None = None, timeout: float | None = None):
        """Run a command and raise BackendError on a non-zero exit."""
        result = self._run(cmd, timeout=timeout)
        if result.returncode != 0:
            raise BackendError(
                f"{' '.join(cmd)} failed: {command_output(result) or f'exit {result.returncode}'}",
                interface=interface,
            )
        return result
