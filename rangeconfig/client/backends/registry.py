"""Backend detection and construction.

Linux hosts may carry more than one network mechanism at once (for example
netplan rendering to NetworkManager). Detection walks an ordered chain and
stops at the first mechanism found; the order is part of the contract.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from rangeconfig.client.backends.base import NetworkBackend
from rangeconfig.client.backends.ifupdown import IfupdownBackend
from rangeconfig.client.backends.netplan import NetplanBackend
from rangeconfig.client.backends.netsh import NetshBackend
from rangeconfig.client.backends.networkmanager import NetworkManagerBackend
from rangeconfig.client.backends.uci import UciBackend
from rangeconfig.client.cmd import CommandRunner, run_cmd, which

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"

NETPLAN_DIR = "/etc/netplan"
IFUPDOWN_INTERFACES = "/etc/network/interfaces"

Predicate = Callable[[CommandRunner], bool]


def networkmanager_running(run: CommandRunner) -> bool:
    if not which("nmcli"):
        return False
    result = run(["systemctl", "is-active", "--quiet", "NetworkManager"], timeout=5)
    return result.returncode == 0


def netplan_present(run: CommandRunner) -> bool:
    return Path(NETPLAN_DIR).is_dir()


def ifupdown_present(run: CommandRunner) -> bool:
    return Path(IFUPDOWN_INTERFACES).exists()


LINUX_DETECTION_CHAIN: list[tuple[str, Predicate]] = [
    ("networkmanager", networkmanager_running),
    ("netplan", netplan_present),
    ("ifupdown", ifupdown_present),
]

BACKENDS: dict[str, type[NetworkBackend]] = {
    "networkmanager": NetworkManagerBackend,
    "netplan": NetplanBackend,
    "ifupdown": IfupdownBackend,
    "netsh": NetshBackend,
    "uci": UciBackend,
}


def detect_linux_backend(
    runner: CommandRunner | None = None,
    chain: list[tuple[str, Predicate]] | None = None,
) -> str:
    """Detect the active Linux network mechanism.

    Returns:
        One of: "networkmanager", "netplan", "ifupdown", "unknown"
    """
    run = runner or run_cmd
    for name, predicate in chain if chain is not None else LINUX_DETECTION_CHAIN:
        try:
            if predicate(run):
                logger.info(f"Detected {name} as network backend")
                return name
        except Exception as e:
            logger.debug(f"{name} check failed: {e}")

    logger.warning("Could not detect network backend")
    return UNKNOWN


def build_backend(name: str, runner: CommandRunner | None = None) -> NetworkBackend:
    """Instantiate a backend by name."""
    try:
        backend_cls = BACKENDS[name]
    except KeyError:
        raise ValueError(f"Unsupported network backend '{name}'") from None
    return backend_cls(runner=runner)
