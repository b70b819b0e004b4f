from __future__ import annotations

import json
import subprocess
from pathlib import Path

import pytest

from rangeconfig.config import settings
from rangeconfig.server import main as server_main


@pytest.fixture(autouse=True)
def _test_settings(monkeypatch, tmp_path):
    """Keep tests away from real marker dirs, sleeps and idle shutdown."""
    monkeypatch.setattr(settings, "idle_timeout", 0.0)
    monkeypatch.setattr(settings, "marker_dir", str(tmp_path / "marker"))
    monkeypatch.setattr(settings, "reboot_delay", 0)
    monkeypatch.setattr(settings, "max_startup_delay", 0)
    server_main.reset_service()
    yield
    server_main.reset_service()


class FakeRunner:
    """Records commands; ``responses`` maps a command prefix to (returncode, stdout)."""

    def __init__(self, responses: dict[tuple[str, ...], tuple[int, str]] | None = None):
        self.responses = responses or {}
        self.calls: list[list[str]] = []

    def __call__(self, cmd, timeout=None):
        self.calls.append(list(cmd))
        best = None
        for prefix, response in self.responses.items():
            if tuple(cmd[: len(prefix)]) == prefix and (best is None or len(prefix) > len(best[0])):
                best = (prefix, response)
        returncode, stdout = best[1] if best else (0, "")
        return subprocess.CompletedProcess(cmd, returncode, stdout, "" if returncode == 0 else "boom")


@pytest.fixture()
def fake_runner() -> FakeRunner:
    return FakeRunner()


def make_instance(name: str, macs: dict[str, str], network_config: str | None = None, **extra) -> dict:
    config = {f"volatile.{iface}.hwaddr": mac for iface, mac in macs.items()}
    if network_config is not None:
        config["cloud-init.network-config"] = network_config
    return {"name": name, "status": "Running", "config": config, **extra}


def write_inventory(path: Path, instances: list[dict]) -> Path:
    path.write_text(json.dumps(instances))
    return path


TEAM1_WIN10_NETWORK = """\
version: 2
ethernets:
  eth-0:
    dhcp4: false
    addresses:
      - 192.168.1.15/24
    routes:
      - to: default
        via: 192.168.1.1
    nameservers:
      addresses:
        - 192.168.1.1
"""
