"""Tests for the NetworkManager (nmcli) backend."""
from __future__ import annotations

import subprocess

from rangeconfig.client.backends.networkmanager import (
    NetworkManagerBackend,
    _split_terse,
    format_routes,
)
from rangeconfig.schemas import NetworkConfig, Route


def _escape(name):
    return name.replace(":", "\\:")


class FakeNmcli:
    """Minimal in-memory model of nmcli connection profiles."""

    def __init__(self, profiles=None):
        # name -> {"device": str, "ifname": str, "settings": dict}
        self.profiles = profiles or {}
        self.calls = []

    def _ok(self, cmd, stdout=""):
        return subprocess.CompletedProcess(cmd, 0, stdout, "")

    def __call__(self, cmd, timeout=None):
        self.calls.append(list(cmd))
        if cmd[:5] == ["nmcli", "-t", "-f", "NAME,DEVICE", "connection"]:
            lines = [_escape(name) + ":" + p["device"] for name, p in self.profiles.items()]
            return self._ok(cmd, "\n".join(lines) + "\n")
        if cmd[:3] == ["nmcli", "connection", "add"]:
            args = dict(zip(cmd[3::2], cmd[4::2]))
            self.profiles[args["con-name"]] = {"device": "", "ifname": args["ifname"], "settings": {}}
            return self._ok(cmd)
        if cmd[:3] == ["nmcli", "connection", "modify"]:
            profile = self.profiles.get(cmd[3])
            if profile is None:
                return subprocess.CompletedProcess(cmd, 10, "", f"unknown connection '{cmd[3]}'")
            profile["settings"].update(dict(zip(cmd[4::2], cmd[5::2])))
            return self._ok(cmd)
        if cmd[:3] == ["nmcli", "connection", "up"]:
            profile = self.profiles[cmd[3]]
            profile["device"] = profile.get("ifname") or cmd[3]
            return self._ok(cmd)
        return subprocess.CompletedProcess(cmd, 1, "", "unsupported")


STATIC = NetworkConfig(
    address="192.168.1.15/24",
    gateway="192.168.1.1",
    dns=["192.168.1.1", "8.8.8.8"],
    routes=[Route(destination="10.10.0.0/16", via="192.168.1.254")],
)


def test_split_terse_handles_escaped_colons():
    assert _split_terse(r"Wired\:1:eth0") == ["Wired:1", "eth0"]
    assert _split_terse("lo:") == ["lo", ""]


def test_format_routes():
    assert format_routes(STATIC) == "10.10.0.0/16 192.168.1.254"
    assert format_routes(NetworkConfig(dhcp=True)) == ""


def test_uses_profile_bound_to_device():
    nmcli = FakeNmcli({"Wired connection 1": {"device": "eth0", "ifname": "eth0", "settings": {}}})

    result = NetworkManagerBackend(runner=nmcli).apply({"eth0": STATIC})

    assert result.configured == ["eth0"]
    assert set(nmcli.profiles) == {"Wired connection 1"}
    settings = nmcli.profiles["Wired connection 1"]["settings"]
    assert settings["ipv4.method"] == "manual"
    assert settings["ipv4.addresses"] == "192.168.1.15/24"
    assert settings["ipv4.gateway"] == "192.168.1.1"
    assert settings["ipv4.dns"] == "192.168.1.1,8.8.8.8"
    assert settings["ipv4.routes"] == "10.10.0.0/16 192.168.1.254"


def test_creates_profile_when_none_exists():
    nmcli = FakeNmcli()

    NetworkManagerBackend(runner=nmcli).apply({"eth1": NetworkConfig(dhcp=True)})

    assert "rangeconfig-eth1" in nmcli.profiles
    assert nmcli.profiles["rangeconfig-eth1"]["settings"]["ipv4.method"] == "auto"
    assert nmcli.profiles["rangeconfig-eth1"]["device"] == "eth1"


def test_apply_twice_is_idempotent():
    nmcli = FakeNmcli()
    backend = NetworkManagerBackend(runner=nmcli)
    networks = {"eth0": STATIC, "eth1": NetworkConfig(dhcp=True, dns=["1.1.1.1"])}

    backend.apply(networks)
    first = {name: dict(p["settings"]) for name, p in nmcli.profiles.items()}
    backend.apply(networks)
    second = {name: dict(p["settings"]) for name, p in nmcli.profiles.items()}

    assert first == second
    assert sorted(nmcli.profiles) == ["rangeconfig-eth0", "rangeconfig-eth1"]


def test_reuses_unbound_profile_from_earlier_run():
    nmcli = FakeNmcli({"rangeconfig-eth2": {"device": "", "ifname": "eth2", "settings": {}}})

    NetworkManagerBackend(runner=nmcli).apply({"eth2": NetworkConfig(dhcp=True)})

    assert not any(call[:3] == ["nmcli", "connection", "add"] for call in nmcli.calls)


def test_switch_to_dhcp_clears_static_settings():
    nmcli = FakeNmcli()
    backend = NetworkManagerBackend(runner=nmcli)
    backend.apply({"eth0": STATIC})

    backend.apply({"eth0": NetworkConfig(dhcp=True)})

    settings = nmcli.profiles["rangeconfig-eth0"]["settings"]
    assert settings["ipv4.method"] == "auto"
    assert settings["ipv4.addresses"] == ""
    assert settings["ipv4.gateway"] == ""
    assert settings["ipv4.routes"] == ""


def test_invalid_interface_fails_alone():
    nmcli = FakeNmcli()
    networks = {
        "eth0": NetworkConfig(address="999.1.1.1/24"),
        "eth1": NetworkConfig(dhcp=True),
        "eth2": NetworkConfig(),
    }

    result = NetworkManagerBackend(runner=nmcli).apply(networks)

    assert result.configured == ["eth1"]
    assert list(result.failed) == ["eth0"]
    assert result.skipped == ["eth2"]
    assert not result.ok
    assert "rangeconfig-eth0" not in nmcli.profiles
