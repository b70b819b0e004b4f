"""Tests for the configuration server HTTP endpoints."""
from __future__ import annotations

import os
import signal
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from conftest import TEAM1_WIN10_NETWORK, make_instance, write_inventory
from rangeconfig.config import settings
from rangeconfig.server import main as server_main
from rangeconfig.server.main import app


@pytest.fixture()
def inventory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    path = write_inventory(
        tmp_path / "instances.json",
        [
            make_instance("team1-win10", {"eth-0": "00:16:3e:aa:bb:cc"}, TEAM1_WIN10_NETWORK),
            make_instance("team1-ubuntu", {"eth-0": "00:16:3e:11:22:33"}, "DHCP"),
        ],
    )
    monkeypatch.setattr(settings, "instances_file", str(path))
    return path


@pytest.fixture()
def client(inventory: Path):
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


def test_config_for_known_mac(client: TestClient) -> None:
    resp = client.get("/config", params={"mac": "00:16:3E:AA:BB:CC"})

    assert resp.status_code == 200
    assert resp.json() == {
        "hostname": "team1-win10",
        "network": {
            "dhcp": False,
            "address": "192.168.1.15/24",
            "gateway": "192.168.1.1",
            "dns": ["192.168.1.1"],
            "routes": [],
        },
        "networks": {
            "eth-0": {
                "dhcp": False,
                "address": "192.168.1.15/24",
                "gateway": "192.168.1.1",
                "dns": ["192.168.1.1"],
                "routes": [],
            },
        },
    }


def test_config_dhcp_instance(client: TestClient) -> None:
    resp = client.get("/config", params={"mac": "00-16-3e-11-22-33"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["hostname"] == "team1-ubuntu"
    assert body["network"]["dhcp"] is True
    assert body["networks"] == {}


def test_config_missing_mac_is_400(client: TestClient) -> None:
    resp = client.get("/config")

    assert resp.status_code == 400
    assert "mac" in resp.json()["detail"]


def test_config_invalid_mac_is_400(client: TestClient) -> None:
    assert client.get("/config", params={"mac": "not-a-mac"}).status_code == 400


def test_config_unknown_mac_is_404(client: TestClient) -> None:
    resp = client.get("/config", params={"mac": "00:16:3e:00:00:00"})

    assert resp.status_code == 404
    assert resp.content == b""


def test_reload_picks_up_new_instances(client: TestClient, inventory: Path) -> None:
    write_inventory(inventory, [make_instance("team2-kali", {"eth-0": "00:16:3e:44:55:66"})])

    resp = client.post("/reload")

    assert resp.status_code == 200
    assert resp.json() == {"instances": 1, "message": "Reloaded 1 instances"}
    assert client.get("/config", params={"mac": "00:16:3e:44:55:66"}).json()["hostname"] == "team2-kali"
    assert client.get("/config", params={"mac": "00:16:3e:aa:bb:cc"}).status_code == 404


def test_failed_reload_keeps_serving_old_inventory(client: TestClient, inventory: Path) -> None:
    inventory.write_text("this is not json")

    resp = client.post("/reload")

    assert resp.status_code == 500
    assert resp.json()["detail"] == "Failed to reload"
    assert resp.json()["error"]
    assert client.get("/config", params={"mac": "00:16:3e:aa:bb:cc"}).status_code == 200


def test_status_reports_inventory_size(client: TestClient) -> None:
    resp = client.get("/status")

    assert resp.status_code == 200
    body = resp.json()
    assert body["instances"] == 2
    assert body["idle_seconds"] >= 0
    assert body["last_activity"]


def test_health(client: TestClient) -> None:
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
    assert resp.json()["version"]


def test_metrics_exposes_resolve_counter(client: TestClient) -> None:
    client.get("/config", params={"mac": "00:16:3e:aa:bb:cc"})

    resp = client.get("/metrics")

    assert resp.status_code == 200
    assert "rangeconfig_resolve_requests_total" in resp.text
    assert "rangeconfig_inventory_instances 2.0" in resp.text


def test_correlation_id_is_echoed(client: TestClient) -> None:
    resp = client.get("/health", headers={"X-Correlation-ID": "abc123"})

    assert resp.headers["X-Correlation-ID"] == "abc123"


def test_unhandled_error_returns_structured_500(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    def boom(mac):
        raise RuntimeError("unexpected")

    monkeypatch.setattr(server_main.get_service(), "resolve", boom)

    resp = client.get("/config", params={"mac": "00:16:3e:aa:bb:cc"})

    assert resp.status_code == 500
    assert resp.json()["error_type"] == "RuntimeError"


def test_request_shutdown_sets_should_exit(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = MagicMock(should_exit=False)
    monkeypatch.setattr(server_main, "_uvicorn_server", fake)

    server_main.request_shutdown()

    assert fake.should_exit is True


def test_request_shutdown_without_server_handle_sends_sigterm(monkeypatch: pytest.MonkeyPatch) -> None:
    sent = []
    monkeypatch.setattr(server_main, "_uvicorn_server", None)
    monkeypatch.setattr(server_main.os, "kill", lambda pid, sig: sent.append((pid, sig)))

    server_main.request_shutdown()

    assert sent == [(os.getpid(), signal.SIGTERM)]

