"""Tests for cloud-init network declaration parsing."""
from __future__ import annotations

import pytest

from conftest import TEAM1_WIN10_NETWORK
from rangeconfig.schemas import InstanceRecord, NetworkConfig, Route
from rangeconfig.server.cloud_init import (
    NETWORK_CONFIG_KEY,
    build_configuration,
    parse_network_declaration,
)


@pytest.mark.parametrize("raw", [None, "", "   ", "DHCP", "dhcp", "  Dhcp\n"])
def test_dhcp_and_missing_declarations_give_empty_map(raw):
    assert parse_network_declaration(raw) == {}


def test_default_route_becomes_gateway():
    networks = parse_network_declaration(TEAM1_WIN10_NETWORK, "team1-win10")

    assert list(networks) == ["eth-0"]
    eth = networks["eth-0"]
    assert eth.dhcp is False
    assert eth.address == "192.168.1.15/24"
    assert eth.gateway == "192.168.1.1"
    assert eth.dns == ["192.168.1.1"]
    assert eth.routes == []


def test_gateway4_takes_precedence_over_default_route():
    raw = """
ethernets:
  eth0:
    addresses: [10.0.0.5/24]
    gateway4: 10.0.0.254
    routes:
      - {to: 0.0.0.0/0, via: 10.0.0.1}
      - {to: 172.16.0.0/16, via: 10.0.0.2}
"""
    eth = parse_network_declaration(raw)["eth0"]

    assert eth.gateway == "10.0.0.254"
    assert eth.routes == [Route(destination="172.16.0.0/16", via="10.0.0.2")]


def test_network_wrapper_is_accepted():
    raw = """
network:
  version: 2
  ethernets:
    eth1:
      dhcp4: true
"""
    assert parse_network_declaration(raw) == {"eth1": NetworkConfig(dhcp=True)}


def test_interfaces_keep_declaration_order():
    raw = """
ethernets:
  eth2: {dhcp4: true}
  eth0: {addresses: [10.0.0.2/24]}
  eth1:
"""
    networks = parse_network_declaration(raw)

    assert list(networks) == ["eth2", "eth0", "eth1"]
    assert networks["eth1"] == NetworkConfig()


def test_only_first_address_is_used():
    raw = "ethernets:\n  eth0:\n    addresses: [10.0.0.2/24, 10.0.0.3/24]\n"

    assert parse_network_declaration(raw)["eth0"].address == "10.0.0.2/24"


def test_incomplete_routes_are_skipped():
    raw = """
ethernets:
  eth0:
    addresses: [10.0.0.2/24]
    routes:
      - {to: 192.168.0.0/16}
      - {via: 10.0.0.1}
      - {to: 192.168.5.0/24, via: 10.0.0.9}
"""
    eth = parse_network_declaration(raw)["eth0"]

    assert eth.routes == [Route(destination="192.168.5.0/24", via="10.0.0.9")]
    assert eth.gateway is None


@pytest.mark.parametrize(
    "raw",
    [
        "ethernets: [unclosed",
        "just a string",
        "ethernets: [eth0, eth1]",
        "- a\n- b\n",
    ],
)
def test_malformed_declarations_degrade_to_empty(raw):
    assert parse_network_declaration(raw, "broken") == {}


def test_build_configuration_primary_is_first_interface():
    raw = """
ethernets:
  eth0: {addresses: [10.0.0.2/24], gateway4: 10.0.0.1}
  eth1: {dhcp4: true}
"""
    instance = InstanceRecord(name="team2-fw", config={NETWORK_CONFIG_KEY: raw})

    response = build_configuration(instance)

    assert response.hostname == "team2-fw"
    assert response.network == response.networks["eth0"]
    assert response.network.address == "10.0.0.2/24"
    assert set(response.networks) == {"eth0", "eth1"}


def test_build_configuration_defaults_to_dhcp():
    response = build_configuration(InstanceRecord(name="plain", config={}))

    assert response.network == NetworkConfig(dhcp=True)
    assert response.networks == {}


def test_default_route_folded_and_extra_route_kept():
    raw = """
version: 2
ethernets:
  eth0:
    dhcp4: false
    addresses: [10.0.1.20/24]
    routes:
      - {to: default, via: 10.0.1.1}
      - {to: 10.0.2.0/24, via: 10.0.1.5}
"""
    eth = parse_network_declaration(raw)["eth0"]

    assert eth.address == "10.0.1.20/24"
    assert eth.gateway == "10.0.1.1"
    assert eth.routes == [Route(destination="10.0.2.0/24", via="10.0.1.5")]
