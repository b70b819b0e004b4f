"""Exception types shared by the server and the clients."""

from __future__ import annotations


class RangeConfigError(Exception):
    """Base exception for configuration errors."""
    def __init__(self, message: str, retriable: bool = False):
        super().__init__(message)
        self.message = message
        self.retriable = retriable


# --- Server side ---

class InvalidMacError(RangeConfigError):
    """MAC address missing or not in a recognised form."""


class InstanceNotFoundError(RangeConfigError):
    """No inventory record owns the requested MAC address."""
    def __init__(self, mac: str):
        super().__init__(f"Instance not found for MAC {mac}")
        self.mac = mac


class InventoryLoadError(RangeConfigError):
    """Inventory file unreadable or malformed."""
    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


# --- Client side ---

class MacDiscoveryError(RangeConfigError):
    """No usable network interface / hardware address found."""


class ConfigFetchError(RangeConfigError):
    """A single configuration request failed (transport, status or body)."""
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message, retriable=True)
        self.status_code = status_code


class RetriesExhaustedError(RangeConfigError):
    """Every configuration request attempt failed."""
    def __init__(self, attempts: int, last_error: Exception | None):
        super().__init__(f"Failed after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


class BackendError(RangeConfigError):
    """A network backend could not apply configuration."""
    def __init__(self, message: str, interface: str | None = None):
        super().__init__(message)
        self.interface = interface


class ClientError(RangeConfigError):
    """Fatal client failure; the process exits non-zero."""
