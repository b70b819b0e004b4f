"""Network backend implementations and detection."""

from rangeconfig.client.backends.base import ApplyResult, NetworkBackend
from rangeconfig.client.backends.registry import build_backend, detect_linux_backend

__all__ = ["ApplyResult", "NetworkBackend", "build_backend", "detect_linux_backend"]
