"""Per-platform client run sequences."""

from rangeconfig.client.platforms.base import ClientOptions, PlatformClient
from rangeconfig.client.platforms.linux import LinuxClient
from rangeconfig.client.platforms.openwrt import OpenWrtClient
from rangeconfig.client.platforms.windows import WindowsClient

PLATFORM_CLIENTS: dict[str, type[PlatformClient]] = {
    "linux": LinuxClient,
    "windows": WindowsClient,
    "openwrt": OpenWrtClient,
}

__all__ = [
    "ClientOptions",
    "LinuxClient",
    "OpenWrtClient",
    "PLATFORM_CLIENTS",
    "PlatformClient",
    "WindowsClient",
]
