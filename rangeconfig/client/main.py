"""Range Config client entry point.

Runs once at boot on every range machine: fetch this machine's configuration
from the server, apply it, leave a marker, then reboot or restart networking.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from rangeconfig.client.marker import Marker
from rangeconfig.client.platforms import PLATFORM_CLIENTS, ClientOptions
from rangeconfig.client.platforms.base import default_marker_dir
from rangeconfig.errors import ClientError
from rangeconfig.logging_config import setup_logging

logger = logging.getLogger(__name__)

OPENWRT_RELEASE = "/etc/openwrt_release"


def detect_platform() -> str:
    if sys.platform == "win32":
        return "windows"
    if os.path.exists(OPENWRT_RELEASE):
        return "openwrt"
    return "linux"


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Configure this machine from a Range Config server.")
    parser.add_argument("--server", required=True, help="Config server URL, e.g. http://10.0.0.1:8080")
    parser.add_argument("--interface", default=None, help="Interface whose MAC identifies this machine")
    parser.add_argument("--no-delay", action="store_true", help="Skip the random startup delay")
    parser.add_argument(
        "--platform",
        choices=sorted(PLATFORM_CLIENTS),
        default=None,
        help="Override platform detection",
    )
    args = parser.parse_args(argv)

    platform = args.platform or detect_platform()
    marker = Marker(default_marker_dir(platform))
    try:
        marker.ensure_dir()
        log_file = str(marker.log_path)
    except OSError as e:
        print(f"Warning: cannot create {marker.directory}: {e}", file=sys.stderr)
        log_file = None
    setup_logging(f"client-{platform}", log_file=log_file)

    client_cls = PLATFORM_CLIENTS[platform]
    options = ClientOptions(server_url=args.server, interface=args.interface, no_delay=args.no_delay)
    try:
        status = client_cls(options, marker=marker).run()
    except ClientError as e:
        logger.error(e.message)
        sys.exit(1)
    sys.exit(status)


if __name__ == "__main__":
    main()
