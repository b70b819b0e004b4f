"""Configuration delivery from the server.

Clients wait a random startup delay so that many machines booting at once
do not hit the server together, then poll GET /config with a fixed retry
budget. Sleep, randomness and the HTTP client are injectable for tests.
"""

from __future__ import annotations

import logging
import secrets
import time
from random import Random
from typing import Callable

import httpx
from pydantic import ValidationError

from rangeconfig.config import settings
from rangeconfig.errors import ConfigFetchError, RetriesExhaustedError
from rangeconfig.schemas import ConfigurationResponse

logger = logging.getLogger(__name__)

Sleeper = Callable[[float], None]


def startup_jitter(max_delay: int, rng: Random | None = None, sleep: Sleeper = time.sleep) -> int:
    """Sleep a uniformly random whole number of seconds in [0, max_delay].

    The default source is the OS CSPRNG; images cloned from one template
    and booted together must not draw correlated delays.

    Returns:
        The delay slept, in seconds
    """
    if max_delay <= 0:
        return 0
    rng = rng or secrets.SystemRandom()
    delay = rng.randint(0, max_delay)
    logger.info(f"Waiting {delay} seconds before requesting config (staggered startup)")
    sleep(delay)
    return delay


def config_url(server_url: str) -> str:
    return server_url.rstrip("/") + "/config"


def fetch_config(server_url: str, mac: str, client: httpx.Client) -> ConfigurationResponse:
    """Single configuration request.

    Raises:
        ConfigFetchError: transport failure, non-200 status or bad body
    """
    try:
        response = client.get(config_url(server_url), params={"mac": mac})
    except httpx.HTTPError as e:
        raise ConfigFetchError(f"Request failed: {e}") from e

    if response.status_code != 200:
        raise ConfigFetchError(
            f"Server returned {response.status_code}: {response.text[:200].strip()}",
            status_code=response.status_code,
        )

    try:
        return ConfigurationResponse.model_validate(response.json())
    except (ValueError, ValidationError) as e:
        raise ConfigFetchError(f"Failed to parse response: {e}", status_code=200) from e


def request_config_with_retry(
    server_url: str,
    mac: str,
    max_retries: int,
    retry_delay: float,
    sleep: Sleeper = time.sleep,
    client: httpx.Client | None = None,
) -> ConfigurationResponse:
    """Request configuration, retrying until success or the budget runs out.

    Args:
        server_url: Base URL of the configuration server
        mac: Local MAC address
        max_retries: Total number of attempts
        retry_delay: Seconds between attempts
        sleep: Sleep function
        client: httpx client; one with ``settings.client_request_timeout``
            is created (and closed) if not given

    Raises:
        RetriesExhaustedError: every attempt failed
    """
    own_client = client is None
    if own_client:
        client = httpx.Client(timeout=settings.client_request_timeout)

    last_error: Exception | None = None
    try:
        for attempt in range(max_retries):
            if attempt > 0:
                logger.info(f"Retry {attempt}/{max_retries - 1} after {retry_delay}s")
                sleep(retry_delay)
            try:
                return fetch_config(server_url, mac, client)
            except ConfigFetchError as e:
                last_error = e
                logger.warning(f"Request failed: {e.message}")
    finally:
        if own_client:
            client.close()

    raise RetriesExhaustedError(max_retries, last_error)
