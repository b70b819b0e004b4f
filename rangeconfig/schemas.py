"""Server-client protocol schemas.

These Pydantic models define the canonical network model shared by the
declaration parser and the backend appliers, the inventory records the
server loads, and the JSON bodies exchanged over HTTP.
"""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


# --- Canonical network model ---

class Route(BaseModel):
    """A static route other than the default route."""
    model_config = ConfigDict(populate_by_name=True)

    destination: str = Field(validation_alias=AliasChoices("destination", "to"))
    via: str


class NetworkConfig(BaseModel):
    """Backend-agnostic addressing for one logical interface.

    When ``dhcp`` is true, ``address`` and ``gateway`` are ignored by the
    appliers; ``dns`` and ``routes`` still apply on top of the lease.
    """
    dhcp: bool = False
    address: str | None = None  # CIDR, e.g. 192.168.1.100/24
    gateway: str | None = None
    dns: list[str] = Field(default_factory=list)
    routes: list[Route] = Field(default_factory=list)

    @property
    def has_static_address(self) -> bool:
        return not self.dhcp and bool(self.address)


# --- Inventory ---

class InstanceRecord(BaseModel):
    """One inventory entry, as produced by ``lxc list --format json``.

    Only ``name`` and ``config`` are read; other fields are ignored.
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    config: dict[str, str] = Field(default_factory=dict)

    @field_validator("config", mode="before")
    @classmethod
    def _null_config(cls, value):
        return {} if value is None else value


# --- HTTP bodies ---

class ConfigurationResponse(BaseModel):
    """Response for GET /config."""
    hostname: str
    network: NetworkConfig  # Primary interface, kept for older clients
    networks: dict[str, NetworkConfig] = Field(default_factory=dict)


class ReloadResponse(BaseModel):
    instances: int
    message: str


class StatusResponse(BaseModel):
    instances: int
    last_activity: str  # RFC3339
    idle_seconds: float


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    commit: str
