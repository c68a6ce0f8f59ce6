from __future__ import annotations

from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RelayAddress(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str
    port: int = Field(ge=0, le=65535)

    @classmethod
    def parse(cls, value: str) -> "RelayAddress":
        """Parse ``host:port`` (``[v6addr]:port`` for IPv6) into an address."""
        candidate = value.strip()
        host, sep, port = candidate.rpartition(":")
        if not sep or not host:
            raise ValueError(f"Address must be host:port, got {value!r}")
        if host.startswith("[") and host.endswith("]"):
            host = host[1:-1]
        try:
            port_number = int(port)
        except ValueError as exc:
            raise ValueError(f"Invalid port in address {value!r}") from exc
        return cls(host=host, port=port_number)

    def __str__(self) -> str:
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


class RelaySettings(BaseSettings):
    bind_addr: str = Field("0.0.0.0:9000", validation_alias="TELEMETRY_BIND_ADDR")
    forward_addr: str = Field("127.0.0.1:9100", validation_alias="METRICS_FORWARD_ADDR")

    forward_connect_timeout: float = Field(5.0, gt=0, validation_alias="FORWARD_CONNECT_TIMEOUT")
    accept_retry_delay: float = Field(0.1, ge=0, validation_alias="ACCEPT_RETRY_DELAY")
    max_line_bytes: int = Field(65536, gt=0, validation_alias="MAX_LINE_BYTES")

    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")
    log_ring_size: int = Field(200, gt=0, validation_alias="LOG_RING_SIZE")
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", populate_by_name=True, extra="ignore")

    @field_validator("bind_addr", "forward_addr")
    @classmethod
    def _check_address(cls, value: str) -> str:
        RelayAddress.parse(value)
        return value.strip()

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"

    @property
    def bind_address(self) -> RelayAddress:
        return RelayAddress.parse(self.bind_addr)

    @property
    def forward_address(self) -> RelayAddress:
        return RelayAddress.parse(self.forward_addr)


@lru_cache
def get_settings() -> RelaySettings:
    return RelaySettings()
