"""Environment-based configuration for sciuro.

All settings can be overridden via environment variables with the SCIURO_
prefix, or from a .env file. For example:
    SCIURO_ALERTMANAGER_URL=http://alertmanager:9093
    SCIURO_ALERT_RECEIVER=sciuro
    SCIURO_NODE_FILTERS='instance=~"{{ ShortName }}:.*"'

Durations are in seconds. Exactly one alert backend and exactly one node
matcher must be configured; anything else is rejected at startup.
"""

from typing import Annotated

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """sciuro daemon configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SCIURO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Alert backends (exactly one kind)
    alertmanager_url: str | None = Field(default=None)
    prometheus_urls: Annotated[list[str], NoDecode] = Field(default_factory=list)
    alert_receiver: str | None = Field(default=None)
    alert_silenced: bool = Field(default=False)
    http_timeout: float = Field(default=10.0)

    # Node matching (exactly one)
    node_filters: str | None = Field(default=None)
    node_expression: str | None = Field(default=None)

    # Conditions
    condition_prefix: str = Field(default="AlertManager_")
    linger_duration: float = Field(default=96 * 3600.0)

    # Scheduling
    alert_cache_ttl: float = Field(default=60.0)
    node_resync: float = Field(default=120.0)
    reconcile_timeout: float = Field(default=45.0)
    max_concurrent_reconciles: int = Field(default=1)

    # Process
    metrics_addr: str = Field(default="0.0.0.0:8080")
    kubeconfig: str | None = Field(default=None)
    log_level: str = Field(default="INFO")
    dev_mode: bool = Field(default=False)

    @field_validator("prometheus_urls", mode="before")
    @classmethod
    def _split_urls(cls, value: object) -> object:
        if isinstance(value, str):
            return [u.strip() for u in value.split(",") if u.strip()]
        return value

    @field_validator(
        "alert_cache_ttl",
        "node_resync",
        "reconcile_timeout",
        "http_timeout",
    )
    @classmethod
    def _positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be greater than zero")
        return value

    @field_validator("linger_duration")
    @classmethod
    def _non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError("must not be negative")
        return value

    @field_validator("max_concurrent_reconciles")
    @classmethod
    def _at_least_one(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value

    @model_validator(mode="after")
    def _validate_backends(self) -> "Settings":
        if bool(self.alertmanager_url) == bool(self.prometheus_urls):
            raise ValueError(
                "exactly one of SCIURO_ALERTMANAGER_URL or SCIURO_PROMETHEUS_URLS must be set"
            )
        if self.alertmanager_url and not self.alert_receiver:
            raise ValueError("SCIURO_ALERT_RECEIVER is required with SCIURO_ALERTMANAGER_URL")
        if bool(self.node_filters) == bool(self.node_expression):
            raise ValueError(
                "exactly one of SCIURO_NODE_FILTERS or SCIURO_NODE_EXPRESSION must be set"
            )
        return self

    @property
    def metrics_host_port(self) -> tuple[str, int]:
        """Split metrics_addr into (host, port); IPv6 hosts may be bracketed."""
        host, _, port = self.metrics_addr.rpartition(":")
        host = host.removeprefix("[").removesuffix("]")
        return host or "0.0.0.0", int(port)
