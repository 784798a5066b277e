"""
Exporter configuration model.
"""

from datetime import timedelta
from typing import Any, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from simplefin_exporter.utils.duration import parse_duration

DEFAULT_BIND_ADDRESS = "127.0.0.1"
DEFAULT_PORT = 8000
DEFAULT_UPDATE_INTERVAL = timedelta(hours=1)


class ExporterConfig(BaseSettings):
    """
    Settings for one exporter process.

    Every field can be set from a ``SIMPLEFIN_*`` environment variable;
    keyword arguments (the command line flags) take precedence. Built once
    at startup and handed to the server, which passes it on to the
    credential resolver. Nothing mutates it afterwards.
    """

    model_config = SettingsConfigDict(env_prefix="SIMPLEFIN_", frozen=True)

    # Credential sources
    setup_token: Optional[str] = None
    access_url: Optional[str] = None
    access_url_file: Optional[str] = None

    # Durable credential store (Kubernetes secret)
    secret_name: Optional[str] = None
    secret_namespace: Optional[str] = None

    account_mappings_file: Optional[str] = None

    # Metrics endpoint
    bind_address: str = DEFAULT_BIND_ADDRESS
    port: int = Field(default=DEFAULT_PORT, ge=0, le=65535)

    update_interval: timedelta = DEFAULT_UPDATE_INTERVAL
    debug: bool = False

    @field_validator(
        "setup_token",
        "access_url",
        "access_url_file",
        "secret_name",
        "secret_namespace",
        "account_mappings_file",
        mode="before",
    )
    @classmethod
    def empty_as_unset(cls, value: Any) -> Any:
        """Treat empty strings as not configured."""
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("update_interval", mode="before")
    @classmethod
    def parse_update_interval(cls, value: Any) -> Any:
        """Accept duration strings such as "30m" or "1h30m"."""
        if isinstance(value, str):
            try:
                return parse_duration(value)
            except ValueError as e:
                raise ValueError(f"invalid update interval: {e}") from e
        return value

    @property
    def store_configured(self) -> bool:
        """Whether both the secret name and namespace are set."""
        return bool(self.secret_name) and bool(self.secret_namespace)
