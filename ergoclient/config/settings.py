"""Client configuration loading and validation."""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, ClassVar, Dict, Iterable, Literal

import yaml
from pydantic import AnyUrl, Field, PositiveFloat, PositiveInt
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_LOCATIONS: tuple[Path, ...] = (
    Path("/etc/ergolive/client.yaml"),
    Path("/etc/ergolive/client.yml"),
    Path("./config/client.yaml"),
    Path("./config/client.yml"),
)


class ClientSettings(BaseSettings):
    """Validated settings for the live session client."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="ERGO_CLIENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Endpoint
    server_url: AnyUrl | None = Field(
        default=None,
        description="Explicit WebSocket endpoint; overrides host/secure/path when set.",
    )
    server_host: str = Field(
        default="localhost:8080",
        description="Host (and optional port) of the live server.",
    )
    server_secure: bool = Field(
        default=False,
        description="Use wss:// instead of ws:// when building the endpoint.",
    )
    server_path: str = Field(
        default="/ws",
        description="WebSocket path on the live server.",
    )
    auth_token: str | None = Field(
        default=None,
        description="Opaque token appended to the endpoint as the token query parameter.",
        repr=False,
    )
    transport: Literal["dummy", "websocket"] = Field(
        default="websocket",
        description="Transport implementation to use.",
    )

    # Session behaviour
    reconnect_delay_seconds: PositiveFloat = Field(
        default=5.0,
        description="Fixed delay before retrying after an uncommanded close.",
    )
    message_buffer_size: PositiveInt = Field(
        default=50,
        description="Number of most recent envelopes kept in the shared buffer.",
    )
    open_timeout_seconds: PositiveFloat = Field(
        default=10.0,
        description="Maximum time allowed for the opening handshake.",
    )
    ping_interval_seconds: PositiveFloat | None = Field(
        default=20.0,
        description="Keepalive ping interval; None disables pings.",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Minimum log level for the client process.",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        if isinstance(value, str):
            return value.upper()
        return value

    @field_validator("server_path", mode="before")
    @classmethod
    def _normalize_path(cls, value: str) -> str:
        if isinstance(value, str) and not value.startswith("/"):
            return "/" + value
        return value

    config_path: Path | None = Field(
        default=None,
        description="Resolved path to the on-disk config that seeded the settings.",
        exclude=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[ClientSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            cls._yaml_settings_source,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )

    @staticmethod
    def _yaml_settings_source(settings_cls: type[ClientSettings] | None = None) -> Dict[str, Any]:
        candidates: Iterable[Path] = ClientSettings._resolve_candidate_paths()

        for path in candidates:
            data = ClientSettings._load_file(path)
            if data is not None:
                data.setdefault("config_path", path)
                return data
        return {}

    @staticmethod
    def _resolve_candidate_paths() -> Iterable[Path]:
        explicit = os.getenv("ERGO_CLIENT_CONFIG_FILE")
        if explicit:
            yield Path(explicit).expanduser()
        yield from DEFAULT_CONFIG_LOCATIONS

    @staticmethod
    def _load_file(path: Path) -> Dict[str, Any] | None:
        if not path.is_file():
            return None
        suffix = path.suffix.lower()
        try:
            with path.open("r", encoding="utf-8") as handle:
                if suffix in {".yaml", ".yml"}:
                    raw = yaml.safe_load(handle)
                elif suffix == ".json":
                    raw = json.load(handle)
                else:
                    return None
        except OSError as exc:
            raise RuntimeError(f"Failed to read client config file {path}") from exc
        except (yaml.YAMLError, json.JSONDecodeError) as exc:
            raise ValueError(f"Invalid client config file {path}") from exc

        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise ValueError(f"Client config file {path} must contain a mapping at top level.")
        return raw


@lru_cache()
def get_settings() -> ClientSettings:
    """Return memoized client settings."""

    return ClientSettings()
