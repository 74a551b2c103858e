"""
Connection settings and loader.
Uses Pydantic for validation.
"""

from pathlib import Path
from typing import Optional
import json
import os

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, SecretStr, ValidationError, field_validator, model_validator

from ftxws.core.exceptions import InvalidConfigError, MissingConfigError


# this endpoint is used by the venue's own sample client
DEFAULT_ENDPOINT = "ftx.com/ws/"

# env var -> settings field
ENV_FIELDS = {
    "FTX_API_KEY": "key",
    "FTX_API_SECRET": "secret",
    "FTX_SUBACCOUNT": "subaccount",
    "FTX_WS_ENDPOINT": "endpoint",
}


class ConnectionSettings(BaseModel):
    """
    Settings for a single websocket connection.

    Presence of ``key`` enables automatic login on connect.
    """
    endpoint: str = Field(default=DEFAULT_ENDPOINT, description="Websocket endpoint, scheme optional")
    key: Optional[str] = Field(default=None, description="API key")
    secret: Optional[SecretStr] = Field(default=None, repr=False, exclude=True, description="API secret")
    subaccount: Optional[str] = Field(default=None, description="Subaccount nickname")

    reconnect_delay: float = Field(default=0.5, description="Fixed delay before reopening, seconds")
    ping_interval: float = Field(default=5.0, description="Liveness ping period, seconds")
    stale_timeout: float = Field(default=2.0, description="Ping round-trip treated as stale, seconds")
    pong_window: float = Field(default=5.0, description="Max age of a ping a pong may answer, seconds")
    open_timeout: float = Field(default=10.0, description="Websocket opening handshake timeout")
    close_timeout: float = Field(default=2.0, description="Websocket closing handshake timeout")

    @field_validator(
        "reconnect_delay", "ping_interval", "stale_timeout", "pong_window",
        "open_timeout", "close_timeout",
    )
    @classmethod
    def _non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator("key", "subaccount")
    @classmethod
    def _blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def _secret_required_with_key(self) -> "ConnectionSettings":
        if self.key and not (self.secret and self.secret.get_secret_value()):
            raise ValueError("secret is required when key is set")
        return self

    @property
    def url(self) -> str:
        """Full websocket URL."""
        if "://" in self.endpoint:
            return self.endpoint
        return f"wss://{self.endpoint}"

    @property
    def has_credentials(self) -> bool:
        return bool(self.key)

    def secret_value(self) -> Optional[str]:
        return self.secret.get_secret_value() if self.secret else None

    def __str__(self) -> str:
        return (
            f"ConnectionSettings(url={self.url}, "
            f"key={'<MASKED>' if self.key else None}, "
            f"subaccount={self.subaccount}, "
            f"reconnect_delay={self.reconnect_delay})"
        )

    def __repr__(self) -> str:
        return self.__str__()


def settings_from_env() -> dict:
    """Collect FTX_* environment variables as settings fields."""
    return {
        field: os.environ[name]
        for name, field in ENV_FIELDS.items()
        if os.environ.get(name)
    }


def load_settings(
    config_path: Optional[Path] = None,
    overrides: Optional[dict] = None,
    *,
    use_env: bool = True,
) -> ConnectionSettings:
    """
    Load connection settings.

    Priority:
    1. Explicit overrides
    2. Environment variables (and .env)
    3. Config file (if provided)
    4. Defaults
    """
    config_data: dict = {}

    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.exists():
            raise MissingConfigError(
                f"Config file not found: {config_path}",
                details={"path": str(config_path)},
            )
        with open(config_path, "r", encoding="utf-8") as f:
            config_data.update(json.load(f))

    if use_env:
        load_dotenv(find_dotenv(usecwd=True))  # .env from the working directory or its parents
        config_data.update(settings_from_env())

    if overrides:
        config_data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return ConnectionSettings(**config_data)
    except ValidationError as e:
        raise InvalidConfigError(
            "Invalid connection settings",
            details={"errors": [err["msg"] for err in e.errors()]},
            cause=e,
        ) from e
