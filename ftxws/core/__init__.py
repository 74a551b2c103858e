# Core library
from ftxws.core.config import DEFAULT_ENDPOINT, ConnectionSettings, load_settings
from ftxws.core.exceptions import (
    ConfigurationError,
    ConnectionStateError,
    FTXWSError,
    InvalidConfigError,
    MalformedMessageError,
    MissingConfigError,
    NotConnectedError,
    ProtocolError,
    TransportError,
    wrap_exception,
)
from ftxws.core.structured_logging import (
    JSONFormatter,
    configure_logging,
    get_logger,
)

__all__ = [
    # Config
    "ConnectionSettings",
    "DEFAULT_ENDPOINT",
    "load_settings",
    # Exceptions
    "FTXWSError",
    "ConfigurationError",
    "MissingConfigError",
    "InvalidConfigError",
    "ConnectionStateError",
    "NotConnectedError",
    "TransportError",
    "ProtocolError",
    "MalformedMessageError",
    "wrap_exception",
    # Structured logging
    "configure_logging",
    "get_logger",
    "JSONFormatter",
]
