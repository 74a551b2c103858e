"""ftxws: resilient client for the FTX websocket API."""

from ftxws.core.config import ConnectionSettings, load_settings
from ftxws.core.exceptions import FTXWSError, NotConnectedError
from ftxws.realtime.connection import Connection, ConnectionState

__version__ = "0.1.0"

__all__ = [
    "Connection",
    "ConnectionState",
    "ConnectionSettings",
    "load_settings",
    "FTXWSError",
    "NotConnectedError",
]
