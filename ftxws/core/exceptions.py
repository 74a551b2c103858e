"""
Exception hierarchy for ftxws.

Only NotConnectedError is surfaced to callers of the public connection API;
the rest are raised and absorbed internally or at configuration time.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class FTXWSError(Exception):
    """
    Base exception for all ftxws errors.

    All custom exceptions should inherit from this class.
    """

    error_code: str = "FTXWS_ERROR"

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        """
        Initialize error.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            details: Additional context/details
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.error_code
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "cause": str(self.cause) if self.cause else None,
        }

    def __str__(self) -> str:
        parts = [f"[{self.error_code}] {self.message}"]
        if self.details:
            parts.append(f" Details: {self.details}")
        if self.cause:
            parts.append(f" Caused by: {self.cause}")
        return "".join(parts)


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(FTXWSError):
    """Base class for configuration-related errors."""

    error_code = "CONFIG_ERROR"


class MissingConfigError(ConfigurationError):
    """Required configuration is missing."""

    error_code = "CONFIG_MISSING"


class InvalidConfigError(ConfigurationError):
    """Configuration value is invalid."""

    error_code = "CONFIG_INVALID"


# =============================================================================
# Connection Errors
# =============================================================================


class ConnectionStateError(FTXWSError):
    """Operation is not allowed in the current connection state."""

    error_code = "CONNECTION_STATE"


class NotConnectedError(ConnectionStateError):
    """Connection is neither open nor being re-established."""

    error_code = "CONNECTION_NOT_CONNECTED"

    def __init__(
        self,
        message: str = "Not connected.",
        *,
        state: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.state = state
        if state:
            self.details["state"] = state


class TransportError(FTXWSError):
    """The underlying websocket could not be opened."""

    error_code = "TRANSPORT_ERROR"

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.url = url
        if url:
            self.details["url"] = url


# =============================================================================
# Protocol Errors
# =============================================================================


class ProtocolError(FTXWSError):
    """Base class for wire protocol errors."""

    error_code = "PROTOCOL_ERROR"


class MalformedMessageError(ProtocolError):
    """Inbound frame is not a JSON object."""

    error_code = "PROTOCOL_MALFORMED"

    def __init__(
        self,
        message: str,
        *,
        raw: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.raw = raw
        if raw is not None:
            self.details["raw"] = raw[:200]


# =============================================================================
# Helper Functions
# =============================================================================


def wrap_exception(
    exception: Exception,
    wrapper_class: type = FTXWSError,
    message: Optional[str] = None,
    **kwargs,
) -> FTXWSError:
    """
    Wrap a standard exception in an ftxws exception.

    Args:
        exception: The original exception
        wrapper_class: FTXWSError subclass to use
        message: Optional custom message
        **kwargs: Extra keyword arguments for the wrapper class

    Returns:
        Wrapped FTXWSError
    """
    if isinstance(exception, FTXWSError):
        return exception

    return wrapper_class(
        message or str(exception),
        cause=exception,
        **kwargs,
    )
