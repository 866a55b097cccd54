"""Exception hierarchy for lnbridge.

Every error raised by this package derives from :class:`LnBridgeError` and
carries a structured ``context`` dict that can be passed straight to the
structured logger.

Usage:
    from lnbridge.exceptions import LNbankApiError, UnsupportedErrorCodeError

    try:
        await client.get_invoice(invoice_id)
    except LNbankApiError as e:
        logger.error("invoice_lookup_failed", error=str(e), context=e.context)
"""

from __future__ import annotations

from typing import Any


class LnBridgeError(Exception):
    """Base exception for all lnbridge errors.

    Attributes:
        message: Human-readable error message
        context: Additional context for debugging (dict)
        original_error: Original exception if wrapped
    """

    def __init__(
        self,
        message: str,
        *,
        context: dict[str, Any] | None = None,
        original_error: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.original_error = original_error

    def __str__(self) -> str:
        base = self.message
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base = f"{base} ({ctx_str})"
        if self.original_error:
            base = f"{base} [caused by: {type(self.original_error).__name__}]"
        return base

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, context={self.context!r})"


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(LnBridgeError):
    """Raised when client configuration is invalid or missing."""

    def __init__(
        self,
        message: str,
        *,
        setting: str | None = None,
        expected: str | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if setting:
            context["setting"] = setting
        if expected:
            context["expected"] = expected
        kwargs["context"] = context
        super().__init__(message, **kwargs)


class ConnectionStringError(ConfigurationError):
    """Raised when a ``type=...;server=...`` connection string cannot be used."""


# =============================================================================
# Validation & Parse Errors
# =============================================================================


class ValidationError(LnBridgeError):
    """Raised when a value violates a domain constraint."""

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if field:
            context["field"] = field
        if value is not None:
            context["value"] = str(value)[:100]  # Truncate for safety
        kwargs["context"] = context
        super().__init__(message, **kwargs)


class ParseError(ValidationError):
    """Raised when backend-supplied text cannot be parsed into a domain value."""


class NodeInfoParseError(ParseError):
    """Raised for a malformed ``pubkey@host:port`` peer URI."""


class PubKeyParseError(ParseError):
    """Raised for malformed public key material."""


class OutPointParseError(ParseError):
    """Raised for a malformed channel point."""


class AddressParseError(ParseError):
    """Raised for an on-chain address that does not belong to the network."""


# =============================================================================
# Backend Integration Errors
# =============================================================================


class IntegrationError(LnBridgeError):
    """Base class for errors coming from a node backend."""


class TransportError(IntegrationError):
    """Raised when the request to the backend could not be completed."""

    def __init__(
        self,
        message: str,
        *,
        url: str | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if url:
            context["url"] = url[:100]  # Truncate long URLs
        kwargs["context"] = context
        super().__init__(message, **kwargs)


class LNbankApiError(TransportError):
    """Raised when the LNbank API answers with an error payload.

    ``error_code`` is the machine-readable code from the response body; the
    message is the backend's human-readable text, untouched.
    """

    def __init__(
        self,
        message: str,
        *,
        error_code: str,
        status_code: int | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        context["error_code"] = error_code
        if status_code:
            context["status_code"] = status_code
        kwargs["context"] = context
        super().__init__(message, **kwargs)
        self.error_code = error_code
        self.status_code = status_code


class UnsupportedErrorCodeError(IntegrationError):
    """Raised when a backend error code has no mapping for the operation.

    Signals a contract mismatch between lnbridge and the backend version; it is
    never converted into a successful result.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        error_code: str,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        context["operation"] = operation
        context["error_code"] = error_code
        kwargs["context"] = context
        super().__init__(message, **kwargs)
        self.operation = operation
        self.error_code = error_code


# =============================================================================
# Listener Errors
# =============================================================================


class ListenerError(LnBridgeError):
    """Base class for invoice listener errors."""


class ListenerConnectionError(ListenerError):
    """Raised when the push channel cannot be established."""


class ListenerClosedError(ListenerError):
    """Raised when consuming from a closed listener."""


class HubClosedError(ListenerError):
    """Raised when the hub sends a close message carrying an error."""


class ListenerStateError(ListenerError):
    """Raised on an invalid listener lifecycle transition."""

    def __init__(
        self,
        message: str,
        *,
        current_state: str | None = None,
        attempted_action: str | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if current_state:
            context["current_state"] = current_state
        if attempted_action:
            context["attempted_action"] = attempted_action
        kwargs["context"] = context
        super().__init__(message, **kwargs)


__all__ = [
    # Base
    "LnBridgeError",
    # Configuration
    "ConfigurationError",
    "ConnectionStringError",
    # Validation
    "ValidationError",
    "ParseError",
    "NodeInfoParseError",
    "PubKeyParseError",
    "OutPointParseError",
    "AddressParseError",
    # Integration
    "IntegrationError",
    "TransportError",
    "LNbankApiError",
    "UnsupportedErrorCodeError",
    # Listener
    "ListenerError",
    "ListenerConnectionError",
    "ListenerClosedError",
    "HubClosedError",
    "ListenerStateError",
]
