"""Exceptions raised by the network access layer.

Every error carries the JSON-RPC error code it maps to, so the provider
engine can turn any of them into a ``{"error": {...}}`` response.
"""

from typing import Any, Dict, Optional


class ProviderError(Exception):
    """Base exception for provider errors."""

    code = -32603

    def __init__(self, message: str, data: Any = None):
        super().__init__(message)
        self.message = message
        self.data = data

    def to_error_object(self) -> Dict[str, Any]:
        error: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


class PermanentProtocolError(ProviderError):
    """Raised when the gateway reports that the method does not exist."""

    code = -32601

    def __init__(self, message: str = "The method does not exist / is not available.", data: Any = None):
        super().__init__(message, data)


class RateLimitError(ProviderError):
    """Raised when the gateway is throttling requests."""

    code = -32005

    def __init__(self, message: str = "Request is being rate limited.", data: Any = None):
        super().__init__(message, data)


class TransientTransportError(ProviderError):
    """Raised for a retryable gateway failure (503, 504, timeout, reset, non-JSON body)."""

    def __init__(self, classification, detail: str = ""):
        message = f"Gateway request failed ({classification.value})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.classification = classification


class RetryExhaustedError(ProviderError):
    """Raised when every retry attempt failed with a transient error."""

    def __init__(self, provider_name: str, last_error: Optional[Exception] = None):
        message = f"{provider_name} - cannot complete request. All retries exhausted."
        if last_error is not None:
            message = f"{message}\nOriginal Error:\n{last_error}"
        super().__init__(message)
        self.provider_name = provider_name
        self.last_error = last_error


class GatewayResponseError(ProviderError):
    """Raised for a gateway failure that is neither retryable nor a known protocol error."""
    pass


class JsonRpcError(ProviderError):
    """Raised when the gateway answered with a JSON-RPC error object."""

    def __init__(self, error: Dict[str, Any]):
        super().__init__(error.get("message", "Unknown error"), error.get("data"))
        self.code = error.get("code", ProviderError.code)


class ConfigurationError(ProviderError):
    """Raised for an invalid network configuration or a missing provider."""
    pass


class ProviderDestroyedError(ConfigurationError):
    """Raised when a request completes on a provider that has been replaced."""
    pass
