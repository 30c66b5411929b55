"""
Network access layer: network selection, provider pipeline and block tracking.
"""

from .block_tracker import PollingBlockTracker
from .controller import ControllerState, NetworkController
from .engine import ProviderEngine, Stage
from .errors import (
    ConfigurationError,
    GatewayResponseError,
    JsonRpcError,
    PermanentProtocolError,
    ProviderDestroyedError,
    ProviderError,
    RateLimitError,
    RetryExhaustedError,
    TransientTransportError,
)
from .jsonrpc import JsonRpcRequest, JsonRpcResponse
from .networks import INFURA_NETWORKS, NetworkConfiguration, NetworkType
from .retry import FailureClassification, GatewayFetchStage, classify_outcome
from .transport import GatewayTransport, HttpResponse, TransportError, TransportErrorKind

__all__ = [
    "PollingBlockTracker",
    "ControllerState",
    "NetworkController",
    "ProviderEngine",
    "Stage",
    "ConfigurationError",
    "GatewayResponseError",
    "JsonRpcError",
    "PermanentProtocolError",
    "ProviderDestroyedError",
    "ProviderError",
    "RateLimitError",
    "RetryExhaustedError",
    "TransientTransportError",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "INFURA_NETWORKS",
    "NetworkConfiguration",
    "NetworkType",
    "FailureClassification",
    "GatewayFetchStage",
    "classify_outcome",
    "GatewayTransport",
    "HttpResponse",
    "TransportError",
    "TransportErrorKind",
]
