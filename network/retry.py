"""Gateway fetch stage with failure classification and retry.

Classification rules:
- 405 is a permanent protocol error and 429 a rate limit; both fail at once
- 503, 504, timeouts, connection resets and 2xx bodies that are not JSON-RPC
  envelopes are transient and retried, up to 5 attempts in total
- anything else is unclassified and fails at once
"""

import logging
from enum import Enum
from typing import Callable, Optional

from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from .engine import NextHandler, Stage
from .errors import (
    GatewayResponseError,
    PermanentProtocolError,
    RateLimitError,
    RetryExhaustedError,
    TransientTransportError,
)
from .jsonrpc import JsonRpcRequest, JsonRpcResponse
from .transport import HttpResponse, TransportError, TransportErrorKind, TransportOutcome

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 5

ResponseCorrection = Callable[[JsonRpcRequest, TransportOutcome], Optional[JsonRpcResponse]]


class FailureClassification(str, Enum):
    """What a failed attempt means for the retry loop."""
    METHOD_NOT_FOUND = "MethodNotFound"
    RATE_LIMITED = "RateLimited"
    SERVICE_UNAVAILABLE = "ServiceUnavailable"
    GATEWAY_TIMEOUT = "GatewayTimeout"
    TRANSPORT_TIMEOUT = "TransportTimeout"
    CONNECTION_RESET = "ConnectionReset"
    NON_JSON_BODY = "NonJsonBody"
    UNCLASSIFIED = "Unclassified"


RETRYABLE = frozenset({
    FailureClassification.SERVICE_UNAVAILABLE,
    FailureClassification.GATEWAY_TIMEOUT,
    FailureClassification.TRANSPORT_TIMEOUT,
    FailureClassification.CONNECTION_RESET,
    FailureClassification.NON_JSON_BODY,
})

_STATUS_CLASSIFICATION = {
    405: FailureClassification.METHOD_NOT_FOUND,
    429: FailureClassification.RATE_LIMITED,
    503: FailureClassification.SERVICE_UNAVAILABLE,
    504: FailureClassification.GATEWAY_TIMEOUT,
}

_TRANSPORT_CLASSIFICATION = {
    TransportErrorKind.TIMEOUT: FailureClassification.TRANSPORT_TIMEOUT,
    TransportErrorKind.CONNECTION_RESET: FailureClassification.CONNECTION_RESET,
}


def classify_outcome(outcome: TransportOutcome) -> Optional[FailureClassification]:
    """Classify one transport outcome.

    Returns:
        None for a 2xx JSON-RPC response, otherwise the failure classification
    """
    if isinstance(outcome, TransportError):
        return _TRANSPORT_CLASSIFICATION.get(outcome.kind, FailureClassification.UNCLASSIFIED)
    if outcome.status in _STATUS_CLASSIFICATION:
        return _STATUS_CLASSIFICATION[outcome.status]
    if not outcome.ok:
        return FailureClassification.UNCLASSIFIED
    if outcome.json() is None:
        return FailureClassification.NON_JSON_BODY
    return None


def _describe(outcome: TransportOutcome) -> str:
    if isinstance(outcome, TransportError):
        return f"{outcome.kind.value}: {outcome.message}"
    return f"HTTP {outcome.status}: {outcome.body[:200]}"


class GatewayFetchStage(Stage):
    """Terminal pipeline stage that sends requests to the gateway.

    Turns up to ``MAX_ATTEMPTS`` transport attempts into one response. The
    attempt ceiling is the same for every retryable classification; only the
    wait between attempts can be changed.
    """

    def __init__(
        self,
        transport,
        provider_name: str = "GatewayProvider",
        wait=None,
        correct_response: Optional[ResponseCorrection] = None,
    ):
        """Initialize the fetch stage.

        Args:
            transport: Object with an async ``send(request)`` returning a transport outcome
            provider_name: Name used in the retries-exhausted message
            wait: tenacity wait strategy between attempts (default: fixed 1 second)
            correct_response: Hook that may replace a raw outcome with a response
        """
        self.transport = transport
        self.provider_name = provider_name
        self.wait = wait if wait is not None else wait_fixed(1)
        self.correct_response = correct_response

    async def handle(self, request: JsonRpcRequest, next_handler: NextHandler) -> JsonRpcResponse:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(MAX_ATTEMPTS),
            wait=self.wait,
            retry=retry_if_exception_type(TransientTransportError),
            before_sleep=self._log_retry,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    response = await self._attempt(request)
        except RetryError as e:
            last_error = e.last_attempt.exception()
            logger.error(f"{request.method} failed after {MAX_ATTEMPTS} attempts: {last_error}")
            raise RetryExhaustedError(self.provider_name, last_error) from last_error
        return response

    async def _attempt(self, request: JsonRpcRequest) -> JsonRpcResponse:
        outcome = await self.transport.send(request)

        if self.correct_response is not None:
            corrected = self.correct_response(request, outcome)
            if corrected is not None:
                return corrected

        classification = classify_outcome(outcome)
        if classification is None:
            return JsonRpcResponse.from_payload(outcome.json(), request.id)
        if classification == FailureClassification.METHOD_NOT_FOUND:
            raise PermanentProtocolError()
        if classification == FailureClassification.RATE_LIMITED:
            raise RateLimitError()
        if classification in RETRYABLE:
            raise TransientTransportError(classification, _describe(outcome))
        raise GatewayResponseError(f"Gateway request for {request.method} failed ({_describe(outcome)})")

    def _log_retry(self, retry_state) -> None:
        error = retry_state.outcome.exception()
        logger.warning(
            f"Retrying gateway request after {error.classification.value} "
            f"(attempt {retry_state.attempt_number}/{MAX_ATTEMPTS})"
        )
