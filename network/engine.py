"""Provider engine: an ordered, immutable pipeline of request stages.

Each stage receives a request and a ``next_handler`` coroutine for the rest
of the pipeline. A stage may answer the request itself, forward it and
post-process the response, or forward it unchanged. The engine has no
network or retry knowledge of its own.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from .errors import JsonRpcError, ProviderDestroyedError, ProviderError
from .jsonrpc import JsonRpcRequest, JsonRpcResponse

logger = logging.getLogger(__name__)

NextHandler = Callable[[JsonRpcRequest], Awaitable[JsonRpcResponse]]


class Stage(ABC):
    """One unit of the provider pipeline."""

    @abstractmethod
    async def handle(self, request: JsonRpcRequest, next_handler: NextHandler) -> JsonRpcResponse:
        """Answer ``request`` or delegate to ``next_handler``."""


class ProviderEngine:
    """The single object callers submit JSON-RPC requests to."""

    def __init__(self, stages: Sequence[Stage], name: str = "provider"):
        if not stages:
            raise ValueError("ProviderEngine needs at least one stage")
        self._stages = tuple(stages)
        self.name = name
        self._destroyed = False

    @property
    def stages(self) -> tuple:
        return self._stages

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def destroy(self) -> None:
        """Mark the engine as replaced. In-flight results are discarded from now on."""
        if not self._destroyed:
            self._destroyed = True
            logger.info(f"Provider engine {self.name} destroyed")

    async def submit(self, request: JsonRpcRequest) -> JsonRpcResponse:
        """Run ``request`` through the pipeline.

        Raises:
            ProviderDestroyedError: If the engine was destroyed before or during the call
            ProviderError: For gateway failures surfaced by the stages
        """
        if self._destroyed:
            raise ProviderDestroyedError(f"Provider {self.name} has been destroyed")

        try:
            response = await self._dispatch(0, request)
        except ProviderError as e:
            if self._destroyed and not isinstance(e, ProviderDestroyedError):
                raise ProviderDestroyedError(
                    f"Provider {self.name} was replaced while {request.method} was in flight"
                ) from e
            raise

        if self._destroyed:
            logger.debug(f"Discarding {request.method} result from destroyed provider {self.name}")
            raise ProviderDestroyedError(f"Provider {self.name} was replaced while {request.method} was in flight")
        return response

    async def _dispatch(self, index: int, request: JsonRpcRequest) -> JsonRpcResponse:
        if index >= len(self._stages):
            raise ProviderError(f"No stage answered {request.method}")

        async def next_handler(next_request: JsonRpcRequest) -> JsonRpcResponse:
            return await self._dispatch(index + 1, next_request)

        return await self._stages[index].handle(request, next_handler)

    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """Submit ``method`` and return its result.

        Raises:
            JsonRpcError: If the gateway answered with a JSON-RPC error
        """
        response = await self.submit(JsonRpcRequest(method=method, params=params or []))
        if response.is_error:
            raise JsonRpcError(response.error)
        return response.result

    async def handle_payload(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Answer a raw JSON-RPC 2.0 call with a raw JSON-RPC 2.0 response.

        Provider errors are reported in the response's ``error`` member
        instead of being raised. Any other exception is reported as an
        internal error (-32603).
        """
        try:
            request = JsonRpcRequest.from_payload(payload)
        except ValueError as e:
            return JsonRpcResponse(
                id=payload.get("id"),
                error={"code": -32600, "message": str(e)},
            ).to_payload()

        try:
            response = await self.submit(request)
        except ProviderError as e:
            response = JsonRpcResponse(id=request.id, error=e.to_error_object())
        except Exception as e:
            logger.exception(f"Unexpected error handling {request.method} on {self.name}")
            response = JsonRpcResponse(id=request.id, error=ProviderError(f"Internal error: {e}").to_error_object())
        return response.to_payload()
