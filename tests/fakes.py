"""Scripted gateway transport used in place of a live endpoint."""

import json
from collections import deque
from typing import Any, Deque, List, Optional, Tuple

from network.jsonrpc import JsonRpcRequest
from network.transport import HttpResponse, TransportError, TransportErrorKind

INFURA_PROJECT_ID = "abc123"


def json_response(result: Any, status: int = 200) -> HttpResponse:
    return HttpResponse(status=status, body=json.dumps({"jsonrpc": "2.0", "id": 1, "result": result}))


def error_response(code: int, message: str) -> HttpResponse:
    return HttpResponse(
        status=200,
        body=json.dumps({"jsonrpc": "2.0", "id": 1, "error": {"code": code, "message": message}}),
    )


def status_response(status: int, body: str = "") -> HttpResponse:
    return HttpResponse(status=status, body=body)


def timeout_error() -> TransportError:
    return TransportError(TransportErrorKind.TIMEOUT, "ETIMEDOUT: Some error message")


def connection_reset_error() -> TransportError:
    return TransportError(TransportErrorKind.CONNECTION_RESET, "ECONNRESET: Some error message")


class FakeGateway:
    """
    Transport that answers from per-method scripts and records every call.

    Unscripted requests get a default answer: ``eth_blockNumber`` returns
    ``block_number``, ``eth_getBlockByNumber`` returns a small block object
    and everything else returns a null result.
    """

    def __init__(self, url: str = "https://fake.gateway/v3/abc123", timeout: float = 10.0, headers=None,
                 block_number: str = "0x1"):
        self.url = url
        self.timeout = timeout
        self.headers = headers or {}
        self.block_number = block_number
        self.calls: List[JsonRpcRequest] = []
        self.closed = False
        self._scripts: List[Tuple[str, Optional[list], Deque]] = []

    def reply(self, method: str, *outcomes, params: Optional[list] = None) -> "FakeGateway":
        """Queue ``outcomes`` for ``method`` (optionally only for exact ``params``)."""
        self._scripts.append((method, params, deque(outcomes)))
        return self

    def reply_times(self, method: str, times: int, outcome, params: Optional[list] = None) -> "FakeGateway":
        return self.reply(method, *([outcome] * times), params=params)

    def calls_for(self, method: str, params: Optional[list] = None) -> List[JsonRpcRequest]:
        return [
            call for call in self.calls
            if call.method == method and (params is None or call.params == params)
        ]

    async def send(self, request: JsonRpcRequest):
        self.calls.append(request)
        for method, params, queue in self._scripts:
            if method == request.method and (params is None or params == request.params) and queue:
                return queue.popleft()
        return self._default(request)

    async def close(self) -> None:
        self.closed = True

    def _default(self, request: JsonRpcRequest) -> HttpResponse:
        if request.method == "eth_blockNumber":
            return json_response(self.block_number)
        if request.method == "eth_getBlockByNumber":
            number = request.params[0] if request.params else "latest"
            if number == "latest":
                number = self.block_number
            return json_response({"number": number, "hash": f"0xhash{number}", "transactions": []})
        return json_response(None)


class GatewayFactory:
    """``transport_factory`` for NetworkController that hands out FakeGateways."""

    def __init__(self, block_number: str = "0x1"):
        self.block_number = block_number
        self.created: List[FakeGateway] = []

    def __call__(self, url: str, timeout: float = 10.0, headers=None) -> FakeGateway:
        gateway = FakeGateway(url, timeout=timeout, headers=headers, block_number=self.block_number)
        self.created.append(gateway)
        return gateway

    @property
    def latest(self) -> FakeGateway:
        return self.created[-1]
