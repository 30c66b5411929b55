"""JSON-RPC 2.0 envelope types shared by every stage of the provider pipeline."""

import itertools
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

_id_counter = itertools.count(1)


def next_request_id() -> int:
    """Return a process-wide unique request id."""
    return next(_id_counter)


@dataclass
class JsonRpcRequest:
    """A single JSON-RPC call."""
    method: str
    params: List[Any] = field(default_factory=list)
    id: Any = None
    jsonrpc: str = "2.0"

    def __post_init__(self):
        if self.id is None:
            self.id = next_request_id()
        if self.params is None:
            self.params = []

    def to_payload(self) -> Dict[str, Any]:
        return {
            "jsonrpc": self.jsonrpc,
            "id": self.id,
            "method": self.method,
            "params": list(self.params),
        }

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "JsonRpcRequest":
        """Build a request from a ``{jsonrpc, id, method, params}`` mapping.

        Raises:
            ValueError: If the mapping has no method name
        """
        method = payload.get("method")
        if not isinstance(method, str) or not method:
            raise ValueError("JSON-RPC request is missing a method")
        return cls(
            method=method,
            params=list(payload.get("params") or []),
            id=payload.get("id"),
        )


@dataclass
class JsonRpcResponse:
    """Either a result or an error for one request id."""
    id: Any
    result: Any = None
    error: Optional[Dict[str, Any]] = None
    jsonrpc: str = "2.0"

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def with_id(self, request_id: Any) -> "JsonRpcResponse":
        """Copy of this response addressed to another request."""
        return replace(self, id=request_id)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            payload["error"] = self.error
        else:
            payload["result"] = self.result
        return payload

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], request_id: Any) -> "JsonRpcResponse":
        """Build a response from a gateway body, keeping the caller's request id."""
        error = payload.get("error")
        if error is not None:
            if not isinstance(error, dict):
                error = {"code": -32603, "message": str(error)}
            return cls(id=request_id, error=error)
        return cls(id=request_id, result=payload.get("result"))
