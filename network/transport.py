"""Gateway transport: one JSON-RPC round trip over HTTP.

The transport never retries and never interprets status codes. Every call
returns either the raw HTTP status and body or a ``TransportError`` that
names what went wrong on the wire; deciding what that means is left to the
retry stage.
"""

import asyncio
import errno
import json
import logging
import socket
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

import aiohttp

from .jsonrpc import JsonRpcRequest

logger = logging.getLogger(__name__)


class TransportErrorKind(str, Enum):
    """Wire-level failure kinds."""
    TIMEOUT = "timeout"
    CONNECTION_RESET = "connection_reset"
    DNS = "dns"
    CONNECTION = "connection"
    CLOSED = "closed"


@dataclass
class HttpResponse:
    """Status and raw text of a completed HTTP exchange."""
    status: int
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Optional[Dict[str, Any]]:
        """Parse the body as a JSON-RPC envelope, or None if it is not one."""
        try:
            payload = json.loads(self.body)
        except (TypeError, ValueError):
            return None
        if not isinstance(payload, dict) or ("result" not in payload and "error" not in payload):
            return None
        return payload


@dataclass
class TransportError:
    """A request that never produced an HTTP response."""
    kind: TransportErrorKind
    message: str = ""


TransportOutcome = Union[HttpResponse, TransportError]


class GatewayTransport:
    """Async HTTP transport for one gateway endpoint."""

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        headers: Optional[Dict[str, str]] = None,
    ):
        """Initialize transport for an endpoint.

        Args:
            url: Gateway endpoint URL
            timeout: Request timeout in seconds (default: 10.0)
            headers: Extra HTTP headers sent with every request
        """
        self.url = url
        self.timeout = timeout
        self.headers = {
            "Content-Type": "application/json",
            **(headers or {}),
        }
        self.session: Optional[aiohttp.ClientSession] = None
        self.closed = False

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def connect(self) -> None:
        """Create aiohttp session for gateway requests."""
        self.closed = False
        if self.session is None:
            self.session = aiohttp.ClientSession()
            logger.info(f"Gateway session created for {self._host()}")

    async def close(self) -> None:
        """Close the session. Later sends fail fast with a ``closed`` outcome."""
        self.closed = True
        if self.session:
            await self.session.close()
            self.session = None
            logger.info(f"Gateway session closed for {self._host()}")

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self.session is None:
            await self.connect()
        return self.session

    def _host(self) -> str:
        # Keeps credentials in the URL path out of the logs.
        return self.url.split("/")[2] if "://" in self.url else self.url

    async def send(self, request: JsonRpcRequest) -> TransportOutcome:
        """Perform one round trip for ``request``.

        Returns:
            HttpResponse for any status code, or TransportError
        """
        if self.closed:
            return TransportError(TransportErrorKind.CLOSED, "transport is closed")

        session = await self._ensure_session()
        logger.debug(f"POST {request.method} (id={request.id}) to {self._host()}")
        try:
            async with session.request(
                "POST",
                self.url,
                json=request.to_payload(),
                headers=self.headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                # undecodable bytes are kept as replacement characters so the
                # retry stage sees a non-JSON body
                body = (await response.read()).decode("utf-8", errors="replace")
                return HttpResponse(status=response.status, body=body)

        except asyncio.TimeoutError:
            return TransportError(TransportErrorKind.TIMEOUT, f"request timed out after {self.timeout}s")

        except (aiohttp.ServerDisconnectedError, ConnectionResetError) as e:
            return TransportError(TransportErrorKind.CONNECTION_RESET, str(e) or "connection reset")

        except aiohttp.ClientConnectorError as e:
            if isinstance(e.os_error, socket.gaierror):
                return TransportError(TransportErrorKind.DNS, str(e))
            return TransportError(TransportErrorKind.CONNECTION, str(e))

        except aiohttp.ClientOSError as e:
            if e.errno == errno.ECONNRESET:
                return TransportError(TransportErrorKind.CONNECTION_RESET, str(e))
            return TransportError(TransportErrorKind.CONNECTION, str(e))

        except aiohttp.ClientError as e:
            return TransportError(TransportErrorKind.CONNECTION, str(e))
