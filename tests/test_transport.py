"""Test specifications for the gateway transport.

Covers:
- Session lifecycle (connect, close, context manager)
- One POST per send with the JSON-RPC envelope and headers
- Raw status/body passthrough with no interpretation
- Mapping of wire failures to transport error kinds
"""

import asyncio
import errno
import socket
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from network.jsonrpc import JsonRpcRequest
from network.transport import GatewayTransport, HttpResponse, TransportError, TransportErrorKind

GATEWAY_URL = "https://mainnet.infura.io/v3/abc123"


# ==================== FIXTURES ====================

@pytest.fixture
def transport():
    return GatewayTransport(GATEWAY_URL, timeout=5.0, headers={"Infura-Source": "wallet/internal"})


@pytest.fixture
async def connected_transport(transport):
    await transport.connect()
    yield transport
    await transport.close()


def mock_http_response(status: int, body):
    response = AsyncMock()
    response.status = status
    response.read = AsyncMock(return_value=body.encode() if isinstance(body, str) else body)
    return response


# ==================== SESSION TESTS ====================

class TestSessionLifecycle:
    """Test aiohttp session management."""

    @pytest.mark.asyncio
    async def test_connect_creates_session(self, transport):
        assert transport.session is None
        await transport.connect()
        assert isinstance(transport.session, aiohttp.ClientSession)
        await transport.close()

    @pytest.mark.asyncio
    async def test_connect_idempotent(self, transport):
        await transport.connect()
        session1 = transport.session
        await transport.connect()
        assert transport.session is session1
        await transport.close()

    @pytest.mark.asyncio
    async def test_close_closes_session(self, transport):
        await transport.connect()
        await transport.close()
        assert transport.session is None
        assert transport.closed is True

    @pytest.mark.asyncio
    async def test_context_manager_connect_and_close(self, transport):
        async with transport as t:
            assert t.session is not None
        assert transport.session is None

    @pytest.mark.asyncio
    async def test_send_on_closed_transport_makes_no_request(self, transport):
        await transport.close()
        with patch("aiohttp.ClientSession.request") as mock_request:
            outcome = await transport.send(JsonRpcRequest("eth_blockNumber"))

        assert outcome == TransportError(TransportErrorKind.CLOSED, "transport is closed")
        mock_request.assert_not_called()
        assert transport.session is None

    def test_default_content_type_header(self):
        transport = GatewayTransport(GATEWAY_URL)
        assert transport.headers == {"Content-Type": "application/json"}


# ==================== REQUEST TESTS ====================

class TestSend:
    """Test a single round trip."""

    @pytest.mark.asyncio
    async def test_send_posts_jsonrpc_envelope(self, connected_transport):
        with patch.object(connected_transport.session, "request") as mock_request:
            mock_request.return_value.__aenter__.return_value = mock_http_response(
                200, '{"jsonrpc": "2.0", "id": 7, "result": "0x1"}'
            )

            await connected_transport.send(JsonRpcRequest("eth_blockNumber", [], id=7))

            args, kwargs = mock_request.call_args
            assert args == ("POST", GATEWAY_URL)
            assert kwargs["json"] == {"jsonrpc": "2.0", "id": 7, "method": "eth_blockNumber", "params": []}
            assert kwargs["headers"]["Content-Type"] == "application/json"
            assert kwargs["headers"]["Infura-Source"] == "wallet/internal"
            assert kwargs["timeout"].total == 5.0

    @pytest.mark.asyncio
    async def test_send_returns_status_and_body(self, connected_transport):
        with patch.object(connected_transport.session, "request") as mock_request:
            mock_request.return_value.__aenter__.return_value = mock_http_response(
                200, '{"jsonrpc": "2.0", "id": 1, "result": "0x1"}'
            )

            outcome = await connected_transport.send(JsonRpcRequest("eth_blockNumber"))

            assert outcome == HttpResponse(200, '{"jsonrpc": "2.0", "id": 1, "result": "0x1"}')
            assert outcome.json()["result"] == "0x1"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [405, 429, 500, 503, 504])
    async def test_error_statuses_are_not_interpreted(self, connected_transport, status):
        with patch.object(connected_transport.session, "request") as mock_request:
            mock_request.return_value.__aenter__.return_value = mock_http_response(status, "error page")

            outcome = await connected_transport.send(JsonRpcRequest("arbitraryRpcMethod"))

            assert outcome == HttpResponse(status, "error page")
            assert mock_request.call_count == 1

    @pytest.mark.asyncio
    async def test_send_creates_session_if_missing(self, transport):
        with patch("aiohttp.ClientSession.request") as mock_request:
            mock_request.return_value.__aenter__.return_value = mock_http_response(200, "Not Found")

            outcome = await transport.send(JsonRpcRequest("eth_getBlockByNumber"))

        assert outcome.body == "Not Found"
        assert transport.session is not None
        await transport.close()

    @pytest.mark.asyncio
    async def test_undecodable_body_is_returned_as_non_json(self, connected_transport):
        with patch.object(connected_transport.session, "request") as mock_request:
            mock_request.return_value.__aenter__.return_value = mock_http_response(200, b"\xff\xfe\xfa garbage")

            outcome = await connected_transport.send(JsonRpcRequest("eth_blockNumber"))

        assert isinstance(outcome, HttpResponse)
        assert outcome.status == 200
        assert outcome.body.endswith(" garbage")
        assert outcome.json() is None


# ==================== FAILURE MAPPING TESTS ====================

class TestTransportFailures:
    """Test that wire failures become transport errors instead of exceptions."""

    @pytest.mark.asyncio
    async def test_timeout(self, connected_transport):
        with patch.object(connected_transport.session, "request") as mock_request:
            mock_request.side_effect = asyncio.TimeoutError()
            outcome = await connected_transport.send(JsonRpcRequest("eth_blockNumber"))
        assert outcome.kind == TransportErrorKind.TIMEOUT
        assert "5.0s" in outcome.message

    @pytest.mark.asyncio
    async def test_server_disconnect_is_connection_reset(self, connected_transport):
        with patch.object(connected_transport.session, "request") as mock_request:
            mock_request.side_effect = aiohttp.ServerDisconnectedError()
            outcome = await connected_transport.send(JsonRpcRequest("eth_blockNumber"))
        assert outcome.kind == TransportErrorKind.CONNECTION_RESET

    @pytest.mark.asyncio
    async def test_econnreset_is_connection_reset(self, connected_transport):
        with patch.object(connected_transport.session, "request") as mock_request:
            mock_request.side_effect = aiohttp.ClientOSError(errno.ECONNRESET, "Connection reset by peer")
            outcome = await connected_transport.send(JsonRpcRequest("eth_blockNumber"))
        assert outcome.kind == TransportErrorKind.CONNECTION_RESET

    @pytest.mark.asyncio
    async def test_dns_failure(self, connected_transport):
        dns_error = aiohttp.ClientConnectorError(MagicMock(), socket.gaierror(-2, "Name or service not known"))
        with patch.object(connected_transport.session, "request") as mock_request:
            mock_request.side_effect = dns_error
            outcome = await connected_transport.send(JsonRpcRequest("eth_blockNumber"))
        assert outcome.kind == TransportErrorKind.DNS

    @pytest.mark.asyncio
    async def test_other_client_error(self, connected_transport):
        with patch.object(connected_transport.session, "request") as mock_request:
            mock_request.side_effect = aiohttp.ClientError("Connection refused")
            outcome = await connected_transport.send(JsonRpcRequest("eth_blockNumber"))
        assert outcome == TransportError(TransportErrorKind.CONNECTION, "Connection refused")


# ==================== BODY PARSING TESTS ====================

class TestHttpResponse:
    """Test JSON-RPC envelope detection on raw bodies."""

    def test_valid_envelope(self):
        assert HttpResponse(200, '{"id": 1, "result": null}').json() == {"id": 1, "result": None}

    def test_error_envelope(self):
        assert HttpResponse(200, '{"id": 1, "error": {"code": -1}}').json() is not None

    def test_html_is_not_an_envelope(self):
        assert HttpResponse(200, "<html><p>Some error message</p></html>").json() is None

    def test_json_without_result_or_error_is_not_an_envelope(self):
        assert HttpResponse(200, '{"foo": "bar"}').json() is None
        assert HttpResponse(200, "[1, 2]").json() is None

    def test_ok(self):
        assert HttpResponse(204, "").ok
        assert not HttpResponse(404, "").ok
