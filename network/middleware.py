"""Caching stages that sit between the normalizer and the gateway fetch stage.

Implements:
- In-flight sharing of identical concurrent requests
- A per-engine cache for requests pinned to a specific block or hash
"""

import asyncio
import json
import logging
from collections import OrderedDict
from typing import Dict

from .engine import NextHandler, Stage
from .jsonrpc import JsonRpcRequest, JsonRpcResponse

logger = logging.getLogger(__name__)

# Requests with side effects or per-call state; never shared or cached.
NEVER_CACHE = frozenset({
    "eth_sendTransaction",
    "eth_sendRawTransaction",
    "eth_sign",
    "personal_sign",
    "eth_signTypedData",
    "eth_signTypedData_v3",
    "eth_signTypedData_v4",
    "eth_newFilter",
    "eth_newBlockFilter",
    "eth_newPendingTransactionFilter",
    "eth_getFilterChanges",
    "eth_uninstallFilter",
    "eth_subscribe",
    "eth_unsubscribe",
})

# Methods whose result never changes once it is non-null.
PERMANENT_METHODS = frozenset({
    "eth_getBlockByHash",
    "eth_getBlockTransactionCountByHash",
    "eth_getTransactionByHash",
    "eth_getTransactionByBlockHashAndIndex",
    "eth_getTransactionReceipt",
    "eth_getUncleByBlockHashAndIndex",
    "eth_getUncleCountByBlockHash",
})

# Position of the block parameter for block-scoped methods.
BLOCK_PARAM_INDEX = {
    "eth_getBalance": 1,
    "eth_getCode": 1,
    "eth_getTransactionCount": 1,
    "eth_call": 1,
    "eth_getStorageAt": 2,
    "eth_getBlockByNumber": 0,
    "eth_getBlockTransactionCountByNumber": 0,
    "eth_getTransactionByBlockNumberAndIndex": 0,
    "eth_getUncleByBlockNumberAndIndex": 0,
    "eth_getUncleCountByBlockNumber": 0,
}


def cache_key(request: JsonRpcRequest) -> str:
    return json.dumps([request.method, request.params], sort_keys=True, default=str)


def is_block_pinned(request: JsonRpcRequest) -> bool:
    """True if the request names a concrete block number or a hash."""
    if request.method in PERMANENT_METHODS:
        return True
    index = BLOCK_PARAM_INDEX.get(request.method)
    if index is None or len(request.params) <= index:
        return False
    block = request.params[index]
    return isinstance(block, str) and block.startswith("0x")


class InflightCacheStage(Stage):
    """Share one downstream call between identical concurrent requests."""

    def __init__(self):
        self._inflight: Dict[str, asyncio.Future] = {}

    @property
    def pending(self) -> int:
        return len(self._inflight)

    async def handle(self, request: JsonRpcRequest, next_handler: NextHandler) -> JsonRpcResponse:
        if request.method in NEVER_CACHE:
            return await next_handler(request)

        key = cache_key(request)
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(next_handler(request))
            self._inflight[key] = task
            task.add_done_callback(lambda _: self._inflight.pop(key, None))
        else:
            logger.debug(f"Sharing in-flight {request.method} (id={request.id})")

        # shield: one cancelled caller must not cancel the call for the others
        response = await asyncio.shield(task)
        return response.with_id(request.id)


class BlockCacheStage(Stage):
    """Cache results of block-pinned requests for the engine's lifetime."""

    def __init__(self, max_entries: int = 1000):
        self.max_entries = max_entries
        self._cache: "OrderedDict[str, JsonRpcResponse]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._cache)

    async def handle(self, request: JsonRpcRequest, next_handler: NextHandler) -> JsonRpcResponse:
        if not is_block_pinned(request):
            return await next_handler(request)

        key = cache_key(request)
        cached = self._cache.get(key)
        if cached is not None:
            self._cache.move_to_end(key)
            return cached.with_id(request.id)

        response = await next_handler(request)
        if self._cacheable(response):
            self._cache[key] = response
            if len(self._cache) > self.max_entries:
                self._cache.popitem(last=False)
        return response

    @staticmethod
    def _cacheable(response: JsonRpcResponse) -> bool:
        if response.is_error or response.result is None:
            return False
        result = response.result
        # pending transactions and blocks have no block hash yet
        if isinstance(result, dict) and "blockHash" in result and result["blockHash"] is None:
            return False
        return True
