"""Network controller: owns the active provider engine and block tracker.

The controller is the only place a provider engine is built. Every
configuration change tears the current engine, tracker and transport down
completely and builds a new set bound to the new configuration; nothing is
reconfigured in place.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from tenacity import wait_fixed

import config

from .block_tracker import PollingBlockTracker
from .engine import ProviderEngine
from .errors import ConfigurationError, ProviderError
from .middleware import BlockCacheStage, InflightCacheStage
from .networks import NetworkConfiguration
from .normalizer import RequestNormalizer
from .retry import GatewayFetchStage
from .transport import GatewayTransport

logger = logging.getLogger(__name__)

NETWORK_WILL_CHANGE = "networkWillChange"
NETWORK_DID_CHANGE = "networkDidChange"

LOADING = "loading"


class ControllerState(str, Enum):
    """Lifecycle of a network controller."""
    UNINITIALIZED = "uninitialized"
    CONFIGURED = "configured"
    PROVIDER_ACTIVE = "provider_active"


class NetworkController:
    """
    Holds the current network configuration and its provider pipeline.

    Handles:
    - Building the transport, stages, engine and block tracker for a configuration
    - Full teardown of the previous set on every change
    - Network status lookup and change notifications
    """

    def __init__(
        self,
        infura_project_id: Optional[str] = None,
        request_timeout: Optional[float] = None,
        retry_wait=None,
        polling_interval: Optional[float] = None,
        transport_factory: Optional[Callable[..., object]] = None,
    ):
        """
        Initialize the controller. No provider is built until a configuration is set.

        Args:
            infura_project_id: Infura project id (or INFURA_PROJECT_ID from config)
            request_timeout: Per-attempt gateway timeout in seconds
            retry_wait: tenacity wait strategy between retry attempts
            polling_interval: Seconds between block tracker polls
            transport_factory: Callable ``(url, timeout, headers)`` returning a transport
        """
        self.infura_project_id = infura_project_id or config.INFURA_PROJECT_ID
        self.request_timeout = request_timeout if request_timeout is not None else config.GATEWAY_REQUEST_TIMEOUT
        self.retry_wait = retry_wait if retry_wait is not None else wait_fixed(config.GATEWAY_RETRY_DELAY)
        self.polling_interval = polling_interval if polling_interval is not None else config.BLOCK_POLLING_INTERVAL
        self.transport_factory = transport_factory or GatewayTransport

        self.provider_config: Optional[NetworkConfiguration] = None
        self.network_status = LOADING
        self._engine: Optional[ProviderEngine] = None
        self._block_tracker: Optional[PollingBlockTracker] = None
        self._transport = None
        self._listeners: Dict[str, List[Callable]] = {}
        self._switch_lock: Optional[asyncio.Lock] = None

    @property
    def state(self) -> ControllerState:
        if self._engine is not None:
            return ControllerState.PROVIDER_ACTIVE
        if self.provider_config is not None:
            return ControllerState.CONFIGURED
        return ControllerState.UNINITIALIZED

    def _lock(self) -> asyncio.Lock:
        # Created on first use so the lock binds to the loop that runs the controller.
        if self._switch_lock is None:
            self._switch_lock = asyncio.Lock()
        return self._switch_lock

    def set_infura_project_id(self, project_id: str) -> None:
        if not project_id or not isinstance(project_id, str):
            raise ConfigurationError("Invalid Infura project id")
        self.infura_project_id = project_id

    # ==================== Events ====================

    def on(self, event: str, callback: Callable) -> None:
        """Register ``callback`` for ``networkWillChange`` or ``networkDidChange``."""
        self._listeners.setdefault(event, []).append(callback)

    def _emit(self, event: str, *args) -> None:
        for callback in list(self._listeners.get(event, [])):
            try:
                callback(*args)
            except Exception as e:
                logger.error(f"{event} listener failed: {e}")

    # ==================== Provider lifecycle ====================

    async def set_provider_config(self, provider_config: NetworkConfiguration) -> None:
        """
        Switch to ``provider_config``, rebuilding the whole provider pipeline.

        Raises:
            ConfigurationError: If the configuration cannot be turned into a gateway URL
        """
        async with self._lock():
            url = provider_config.endpoint_url(self.infura_project_id)
            self._emit(NETWORK_WILL_CHANGE, self.provider_config)

            self.provider_config = provider_config
            self.network_status = LOADING
            await self._teardown()
            self._build(provider_config, url)

        self._emit(NETWORK_DID_CHANGE, provider_config)
        logger.info(f"Switched to network {provider_config.type.value} (chain {provider_config.chain_id})")

    async def set_provider_type(self, network_name: str) -> None:
        await self.set_provider_config(NetworkConfiguration.for_network(network_name))

    async def set_rpc_target(self, rpc_url: str, chain_id: str, nickname: Optional[str] = None) -> None:
        await self.set_provider_config(NetworkConfiguration.for_rpc(rpc_url, chain_id, nickname))

    def get_provider_and_block_tracker(self) -> Tuple[ProviderEngine, PollingBlockTracker]:
        """
        Return the active engine and block tracker.

        Raises:
            ConfigurationError: If no provider has been built yet
        """
        if self._engine is None or self._block_tracker is None:
            raise ConfigurationError("No provider is active; set a network configuration first")
        return self._engine, self._block_tracker

    async def lookup_network(self) -> str:
        """Resolve ``net_version`` on the active provider and record it as the network status."""
        engine, _ = self.get_provider_and_block_tracker()
        try:
            network_id = await engine.request("net_version")
        except ProviderError as e:
            logger.warning(f"Network lookup failed: {e}")
            if engine is self._engine:
                self.network_status = LOADING
            return LOADING

        if engine is self._engine:
            self.network_status = str(network_id)
        return str(network_id)

    async def destroy(self) -> None:
        """Tear down the active provider. The configuration is kept."""
        async with self._lock():
            await self._teardown()

    def _build(self, provider_config: NetworkConfiguration, url: str) -> None:
        headers = {"Infura-Source": config.INFURA_SOURCE} if provider_config.is_infura else {}
        transport = self.transport_factory(url, timeout=self.request_timeout, headers=headers)

        normalizer = RequestNormalizer(provider_config)
        fetch = GatewayFetchStage(
            transport,
            provider_name=provider_config.provider_name,
            wait=self.retry_wait,
            correct_response=normalizer.correct_response,
        )
        engine = ProviderEngine(
            [normalizer, InflightCacheStage(), BlockCacheStage(), fetch],
            name=f"{provider_config.type.value}:{provider_config.chain_id}",
        )
        block_tracker = PollingBlockTracker(engine, polling_interval=self.polling_interval)

        self._transport = transport
        self._engine = engine
        self._block_tracker = block_tracker
        block_tracker.start()
        logger.info(f"Provider built for {engine.name}")

    async def _teardown(self) -> None:
        engine, block_tracker, transport = self._engine, self._block_tracker, self._transport
        self._engine = self._block_tracker = self._transport = None

        if block_tracker is not None:
            await block_tracker.stop()
        if engine is not None:
            engine.destroy()
        if transport is not None:
            await transport.close()
        if engine is not None:
            logger.info(f"Provider torn down for {engine.name}")
