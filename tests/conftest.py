"""Shared fixtures for network access tests."""

import logging

import pytest
from tenacity import wait_none

from fakes import INFURA_PROJECT_ID, FakeGateway, GatewayFactory
from network import NetworkConfiguration, NetworkController


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def gateway_factory():
    return GatewayFactory()


@pytest.fixture
def mainnet_config():
    return NetworkConfiguration.for_network("mainnet")


@pytest.fixture
def ropsten_config():
    return NetworkConfiguration.for_network("ropsten")


@pytest.fixture
async def controller(gateway_factory):
    """Controller with no retry delay and a slow block tracker."""
    controller = NetworkController(
        infura_project_id=INFURA_PROJECT_ID,
        retry_wait=wait_none(),
        polling_interval=60.0,
        transport_factory=gateway_factory,
    )
    yield controller
    await controller.destroy()


@pytest.fixture
def caplog_debug(caplog):
    caplog.set_level(logging.DEBUG)
    return caplog
