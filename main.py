"""
Network probe - connects to a network and follows its chain head.

Usage:
    python main.py                         # DEFAULT_NETWORK from config / .env
    python main.py --network goerli
    python main.py --rpc-url http://localhost:8545 --chain-id 0x539
    python main.py --once                  # print one block and exit
"""

import argparse
import asyncio
import logging
import sys

import config
from network import ConfigurationError, NetworkConfiguration, NetworkController, ProviderError


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Follow the latest block of a network.")
    parser.add_argument("--network", default=config.DEFAULT_NETWORK, help="Known network name")
    parser.add_argument("--rpc-url", default=config.RPC_URL, help="Custom RPC endpoint")
    parser.add_argument("--chain-id", default=config.RPC_CHAIN_ID, help="Chain id of the custom RPC endpoint")
    parser.add_argument("--once", action="store_true", help="Exit after the first block")
    return parser.parse_args(argv)


def build_configuration(args) -> NetworkConfiguration:
    if args.rpc_url:
        return NetworkConfiguration.for_rpc(args.rpc_url, args.chain_id)
    return NetworkConfiguration.for_network(args.network)


async def run(args) -> int:
    controller = NetworkController()
    try:
        await controller.set_provider_config(build_configuration(args))
    except ConfigurationError as e:
        print(f"✗ Invalid network configuration: {e}")
        return 1

    engine, block_tracker = controller.get_provider_and_block_tracker()
    try:
        chain_id = await engine.request("eth_chainId")
        network_id = await controller.lookup_network()
        print(f"✓ Connected to {controller.provider_config.type.value} (chain {chain_id}, network {network_id})")

        latest = await block_tracker.get_latest_block()
        print(f"  Latest block: {int(latest, 16)} ({latest})")
        if args.once:
            return 0

        block_tracker.on_latest(lambda block: print(f"  Latest block: {int(block, 16)} ({block})"))
        await asyncio.Event().wait()
    except ProviderError as e:
        print(f"✗ Request failed: {e}")
        return 1
    finally:
        await controller.destroy()
        print("✓ Provider closed")
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
    try:
        sys.exit(asyncio.run(run(parse_args())))
    except KeyboardInterrupt:
        pass
