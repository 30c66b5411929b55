"""
Network Access Configuration
Edit these values or override them with environment variables / a .env file.

NOTE: The Infura project id is a secret. Keep it in .env, not in this file.
"""

import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# ═══════════════════════════════════════════════════════════════════════════════
# GATEWAY CREDENTIALS
# ═══════════════════════════════════════════════════════════════════════════════

INFURA_PROJECT_ID = os.getenv("INFURA_PROJECT_ID")

# Sent as the Infura-Source header with every gateway request
INFURA_SOURCE = os.getenv("INFURA_SOURCE", "wallet/internal")

# ═══════════════════════════════════════════════════════════════════════════════
# NETWORK SELECTION
# ═══════════════════════════════════════════════════════════════════════════════

DEFAULT_NETWORK = os.getenv("DEFAULT_NETWORK", "mainnet")

# Custom RPC endpoint (used instead of DEFAULT_NETWORK when set)
RPC_URL = os.getenv("RPC_URL")
RPC_CHAIN_ID = os.getenv("RPC_CHAIN_ID")

# ═══════════════════════════════════════════════════════════════════════════════
# TIMING
# ═══════════════════════════════════════════════════════════════════════════════

GATEWAY_REQUEST_TIMEOUT = float(os.getenv("GATEWAY_REQUEST_TIMEOUT", "10.0"))  # seconds per attempt
GATEWAY_RETRY_DELAY = float(os.getenv("GATEWAY_RETRY_DELAY", "1.0"))           # seconds between attempts
BLOCK_POLLING_INTERVAL = float(os.getenv("BLOCK_POLLING_INTERVAL", "20.0"))    # seconds between polls

# ═══════════════════════════════════════════════════════════════════════════════
# LOGGING
# ═══════════════════════════════════════════════════════════════════════════════

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
