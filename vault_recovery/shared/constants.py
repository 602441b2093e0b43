"""All constants for the project"""

import os

from dotenv import load_dotenv
from eth_utils import encode_hex, keccak

load_dotenv()


def _topic(signature: str) -> str:
    return encode_hex(keccak(text=signature))


class StakingVaultConstants:
    """Global class constants for the StakingVault v1 incident"""

    VAULT_ADDRESS = "0xA6FaCD417faf801107bF19F4a24062Ff15AE9C61"
    DEPLOYMENT_BLOCK = 23699108
    EMERGENCY_UNLOCK_BLOCK = 26882126
    DEFAULT_BLOCK_LIMIT = 4_000_000

    EVENT_SIGNATURES = {
        "Locked": "Locked(address,uint256,uint256,uint256,uint256,uint256)",
        "Unlocked": "Unlocked(address,uint256,uint256,uint256)",
        "RewardsClaimed": "RewardsClaimed(address,uint256,uint256)",
        "Unstaked": "Unstaked(address,uint256,uint256,uint256)",
    }

    EVENT_TOPICS = {
        name: _topic(signature) for name, signature in EVENT_SIGNATURES.items()
    }

    POOL_TOKENS = {
        0: {
            "address": "0x29e39327b5B1E500B87FC0fcAe3856CD8F96eD2a",
            "symbol": "PAWSY",
            "decimals": 18,
        },
        1: {
            "address": "0x1437819DF58Ad648e35ED4f6F642d992684B2004",
            "symbol": "mPAWSY",
            "decimals": 18,
        },
        2: {
            "address": "0x96FC64caE162C1Cb288791280c3Eff2255c330a8",
            "symbol": "LP",
            "decimals": 18,
        },
    }

    # Basis points per lock period (seconds), mirrors the vault's getRewardRate
    REWARD_RATES = {
        0: {4320000: 14, 8640000: 55, 17280000: 164, 34560000: 438},
        1: {4320000: 68, 8640000: 164, 17280000: 383, 34560000: 876},
        2: {4320000: 8118, 8640000: 18084, 17280000: 39732, 34560000: 86724},
    }

    REWARD_TOKEN = {
        "address": "0x11898013f8bd7f656f124d8b772fd8ae0b895279",
        "symbol": "rPAWSY",
        "decimals": 18,
    }

    HOT_WALLET_ADDRESS = "0xbdc2Be9628daEF54F8B802357A86B550fe164aCF"

    # Pool 1 first, then 0, then 2 (decided during incident response)
    POOL_ORDER = [1, 0, 2]


class ScanConstants:
    """Log scanning limits"""

    DEFAULT_CHUNK_SIZE = 50_000
    MIN_CHUNK_SIZE = 100


class DistributionConstants:
    """Distribution pacing and thresholds"""

    MIN_AMOUNT_THRESHOLD = "1"  # whole tokens, not wei
    TRANSFER_DELAY_SECONDS = 2.0
    ERROR_COOLDOWN_SECONDS = 5.0
    RECEIPT_TIMEOUT_SECONDS = 180
    BASIS_POINTS = 10_000


class GlobalConstants:
    """Global class constants for the project"""

    BASE_CHAIN_ID = 8453

    @staticmethod
    def get_rpc_url() -> str:
        """RPC URL from RECOVERY_RPC_URL, falling back to BASE_RPC_URL"""
        return os.getenv("RECOVERY_RPC_URL") or os.getenv("BASE_RPC_URL") or ""

    @staticmethod
    def get_private_key() -> str:
        """Funding credential used to sign distribution transfers"""
        return os.getenv("DEPLOYER_PRIVATE_KEY") or ""
