"""
Runtime configuration for the recovery toolkit.

Defaults come from StakingVaultConstants (the v1 incident). Everything can
be overridden by a JSON config file (path in RECOVERY_CONFIG_FILE or passed
explicitly) and, for the operational knobs, by environment variables:

    RECOVERY_RPC_URL / BASE_RPC_URL   RPC endpoint
    DEPLOYER_PRIVATE_KEY              funding credential
    RECOVERY_POOL_ORDER               e.g. "1,0,2"
    RECOVERY_MIN_AMOUNT               distribution threshold in whole tokens
    RECOVERY_EMERGENCY_BLOCK          emergency unlock block ("none" to disable)

Example config file:

    {
      "vault_address": "0x...",
      "start_block": 23699108,
      "emergency_unlock_block": 26882126,
      "pool_tokens": {"0": {"address": "0x...", "symbol": "PAWSY", "decimals": 18}},
      "reward_rates": {"0": {"4320000": 14}},
      "reward_token": {"address": "0x...", "symbol": "rPAWSY", "decimals": 18},
      "pool_order": [1, 0, 2],
      "expected_holder": "0x...",
      "min_amount_threshold": "1"
    }
"""

import json
import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from dotenv import load_dotenv
from eth_utils import is_address, to_checksum_address

from vault_recovery.shared.constants import (
    DistributionConstants,
    GlobalConstants,
    ScanConstants,
    StakingVaultConstants,
)
from vault_recovery.shared.exceptions import ConfigurationException
from vault_recovery.shared.types import TokenInfo


def _checksum(address: str, name: str) -> str:
    if not address or not isinstance(address, str) or not is_address(address):
        raise ConfigurationException(
            f"Invalid {name}: {address!r} is not a valid Ethereum address"
        )
    return to_checksum_address(address)


def _token(raw: Mapping[str, Any], name: str) -> TokenInfo:
    try:
        address = _checksum(raw["address"], f"{name} address")
        symbol = str(raw["symbol"])
    except KeyError as e:
        raise ConfigurationException(f"{name} is missing field {e}")

    decimals_raw = raw.get("decimals", 18)
    try:
        decimals = int(decimals_raw)
    except (TypeError, ValueError):
        raise ConfigurationException(
            f"{name} decimals must be an integer, got {decimals_raw!r}"
        )
    if isinstance(decimals_raw, bool) or not 0 <= decimals <= 77:
        raise ConfigurationException(
            f"{name} decimals must be between 0 and 77, got {decimals_raw!r}"
        )
    return TokenInfo(address=address, symbol=symbol, decimals=decimals)


def parse_pool_order(raw: Any, pool_ids: List[int]) -> List[int]:
    """Parse "1,0,2" or [1, 0, 2] and check every id is a configured pool."""
    if isinstance(raw, str):
        parts = [p.strip() for p in raw.split(",") if p.strip()]
    else:
        parts = list(raw)
    try:
        order = [int(p) for p in parts]
    except (TypeError, ValueError):
        raise ConfigurationException(f"Invalid pool order: {raw!r}")

    unknown = [p for p in order if p not in pool_ids]
    if unknown:
        raise ConfigurationException(
            f"Pool order references unknown pools {unknown}; known: {pool_ids}"
        )
    if len(set(order)) != len(order):
        raise ConfigurationException(f"Pool order has duplicates: {order}")
    return order


@dataclass(frozen=True)
class RecoveryConfig:
    """Resolved configuration for one run."""

    rpc_url: str = ""
    private_key: str = field(default="", repr=False)
    chain_id: int = GlobalConstants.BASE_CHAIN_ID
    vault_address: str = StakingVaultConstants.VAULT_ADDRESS
    start_block: int = StakingVaultConstants.DEPLOYMENT_BLOCK
    emergency_unlock_block: Optional[int] = (
        StakingVaultConstants.EMERGENCY_UNLOCK_BLOCK
    )
    block_limit: int = StakingVaultConstants.DEFAULT_BLOCK_LIMIT
    pool_tokens: Dict[int, TokenInfo] = field(default_factory=dict)
    reward_rates: Dict[int, Dict[int, int]] = field(default_factory=dict)
    reward_token: Optional[TokenInfo] = None
    pool_order: List[int] = field(default_factory=list)
    expected_holder: Optional[str] = None
    min_amount_threshold: Decimal = Decimal(
        DistributionConstants.MIN_AMOUNT_THRESHOLD
    )
    chunk_size: int = ScanConstants.DEFAULT_CHUNK_SIZE
    min_chunk_size: int = ScanConstants.MIN_CHUNK_SIZE
    transfer_delay: float = DistributionConstants.TRANSFER_DELAY_SECONDS
    error_cooldown: float = DistributionConstants.ERROR_COOLDOWN_SECONDS

    @property
    def pool_ids(self) -> List[int]:
        return sorted(self.pool_tokens)

    def require_rpc_url(self) -> str:
        """Return the RPC URL or fail startup."""
        if not self.rpc_url:
            raise ConfigurationException(
                "RPC URL is not set (RECOVERY_RPC_URL or BASE_RPC_URL)"
            )
        return self.rpc_url

    def require_private_key(self) -> str:
        """Return the funding credential or fail startup."""
        if not self.private_key:
            raise ConfigurationException(
                "DEPLOYER_PRIVATE_KEY is not set (required to sign transfers)"
            )
        return self.private_key


def _load_file(config_file: Optional[str]) -> Dict[str, Any]:
    path = config_file or os.getenv("RECOVERY_CONFIG_FILE")
    if not path:
        return {}
    try:
        with open(Path(path), "r") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationException(f"Cannot read config file {path}: {e}")
    if not isinstance(data, dict):
        raise ConfigurationException(f"Config file {path} must hold an object")
    return data


def load_config(config_file: Optional[str] = None) -> RecoveryConfig:
    """
    Build a RecoveryConfig from defaults, an optional JSON file and env vars.

    Missing RPC URL / private key are not errors here; commands that need
    them call ``require_rpc_url`` / ``require_private_key``.
    """
    load_dotenv()
    data = _load_file(config_file)

    raw_tokens = data.get("pool_tokens", StakingVaultConstants.POOL_TOKENS)
    pool_tokens = {
        int(pid): _token(tok, f"pool {pid} token")
        for pid, tok in raw_tokens.items()
    }
    if not pool_tokens:
        raise ConfigurationException("At least one pool token is required")

    raw_rates = data.get("reward_rates", StakingVaultConstants.REWARD_RATES)
    reward_rates = {
        int(pid): {int(period): int(rate) for period, rate in rates.items()}
        for pid, rates in raw_rates.items()
    }

    reward_token = _token(
        data.get("reward_token", StakingVaultConstants.REWARD_TOKEN),
        "reward token",
    )

    pool_order = parse_pool_order(
        os.getenv("RECOVERY_POOL_ORDER")
        or data.get("pool_order", StakingVaultConstants.POOL_ORDER),
        sorted(pool_tokens),
    )

    emergency_raw = os.getenv("RECOVERY_EMERGENCY_BLOCK")
    if emergency_raw is None:
        emergency_raw = data.get(
            "emergency_unlock_block", StakingVaultConstants.EMERGENCY_UNLOCK_BLOCK
        )
    if emergency_raw in (None, "", "none", "None"):
        emergency_block = None
    else:
        emergency_block = int(emergency_raw)

    threshold_raw = os.getenv("RECOVERY_MIN_AMOUNT") or data.get(
        "min_amount_threshold", DistributionConstants.MIN_AMOUNT_THRESHOLD
    )
    try:
        threshold = Decimal(str(threshold_raw))
    except InvalidOperation:
        raise ConfigurationException(
            f"Invalid minimum amount threshold: {threshold_raw!r}"
        )
    if not threshold.is_finite():
        raise ConfigurationException(
            f"Minimum amount threshold must be a finite number, got {threshold_raw!r}"
        )
    if threshold < 0:
        raise ConfigurationException("Minimum amount threshold must be >= 0")

    expected_holder = data.get(
        "expected_holder", StakingVaultConstants.HOT_WALLET_ADDRESS
    )

    return RecoveryConfig(
        rpc_url=GlobalConstants.get_rpc_url(),
        private_key=GlobalConstants.get_private_key(),
        chain_id=int(data.get("chain_id", GlobalConstants.BASE_CHAIN_ID)),
        vault_address=_checksum(
            data.get("vault_address", StakingVaultConstants.VAULT_ADDRESS),
            "vault address",
        ),
        start_block=int(
            data.get("start_block", StakingVaultConstants.DEPLOYMENT_BLOCK)
        ),
        emergency_unlock_block=emergency_block,
        block_limit=int(
            data.get("block_limit", StakingVaultConstants.DEFAULT_BLOCK_LIMIT)
        ),
        pool_tokens=pool_tokens,
        reward_rates=reward_rates,
        reward_token=reward_token,
        pool_order=pool_order,
        expected_holder=(
            _checksum(expected_holder, "expected holder")
            if expected_holder
            else None
        ),
        min_amount_threshold=threshold,
        chunk_size=int(data.get("chunk_size", ScanConstants.DEFAULT_CHUNK_SIZE)),
        min_chunk_size=int(
            data.get("min_chunk_size", ScanConstants.MIN_CHUNK_SIZE)
        ),
        transfer_delay=float(
            data.get("transfer_delay", DistributionConstants.TRANSFER_DELAY_SECONDS)
        ),
        error_cooldown=float(
            data.get("error_cooldown", DistributionConstants.ERROR_COOLDOWN_SECONDS)
        ),
    )
