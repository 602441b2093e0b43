"""
Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests.
"""

from typing import Dict, Iterable, List, Optional
from unittest.mock import MagicMock

import pytest
from eth_abi import encode

from vault_recovery.distribution.confirmation import ConfirmationAnswer
from vault_recovery.scanning.models import RawLog
from vault_recovery.shared.config import RecoveryConfig
from vault_recovery.shared.constants import StakingVaultConstants
from vault_recovery.shared.types import TokenInfo

VAULT = StakingVaultConstants.VAULT_ADDRESS.lower()
TOPICS = StakingVaultConstants.EVENT_TOPICS

USER_A = "0x52f541764e6e90eebc5c21ff570de0e2d63766b6"
USER_B = "0x7e1444ba99dcdffe8fbdb42c02fb0da4aaace4d5"
USER_C = "0x000000073d065fc33a3050c2d4a8e82ee5c5c25a"


class ScriptedConfirmer:
    """Confirmer that replays a fixed list of answers and records prompts."""

    def __init__(self, answers: Iterable = (), default: str = "y"):
        self.answers: List = list(answers)
        self.default = default
        self.prompts: List[str] = []

    def ask(self, prompt: str) -> ConfirmationAnswer:
        self.prompts.append(prompt)
        answer = self.answers.pop(0) if self.answers else self.default
        if isinstance(answer, ConfirmationAnswer):
            return answer
        return ConfirmationAnswer.parse(answer)


def _word(value: int) -> str:
    return "0x" + value.to_bytes(32, "big").hex()


def _address_topic(address: str) -> str:
    return "0x" + "00" * 12 + address[2:].lower()


def make_log(
    event: str,
    user: str,
    indexed: int,
    data: List[int],
    block: int,
    log_index: int = 0,
    tx_hash: Optional[str] = None,
) -> RawLog:
    """Build a vault log the way eth_getLogs would return it."""
    return RawLog(
        address=VAULT,
        topics=(TOPICS[event], _address_topic(user), _word(indexed)),
        data="0x" + encode(["uint256"] * len(data), data).hex(),
        block_number=block,
        transaction_hash=tx_hash or "0x" + f"{block:032x}{log_index:032x}",
        log_index=log_index,
    )


def locked_log(user, lock_id, amount, period, unlock_time, pool_id, block, log_index=0):
    return make_log(
        "Locked", user, lock_id, [amount, period, unlock_time, pool_id], block, log_index
    )


def unlocked_log(user, lock_id, amount, pool_id, block, log_index=0):
    return make_log("Unlocked", user, lock_id, [amount, pool_id], block, log_index)


def claimed_log(user, pool_id, amount, block, log_index=0):
    return make_log("RewardsClaimed", user, pool_id, [amount], block, log_index)


def unstaked_log(user, pool_id, amount, block, log_index=0):
    return make_log("Unstaked", user, pool_id, [amount, 0], block, log_index)


@pytest.fixture
def scripted_confirmer():
    """Factory for ScriptedConfirmer instances."""
    return ScriptedConfirmer


@pytest.fixture
def pool_tokens() -> Dict[int, TokenInfo]:
    """The three configured pool tokens."""
    return {
        pool_id: TokenInfo(**token)
        for pool_id, token in StakingVaultConstants.POOL_TOKENS.items()
    }


@pytest.fixture
def reward_token() -> TokenInfo:
    return TokenInfo(**StakingVaultConstants.REWARD_TOKEN)


@pytest.fixture
def recovery_config(pool_tokens, reward_token) -> RecoveryConfig:
    """Config with test credentials and no pacing delays."""
    return RecoveryConfig(
        rpc_url="http://localhost:8545",
        private_key="0x" + "11" * 32,
        pool_tokens=pool_tokens,
        reward_rates=StakingVaultConstants.REWARD_RATES,
        reward_token=reward_token,
        pool_order=list(StakingVaultConstants.POOL_ORDER),
        expected_holder=StakingVaultConstants.HOT_WALLET_ADDRESS,
        transfer_delay=0,
        error_cooldown=0,
    )


@pytest.fixture
def mock_web3_service():
    """Mock Web3Service: block N has timestamp 1_700_000_000 + 2 * N."""
    service = MagicMock()
    service.chain_id = 8453
    service.get_block_timestamp.side_effect = lambda block: 1_700_000_000 + 2 * block
    service.token_balance.return_value = 0
    service.native_balance.return_value = 10**18
    return service


@pytest.fixture
def mock_transfer_client(mock_web3_service):
    """Mock TokenTransferClient with a fixed signer and increasing nonces."""
    client = MagicMock()
    client.address = StakingVaultConstants.HOT_WALLET_ADDRESS
    client.web3_service = mock_web3_service
    client.get_nonce.side_effect = iter(range(100))
    client.send_transfer.side_effect = lambda token, to, amount, nonce: (
        "0x" + f"{nonce:064x}"
    )
    return client


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )
    config.addinivalue_line("markers", "slow: mark test as slow-running")
