"""
Serialize a Snapshot into the detailed and summary JSON artifacts.

Every wei amount is written as a decimal string; "...Readable" siblings
carry the human-formatted value. Both files are written atomically.
"""

import time
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from vault_recovery.snapshot.builder import Snapshot
from vault_recovery.shared.logging import get_logger
from vault_recovery.utils.file_utils import write_json_atomic
from vault_recovery.utils.formatters import format_wei

logger = get_logger(__name__)

DETAILED_FILENAME = "staking_snapshot_detailed_{total_blocks}_blocks_{ts}.json"
SUMMARY_FILENAME = "staking_snapshot_summary_{ts}.json"
SUMMARY_GLOB = "staking_snapshot_summary_*.json"


def _metadata_dict(snapshot: Snapshot) -> Dict[str, Any]:
    meta = snapshot.metadata
    return {
        "createdAt": meta.created_at,
        "startBlock": meta.start_block,
        "endBlock": meta.end_block,
        "totalBlocks": meta.total_blocks,
        "emergencyUnlockBlock": meta.emergency_unlock_block,
        "contract": meta.contract,
        "poolTokens": {
            str(pool_id): token.to_dict()
            for pool_id, token in sorted(meta.pool_tokens.items())
        },
    }


def _decimals(snapshot: Snapshot, pool_id: int) -> int:
    token = snapshot.metadata.pool_tokens.get(pool_id)
    return token.decimals if token else 18


def summary_block(snapshot: Snapshot, reward_decimals: int = 18) -> Dict[str, Any]:
    total_staked: Dict[str, str] = {}
    for pool_id, amount in sorted(snapshot.total_staked.items()):
        total_staked[str(pool_id)] = str(amount)
        total_staked[f"{pool_id}Readable"] = format_wei(
            amount, _decimals(snapshot, pool_id)
        )
    return {
        "usersWithOutstandingBalances": len(snapshot.outstanding_users),
        "totalOutstandingPositions": snapshot.total_outstanding_positions,
        "totalStaked": total_staked,
        "totalRewards": {
            "total": str(snapshot.total_rewards),
            "totalReadable": format_wei(snapshot.total_rewards, reward_decimals),
        },
    }


def to_detailed_dict(snapshot: Snapshot, reward_decimals: int = 18) -> Dict[str, Any]:
    """Every position plus per-user totals."""
    users: Dict[str, Any] = {}
    for address, entitlement in snapshot.users.items():
        positions = []
        for position in entitlement.positions:
            entry = position.to_dict()
            reward = snapshot.position_rewards.get((address, position.lock_id))
            entry["rewards"] = str(reward.reward) if reward else "0"
            entry["rewardRate"] = reward.rate_bps if reward else 0
            entry["stakingTime"] = reward.elapsed if reward else 0
            positions.append(entry)

        users[address] = {
            "address": address,
            "positions": positions,
            "totalOwed": {
                "tokens": {
                    str(pool_id): str(amount)
                    for pool_id, amount in sorted(entitlement.tokens_by_pool.items())
                },
                "rewards": str(entitlement.rewards),
            },
        }

    detailed: Dict[str, Any] = {
        "metadata": _metadata_dict(snapshot),
        "users": users,
        "totalStaked": {
            str(pool_id): str(amount)
            for pool_id, amount in sorted(snapshot.total_staked.items())
        },
        "totalRewards": {"total": str(snapshot.total_rewards)},
        "summary": summary_block(snapshot, reward_decimals),
    }
    if snapshot.stats is not None:
        detailed["replayStats"] = snapshot.stats.to_dict()
    return detailed


def to_summary_dict(snapshot: Snapshot, reward_decimals: int = 18) -> Dict[str, Any]:
    """Only users still owed something, with aggregate amounts."""
    users: Dict[str, Any] = {}
    for entitlement in snapshot.outstanding_users:
        tokens = {
            str(pool_id): str(amount)
            for pool_id, amount in sorted(entitlement.tokens_by_pool.items())
        }
        users[entitlement.address] = {
            "tokens": tokens,
            "tokensReadable": {
                str(pool_id): format_wei(amount, _decimals(snapshot, pool_id))
                for pool_id, amount in sorted(entitlement.tokens_by_pool.items())
            },
            "rewards": str(entitlement.rewards),
            "rewardsReadable": format_wei(entitlement.rewards, reward_decimals),
        }

    return {
        "metadata": _metadata_dict(snapshot),
        "users": users,
        "summary": summary_block(snapshot, reward_decimals),
    }


def write_snapshot(
    snapshot: Snapshot,
    output_dir: Union[str, Path] = ".",
    timestamp: Optional[int] = None,
    reward_decimals: int = 18,
) -> Tuple[Path, Path]:
    """
    Write both artifacts and return (detailed_path, summary_path).

    Args:
        snapshot: Built snapshot
        output_dir: Destination directory (created if missing)
        timestamp: Unix seconds used in the filenames (default: now)
        reward_decimals: Decimals of the reward token for readable values
    """
    ts = timestamp if timestamp is not None else int(time.time())
    directory = Path(output_dir)

    detailed_path = directory / DETAILED_FILENAME.format(
        total_blocks=snapshot.metadata.total_blocks, ts=ts
    )
    summary_path = directory / SUMMARY_FILENAME.format(ts=ts)

    logger.info(f"Writing detailed snapshot to {detailed_path}")
    write_json_atomic(detailed_path, to_detailed_dict(snapshot, reward_decimals))
    logger.info(f"Writing summary snapshot to {summary_path}")
    write_json_atomic(summary_path, to_summary_dict(snapshot, reward_decimals))

    return detailed_path, summary_path
