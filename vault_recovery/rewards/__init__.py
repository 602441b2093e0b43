from vault_recovery.rewards.calculator import (
    PositionReward,
    RewardCalculator,
    RewardRateTable,
    RewardWindow,
    calculate_reward,
)

__all__ = [
    "PositionReward",
    "RewardCalculator",
    "RewardRateTable",
    "RewardWindow",
    "calculate_reward",
]
