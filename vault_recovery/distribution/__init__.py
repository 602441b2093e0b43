from vault_recovery.distribution.balance import BalanceCheck, coverage_percent
from vault_recovery.distribution.confirmation import (
    ConfirmationAnswer,
    ConfirmationState,
    Confirmer,
    TerminalConfirmer,
)
from vault_recovery.distribution.executor import DistributionExecutor
from vault_recovery.distribution.plan import (
    DistributionPlan,
    Recipient,
    build_plan,
    threshold_to_wei,
)
from vault_recovery.distribution.sources import (
    csv_recipients,
    parse_token_amount,
    snapshot_reward_recipients,
    snapshot_token_recipients,
)

__all__ = [
    "BalanceCheck",
    "ConfirmationAnswer",
    "ConfirmationState",
    "Confirmer",
    "DistributionExecutor",
    "DistributionPlan",
    "Recipient",
    "TerminalConfirmer",
    "build_plan",
    "coverage_percent",
    "csv_recipients",
    "parse_token_amount",
    "snapshot_reward_recipients",
    "snapshot_token_recipients",
    "threshold_to_wei",
]
