"""Recipients, thresholds and the ordered transfer plan."""

from dataclasses import dataclass, field
from decimal import ROUND_CEILING, Decimal, localcontext
from typing import Iterable, List

from vault_recovery.shared.types import TokenInfo

_DECIMAL_PRECISION = 100


@dataclass(frozen=True)
class Recipient:
    address: str
    amount: int
    label: str = ""

    @property
    def display_name(self) -> str:
        return f"{self.address} ({self.label})" if self.label else self.address


def threshold_to_wei(threshold: Decimal, decimals: int) -> int:
    """Whole-token threshold in wei, rounded up so it is never undercut."""
    with localcontext() as ctx:
        ctx.prec = _DECIMAL_PRECISION
        scaled = Decimal(threshold) * (Decimal(10) ** decimals)
        return int(scaled.to_integral_value(rounding=ROUND_CEILING))


@dataclass
class DistributionPlan:
    """
    Recipients of one token, filtered and in transfer order.

    Attributes:
        token: Token being distributed
        recipients: At or above threshold, ascending by amount
        below_threshold: Dropped before any prompt (zero, negative or dust)
    """

    token: TokenInfo
    recipients: List[Recipient] = field(default_factory=list)
    below_threshold: List[Recipient] = field(default_factory=list)
    label: str = ""

    @property
    def total_amount(self) -> int:
        return sum(r.amount for r in self.recipients)

    @property
    def name(self) -> str:
        return self.label or self.token.symbol


def build_plan(
    token: TokenInfo,
    recipients: Iterable[Recipient],
    min_amount: Decimal,
    label: str = "",
) -> DistributionPlan:
    """
    Apply the minimum threshold and sort ascending by amount.

    Ties keep a deterministic order by address.
    """
    min_wei = threshold_to_wei(min_amount, token.decimals)
    plan = DistributionPlan(token=token, label=label)
    for recipient in recipients:
        if recipient.amount <= 0 or recipient.amount < min_wei:
            plan.below_threshold.append(recipient)
        else:
            plan.recipients.append(recipient)

    plan.recipients.sort(key=lambda r: (r.amount, r.address))
    return plan
