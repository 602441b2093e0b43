"""Holder balance against the total a distribution needs."""

from dataclasses import dataclass
from decimal import Decimal

from vault_recovery.shared.constants import DistributionConstants
from vault_recovery.shared.types import TokenInfo
from vault_recovery.utils.formatters import format_percent, format_wei


def coverage_percent(balance: int, required: int) -> Decimal:
    """floor(balance * 10000 / required) / 100, or 100 when nothing is required."""
    if required <= 0:
        return Decimal(100)
    bps = (balance * DistributionConstants.BASIS_POINTS) // required
    return Decimal(bps) / Decimal(100)


@dataclass(frozen=True)
class BalanceCheck:
    """Holder balance of one token against what has to be sent."""

    token: TokenInfo
    balance: int
    required: int

    @property
    def sufficient(self) -> bool:
        return self.balance >= self.required

    @property
    def coverage(self) -> Decimal:
        return coverage_percent(self.balance, self.required)

    def describe(self) -> str:
        status = (
            "[green]Sufficient[/green]"
            if self.sufficient
            else "[red]Insufficient[/red]"
        )
        return (
            f"{self.token.symbol}: "
            f"{format_wei(self.balance, self.token.decimals)} available, "
            f"{format_wei(self.required, self.token.decimals)} needed "
            f"({format_percent(self.coverage)} coverage) - {status}"
        )
