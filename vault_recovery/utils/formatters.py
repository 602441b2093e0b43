"""Shared formatting utilities for commands."""

from decimal import Decimal
from typing import Optional, Sequence

from rich.console import Console
from rich.table import Table

# Shared console instance
console = Console()


def format_wei(amount: int, decimals: int = 18) -> str:
    """
    Convert a wei amount to a human-readable token amount.

    Integer part gets thousands separators, trailing fractional zeros are
    trimmed: 1234500000000000000000 -> "1,234.5". Exact, no float.
    """
    amount = int(amount)
    if amount == 0:
        return "0"

    sign = "-" if amount < 0 else ""
    integer_part, fractional_part = divmod(abs(amount), 10**decimals)

    formatted = f"{sign}{integer_part:,}"
    if fractional_part == 0 or decimals == 0:
        return formatted

    fraction = str(fractional_part).rjust(decimals, "0").rstrip("0")
    return f"{formatted}.{fraction}"


def format_percent(value: Decimal) -> str:
    return f"{value:.2f}%"


def create_table(
    columns: Sequence[str],
    title: Optional[str] = None,
    right_aligned: Sequence[str] = (),
) -> Table:
    """
    Create a Rich table with the project's standard look.

    Args:
        columns: Column headers in display order
        title: Optional table title
        right_aligned: Headers whose column holds numbers
    """
    table = Table(
        title=title,
        show_header=True,
        header_style="bold cyan",
        show_lines=False,
        pad_edge=False,
    )
    for column in columns:
        table.add_column(
            column, justify="right" if column in right_aligned else "left"
        )
    return table
