"""
Where distribution amounts come from: snapshot pool tokens, snapshot
rewards, or a token-holder CSV export (Address, Quantity[, Address_Nametag]).
"""

from decimal import Decimal, InvalidOperation, localcontext
from pathlib import Path
from typing import List, Union

import pandas as pd
from eth_utils import is_address, to_checksum_address

from vault_recovery.distribution.plan import Recipient
from vault_recovery.shared.exceptions import InputFileException
from vault_recovery.shared.logging import get_logger
from vault_recovery.snapshot.reader import SnapshotSummary

logger = get_logger(__name__)

CSV_ADDRESS_COLUMN = "Address"
CSV_QUANTITY_COLUMN = "Quantity"
CSV_NAMETAG_COLUMN = "Address_Nametag"


def parse_token_amount(raw: str, decimals: int = 18) -> int:
    """
    Parse a human quantity such as '"1,234.50"' into wei, exactly.

    Raises:
        ValueError: not a finite number, or more fractional digits than
            the token supports
    """
    cleaned = str(raw).replace('"', "").replace(",", "").strip()
    if not cleaned:
        raise ValueError("empty quantity")

    with localcontext() as ctx:
        ctx.prec = 100
        try:
            value = Decimal(cleaned)
        except InvalidOperation:
            raise ValueError(f"invalid quantity {raw!r}")
        if not value.is_finite():
            raise ValueError(f"invalid quantity {raw!r}")

        scaled = value * (Decimal(10) ** decimals)
        if scaled != scaled.to_integral_value():
            raise ValueError(
                f"quantity {raw!r} has more than {decimals} decimal places"
            )
        return int(scaled)


def snapshot_token_recipients(
    summary: SnapshotSummary, pool_id: int
) -> List[Recipient]:
    """One recipient per user owed principal in ``pool_id``."""
    return [
        Recipient(address=address, amount=amount)
        for address, amount in summary.owed_for_pool(pool_id).items()
    ]


def snapshot_reward_recipients(summary: SnapshotSummary) -> List[Recipient]:
    """One recipient per user; negative reward strings count as zero."""
    recipients = []
    for address, amount in summary.rewards_owed().items():
        if amount < 0:
            logger.warning(f"Negative reward {amount} for {address}; using 0")
            amount = 0
        recipients.append(Recipient(address=address, amount=amount))
    return recipients


def csv_recipients(path: Union[str, Path], decimals: int = 18) -> List[Recipient]:
    """
    Read a CSV export.

    Raises:
        InputFileException: missing/unreadable file, missing columns, or a
            row with a bad address or quantity
    """
    try:
        frame = pd.read_csv(
            path,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            encoding="utf-8-sig",
        )
    except FileNotFoundError:
        raise InputFileException(f"CSV file not found: {path}")
    except (OSError, ValueError, pd.errors.ParserError) as e:
        raise InputFileException(f"Cannot read CSV {path}: {e}")

    frame.columns = [str(c).strip() for c in frame.columns]
    missing = {CSV_ADDRESS_COLUMN, CSV_QUANTITY_COLUMN} - set(frame.columns)
    if missing:
        raise InputFileException(
            f"CSV {path} is missing column(s): {', '.join(sorted(missing))}"
        )

    recipients = []
    # Header is line 1
    for line, row in enumerate(frame.to_dict("records"), start=2):
        address = row[CSV_ADDRESS_COLUMN].strip()
        if not is_address(address):
            raise InputFileException(f"{path}:{line}: invalid address {address!r}")
        try:
            amount = parse_token_amount(row[CSV_QUANTITY_COLUMN], decimals)
        except ValueError as e:
            raise InputFileException(f"{path}:{line}: {e}")

        recipients.append(
            Recipient(
                address=to_checksum_address(address),
                amount=amount,
                label=row.get(CSV_NAMETAG_COLUMN, "").strip(),
            )
        )

    logger.info(f"Read {len(recipients)} rows from {path}")
    return recipients
