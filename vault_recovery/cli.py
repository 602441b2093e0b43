#!/usr/bin/env python3
"""
Unified CLI for the StakingVault v1 recovery toolkit.

Examples:
  - Snapshot
    vault-recovery snapshot
    vault-recovery snapshot --block-limit 500000 --output-dir snapshots
    vault-recovery snapshot --end-block 26900000 --checkpoint scan.json

  - Balance check against the latest summary snapshot
    vault-recovery check-snapshot [--snapshot staking_snapshot_summary_1700000000.json]

  - Distribution (simulation unless --doit)
    vault-recovery distribute-tokens [--snapshot FILE] [--doit]
    vault-recovery distribute-rewards [--snapshot FILE] [--doit]
    vault-recovery distribute-csv --csv export.csv [--token 0x... --symbol X] [--doit]

Exit codes: 0 on completion (including operator cancel and per-recipient
failures), 1 on fatal setup errors.
"""

import argparse
import sys
from pathlib import Path
from typing import Callable, List, Optional

from vault_recovery.commands.helpers import (
    handle_command_error,
    print_distribution_summaries,
)
from vault_recovery.commands.validation import (
    validate_block_number,
    validate_block_range,
    validate_decimals,
    validate_eth_address,
)
from vault_recovery.distribution.balance import BalanceCheck
from vault_recovery.distribution.confirmation import TerminalConfirmer
from vault_recovery.distribution.executor import DistributionExecutor
from vault_recovery.distribution.plan import DistributionPlan, build_plan
from vault_recovery.distribution.sources import (
    csv_recipients,
    snapshot_reward_recipients,
    snapshot_token_recipients,
)
from vault_recovery.shared.config import RecoveryConfig, load_config
from vault_recovery.shared.exceptions import (
    NonRetryableException,
    OperationCancelled,
    RetryableException,
)
from vault_recovery.shared.logging import set_log_level
from vault_recovery.shared.services.web3_service import (
    TokenTransferClient,
    Web3Service,
)
from vault_recovery.shared.types import TokenInfo
from vault_recovery.snapshot.reader import (
    SnapshotSummary,
    find_latest_summary,
    load_snapshot,
)
from vault_recovery.snapshot.service import SnapshotService
from vault_recovery.utils.formatters import (
    console,
    create_table,
    format_percent,
    format_wei,
)


def _web3(config: RecoveryConfig) -> Web3Service:
    return Web3Service(config.chain_id, config.require_rpc_url())


def _read_summary(args: argparse.Namespace, config: RecoveryConfig) -> SnapshotSummary:
    path = Path(args.snapshot) if args.snapshot else find_latest_summary(".")
    console.print(f"Using snapshot file: [cyan]{path}[/cyan]")
    return load_snapshot(path, config.pool_ids)


def cmd_snapshot(args: argparse.Namespace, config: RecoveryConfig) -> int:
    if args.end_block is not None:
        validate_block_number(args.end_block, "end_block")
        validate_block_range(config.start_block, args.end_block)
    if args.block_limit is not None:
        validate_block_number(args.block_limit, "block_limit")

    service = SnapshotService(config, _web3(config))
    run = service.generate(
        end_block=args.end_block,
        block_limit=args.block_limit,
        output_dir=args.output_dir,
        checkpoint_path=args.checkpoint,
    )

    snapshot = run.snapshot
    console.print("\n[bold]Snapshot generation complete[/bold]")
    console.print(
        f"{len(snapshot.outstanding_users)} users with outstanding balances "
        f"across {snapshot.total_outstanding_positions} positions"
    )
    for pool_id, amount in sorted(snapshot.total_staked.items()):
        token = config.pool_tokens[pool_id]
        console.print(
            f"  Pool {pool_id} ({token.symbol}): {format_wei(amount, token.decimals)}"
        )
    console.print(f"Total rewards: {format_wei(snapshot.total_rewards)}")
    if run.decode_errors:
        console.print(
            f"[yellow]{len(run.decode_errors)} logs could not be decoded "
            f"and were skipped (see log output)[/yellow]"
        )
    console.print(f"Detailed snapshot: [cyan]{run.detailed_path}[/cyan]")
    console.print(f"Summary snapshot:  [cyan]{run.summary_path}[/cyan]")
    return 0


def cmd_check_snapshot(args: argparse.Namespace, config: RecoveryConfig) -> int:
    summary = _read_summary(args, config)
    web3_service = _web3(config)

    if args.holder:
        holder = validate_eth_address(args.holder, "holder")
    elif config.private_key:
        holder = TokenTransferClient(web3_service, config.private_key).address
    elif config.expected_holder:
        holder = config.expected_holder
    else:
        config.require_private_key()

    console.print(f"Checking balances for wallet: [cyan]{holder}[/cyan]")
    if config.expected_holder and holder.lower() != config.expected_holder.lower():
        console.print(
            f"[yellow]Warning: the wallet address ({holder}) doesn't match the "
            f"expected hot wallet address ({config.expected_holder}).[/yellow]"
        )

    native = web3_service.native_balance(holder)
    console.print(f"\nNative token balance: {format_wei(native)} ETH")

    columns = ["Pool", "Token", "Wallet Balance", "Total Owed", "Sufficient", "Coverage"]
    table = create_table(
        columns,
        title="Token balances vs owed amounts",
        right_aligned=["Wallet Balance", "Total Owed", "Coverage"],
    )
    checks: List[BalanceCheck] = []
    for pool_id in config.pool_ids:
        token = config.pool_tokens[pool_id]
        check = BalanceCheck(
            token=token,
            balance=web3_service.token_balance(token.address, holder),
            required=summary.total_staked.get(pool_id, 0),
        )
        checks.append(check)
        table.add_row(
            str(pool_id),
            token.symbol,
            format_wei(check.balance, token.decimals),
            format_wei(check.required, token.decimals),
            "[green]Yes[/green]" if check.sufficient else "[red]No[/red]",
            format_percent(check.coverage),
        )
    console.print(table)

    insufficient = [c for c in checks if not c.sufficient]
    for check in insufficient:
        console.print(f"[red]{check.describe()}[/red]")
    if not insufficient:
        console.print(
            "[green]Hot wallet has sufficient tokens to cover all owed amounts[/green]"
        )

    reward_decimals = config.reward_token.decimals if config.reward_token else 18
    console.print("\n[bold]Rewards needed[/bold]")
    console.print(
        f"Total rewards to be distributed: "
        f"{format_wei(summary.total_rewards, reward_decimals)} (informational)"
    )
    console.print("\n[bold]User stats[/bold]")
    console.print(
        f"Users with outstanding balances: {summary.users_with_outstanding_balances}"
    )
    console.print(f"Outstanding positions: {summary.total_outstanding_positions}")
    return 0


def _run_distribution(
    args: argparse.Namespace,
    config: RecoveryConfig,
    label: str,
    plans: List[DistributionPlan],
) -> int:
    web3_service = _web3(config)
    client = TokenTransferClient(web3_service, config.require_private_key())
    executor = DistributionExecutor(
        TerminalConfirmer(console),
        client,
        simulation=not args.doit,
        transfer_delay=config.transfer_delay,
        error_cooldown=config.error_cooldown,
        console=console,
    )

    if not executor.preflight(label, config.expected_holder):
        return 0

    summaries = executor.run_pools(plans)
    print_distribution_summaries(summaries)
    return 0


def cmd_distribute_tokens(args: argparse.Namespace, config: RecoveryConfig) -> int:
    summary = _read_summary(args, config)
    plans = []
    for pool_id in config.pool_order:
        token = config.pool_tokens[pool_id]
        plans.append(
            build_plan(
                token,
                snapshot_token_recipients(summary, pool_id),
                config.min_amount_threshold,
                label=f"Pool {pool_id} ({token.symbol})",
            )
        )
    symbols = ", ".join(config.pool_tokens[p].symbol for p in config.pool_order)
    return _run_distribution(args, config, symbols, plans)


def cmd_distribute_rewards(args: argparse.Namespace, config: RecoveryConfig) -> int:
    summary = _read_summary(args, config)
    token = config.reward_token
    plan = build_plan(
        token,
        snapshot_reward_recipients(summary),
        config.min_amount_threshold,
        label=f"Rewards ({token.symbol})",
    )
    return _run_distribution(args, config, token.symbol, [plan])


def _csv_token(args: argparse.Namespace, config: RecoveryConfig) -> TokenInfo:
    if not args.token:
        return config.reward_token
    return TokenInfo(
        address=validate_eth_address(args.token, "token"),
        symbol=args.symbol or "TOKEN",
        decimals=validate_decimals(args.decimals),
    )


def cmd_distribute_csv(args: argparse.Namespace, config: RecoveryConfig) -> int:
    token = _csv_token(args, config)
    console.print(f"Using CSV file: [cyan]{args.csv}[/cyan]")
    plan = build_plan(
        token,
        csv_recipients(args.csv, token.decimals),
        config.min_amount_threshold,
        label=f"CSV ({token.symbol})",
    )
    return _run_distribution(args, config, token.symbol, [plan])


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vault-recovery",
        description="StakingVault v1 emergency-unlock recovery toolkit",
    )
    parser.add_argument(
        "--config", type=str, help="JSON config file (overrides defaults)"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override RECOVERY_LOG_LEVEL",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # snapshot
    p_snap = sub.add_parser("snapshot", help="Rebuild owed balances from chain events")
    range_group = p_snap.add_mutually_exclusive_group()
    range_group.add_argument("--end-block", type=int, help="Last block to scan")
    range_group.add_argument(
        "--block-limit", type=int, help="Scan only this many blocks from deployment"
    )
    p_snap.add_argument("--output-dir", type=str, default=".", help="Output directory")
    p_snap.add_argument(
        "--checkpoint", type=str, help="Resumable scan progress file"
    )
    p_snap.set_defaults(func=cmd_snapshot)

    # check-snapshot
    p_check = sub.add_parser(
        "check-snapshot", help="Compare holder balances with a summary snapshot"
    )
    p_check.add_argument("--snapshot", type=str, help="Summary snapshot file")
    p_check.add_argument("--holder", type=str, help="Holder address to check")
    p_check.set_defaults(func=cmd_check_snapshot)

    # distribute-tokens / distribute-rewards
    for name, func, help_text in (
        ("distribute-tokens", cmd_distribute_tokens, "Return staked tokens per pool"),
        ("distribute-rewards", cmd_distribute_rewards, "Distribute unclaimed rewards"),
    ):
        p_dist = sub.add_parser(name, help=help_text)
        p_dist.add_argument("--snapshot", type=str, help="Summary snapshot file")
        p_dist.add_argument(
            "--doit", action="store_true", help="Send real transactions"
        )
        p_dist.set_defaults(func=func)

    # distribute-csv
    p_csv = sub.add_parser("distribute-csv", help="Distribute from a CSV export")
    p_csv.add_argument("--csv", type=str, required=True, help="CSV file")
    p_csv.add_argument("--token", type=str, help="Token address (default: reward token)")
    p_csv.add_argument("--symbol", type=str, help="Token symbol for display")
    p_csv.add_argument("--decimals", type=int, default=18)
    p_csv.add_argument("--doit", action="store_true", help="Send real transactions")
    p_csv.set_defaults(func=cmd_distribute_csv)

    return parser


def main(
    argv: Optional[List[str]] = None,
    config_loader: Callable[[Optional[str]], RecoveryConfig] = load_config,
) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.log_level:
        set_log_level(args.log_level)

    try:
        config = config_loader(args.config)
        return args.func(args, config)
    except (NonRetryableException, RetryableException, ValueError) as e:
        return handle_command_error(e)
    except OperationCancelled as e:
        console.print(f"[yellow]Cancelled:[/yellow] {e}")
        return 0
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        return 130


if __name__ == "__main__":
    sys.exit(main())
