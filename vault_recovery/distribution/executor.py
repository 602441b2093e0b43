"""
DistributionExecutor - sequential, operator-supervised token transfers

Flow for a run:
1. Preflight: one confirmation before real transfers, plus one if the
   signer is not the expected holder wallet
2. Balance check: total of the plan(s) vs. holder balance; any shortfall
   needs one explicit override
3. Per recipient (ascending amount): confirm -> transfer -> wait receipt
   - "No" skips the recipient, "All" stops prompting, "Cancel" stops the
     run and leaves the rest untouched
   - a nonce error is retried once with a fresh nonce
   - any failure clears auto-confirm, asks whether to continue, then
     cools down before the next recipient

Simulation mode runs the identical loop (prompts included) without any
state-changing chain call.
"""

import time
from typing import Callable, Dict, List, Optional, Sequence

from rich.console import Console

from vault_recovery.distribution.balance import BalanceCheck
from vault_recovery.distribution.confirmation import (
    ConfirmationAnswer,
    ConfirmationState,
    Confirmer,
    ask_gate,
)
from vault_recovery.distribution.plan import DistributionPlan, Recipient
from vault_recovery.shared.constants import DistributionConstants
from vault_recovery.shared.exceptions import (
    NonceConflictException,
    OperationCancelled,
)
from vault_recovery.shared.logging import get_logger
from vault_recovery.shared.results import DistributionSummary
from vault_recovery.utils.formatters import console as default_console
from vault_recovery.utils.formatters import format_wei

logger = get_logger(__name__)


def _is_nonce_conflict(error: Exception) -> bool:
    return isinstance(error, NonceConflictException) or "nonce" in str(error).lower()


class DistributionExecutor:
    """
    Replays a DistributionPlan as ERC20 transfers.

    Attributes:
        confirmer: Source of operator answers
        client: TokenTransferClient (or compatible); None means no chain
            access at all, which is only valid in simulation
        simulation: When True nothing is ever submitted
        state: Confirmation flags shared by every plan of this executor
    """

    def __init__(
        self,
        confirmer: Confirmer,
        client=None,
        simulation: bool = True,
        transfer_delay: float = DistributionConstants.TRANSFER_DELAY_SECONDS,
        error_cooldown: float = DistributionConstants.ERROR_COOLDOWN_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        is_cancelled: Optional[Callable[[], bool]] = None,
        console: Optional[Console] = None,
    ):
        if client is None and not simulation:
            raise ValueError("Execution mode requires a transfer client")
        self.confirmer = confirmer
        self.client = client
        self.simulation = simulation
        self.transfer_delay = transfer_delay
        self.error_cooldown = error_cooldown
        self._sleep = sleep
        self._is_cancelled = is_cancelled
        self.console = console or default_console
        self.state = ConfirmationState()

    # Preflight

    def preflight(self, token_symbol: str, expected_holder: Optional[str]) -> bool:
        """Execution gate and holder check. False means the operator declined."""
        if self.simulation:
            self.console.print(
                "[yellow]SIMULATION MODE: no transactions will be sent "
                "(run with --doit to execute)[/yellow]"
            )
        else:
            self.console.print(
                "[bold red]EXECUTION MODE: real transactions will be sent "
                "after confirmation[/bold red]"
            )
            if not ask_gate(
                self.confirmer,
                f"WARNING: This will send actual {token_symbol} transactions. "
                "Are you sure you want to continue?",
            ):
                self.console.print("Distribution cancelled by user")
                return False

        if self.client is None:
            return True

        signer = self.client.address
        self.console.print(f"Using wallet: [cyan]{signer}[/cyan]")
        if expected_holder and signer.lower() != expected_holder.lower():
            self.console.print(
                f"[yellow]Warning: the wallet address ({signer}) doesn't match "
                f"the expected hot wallet address ({expected_holder}).[/yellow]"
            )
            if not ask_gate(self.confirmer, "Do you want to continue anyway?"):
                self.console.print("Distribution cancelled by user")
                return False
        return True

    # Balance

    def check_balances(
        self, plans: Sequence[DistributionPlan]
    ) -> List[BalanceCheck]:
        """Holder balance per distinct token against the summed plan totals."""
        if self.client is None:
            return []

        required: Dict[str, int] = {}
        tokens = {}
        for plan in plans:
            key = plan.token.address.lower()
            tokens[key] = plan.token
            required[key] = required.get(key, 0) + plan.total_amount

        checks = []
        for key, token in tokens.items():
            balance = self.client.web3_service.token_balance(
                token.address, self.client.address
            )
            checks.append(BalanceCheck(token, balance, required[key]))
        return checks

    def confirm_balances(self, plans: Sequence[DistributionPlan]) -> bool:
        """Report coverage; a shortfall needs one explicit override."""
        self.console.print("\nVerifying token balances...")
        checks = self.check_balances(plans)
        for check in checks:
            self.console.print(check.describe())

        if all(check.sufficient for check in checks):
            return True

        self.console.print("[red]Insufficient token balance[/red]")
        return ask_gate(
            self.confirmer,
            "Do you want to continue anyway? (will likely fail on some transactions)",
        )

    # Transfers

    def _transfer(self, plan: DistributionPlan, recipient: Recipient) -> str:
        nonce = self.client.get_nonce()
        logger.debug(f"Using nonce {nonce} for {recipient.address}")
        try:
            return self.client.send_transfer(
                plan.token.address, recipient.address, recipient.amount, nonce
            )
        except Exception as e:
            if not _is_nonce_conflict(e):
                raise
            refreshed = self.client.get_nonce()
            self.console.print(
                f"[yellow]Nonce error ({e}); retrying with nonce {refreshed}[/yellow]"
            )
            return self.client.send_transfer(
                plan.token.address, recipient.address, recipient.amount, refreshed
            )

    def _prompt(self, plan: DistributionPlan, recipient: Recipient) -> str:
        amount = format_wei(recipient.amount, plan.token.decimals)
        if self.simulation:
            return (
                f"SIMULATE: Would you like to send {amount} "
                f"{plan.token.symbol} to {recipient.display_name}?"
            )
        return f"Send {amount} {plan.token.symbol} to {recipient.display_name}?"

    def run(
        self, plan: DistributionPlan, check_balance: bool = True
    ) -> DistributionSummary:
        """
        Distribute one plan.

        Every recipient of the plan ends up in exactly one summary counter.
        """
        summary = DistributionSummary(label=plan.name, simulation=self.simulation)
        summary.skipped_by_threshold = len(plan.below_threshold)
        recipients = plan.recipients
        total = len(recipients)

        self.console.print(f"\n[bold]=== Processing {plan.name} ===[/bold]")
        self.console.print(
            f"Found {total} recipients, {len(plan.below_threshold)} below threshold"
        )

        if self.state.cancelled or (
            check_balance and total and not self.confirm_balances([plan])
        ):
            self.state.cancelled = True
            summary.cancelled = True
            summary.not_attempted = total
            return summary

        for index, recipient in enumerate(recipients):
            if self.state.cancelled or (
                self._is_cancelled is not None and self._is_cancelled()
            ):
                summary.cancelled = True
                summary.not_attempted += total - index
                break

            self.console.print(
                f"\n[{index + 1}/{total}] Processing {recipient.display_name}"
            )
            answer = self.state.confirm(self.confirmer, self._prompt(plan, recipient))

            if answer is ConfirmationAnswer.CANCEL:
                self.console.print("[red]Distribution cancelled by user[/red]")
                summary.cancelled = True
                summary.not_attempted += total - index
                break
            if answer is ConfirmationAnswer.NO:
                self.console.print(f"Skipping {recipient.display_name} by user request")
                summary.skipped_by_operator += 1
                continue

            amount = format_wei(recipient.amount, plan.token.decimals)
            if self.simulation:
                self.console.print(
                    f"[green]SIMULATION: Would send {amount} {plan.token.symbol} "
                    f"to {recipient.display_name}[/green]"
                )
                summary.successful += 1
                summary.transactions.append(
                    {"address": recipient.address, "amount": str(recipient.amount)}
                )
                continue

            try:
                tx_hash = self._transfer(plan, recipient)
            except OperationCancelled:
                raise
            except Exception as e:
                message = getattr(e, "message", None) or str(e)
                logger.error(f"Transfer to {recipient.address} failed: {message}")
                self.console.print(
                    f"[red]Error processing {recipient.display_name}: {message}[/red]"
                )
                summary.record_failure(recipient.address, recipient.amount, message, e)

                if not self.state.continue_after_error(
                    self.confirmer, "Continue with remaining transactions?"
                ):
                    self.console.print("[red]Distribution cancelled after error[/red]")
                    summary.cancelled = True
                    summary.not_attempted += total - index - 1
                    break

                self.console.print(
                    f"Waiting {self.error_cooldown:g} seconds before continuing..."
                )
                self._sleep(self.error_cooldown)
                continue

            self.console.print(f"[green]Transaction confirmed: {tx_hash}[/green]")
            summary.successful += 1
            summary.transactions.append(
                {
                    "address": recipient.address,
                    "amount": str(recipient.amount),
                    "tx_hash": tx_hash,
                }
            )
            if index < total - 1:
                self._sleep(self.transfer_delay)

        return summary

    def run_pools(self, plans: Sequence[DistributionPlan]) -> List[DistributionSummary]:
        """
        Run several plans in the given order with one up-front balance check.

        A cancel in one plan leaves every later plan untouched.
        """
        summaries: List[DistributionSummary] = []
        if any(plan.recipients for plan in plans) and not self.confirm_balances(plans):
            self.state.cancelled = True

        for plan in plans:
            summaries.append(self.run(plan, check_balance=False))
        return summaries
