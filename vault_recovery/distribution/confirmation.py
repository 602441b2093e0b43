"""
Operator confirmation for distribution runs.

The executor never reads the terminal itself: it asks a ``Confirmer``
(terminal in production, scripted in tests) and keeps the auto-confirm /
cancel flags in an explicit ConfirmationState passed through the loop.

Answers: Yes / No / All / Cancel. Anything unrecognized, including an
empty line, means Yes.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from rich.console import Console
from rich.prompt import Prompt

from vault_recovery.shared.logging import get_logger
from vault_recovery.utils.formatters import console as default_console

logger = get_logger(__name__)


class ConfirmationAnswer(str, Enum):
    YES = "yes"
    NO = "no"
    ALL = "all"
    CANCEL = "cancel"

    @classmethod
    def parse(cls, text: Optional[str]) -> "ConfirmationAnswer":
        value = (text or "").strip().lower()
        if value in ("a", "all"):
            return cls.ALL
        if value in ("c", "cancel"):
            return cls.CANCEL
        if value in ("n", "no"):
            return cls.NO
        return cls.YES

    @property
    def proceeds(self) -> bool:
        return self in (ConfirmationAnswer.YES, ConfirmationAnswer.ALL)


class Confirmer(Protocol):
    def ask(self, prompt: str) -> ConfirmationAnswer: ...


class TerminalConfirmer:
    """Reads answers from the terminal; Ctrl-C or EOF cancels."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or default_console

    def ask(self, prompt: str) -> ConfirmationAnswer:
        self.console.rule(style="dim")
        try:
            text = Prompt.ask(
                f"{prompt} [dim](Y/n/a/c - Yes/no/all/cancel)[/dim]",
                console=self.console,
                default="y",
                show_default=False,
            )
        except (KeyboardInterrupt, EOFError):
            self.console.print()
            return ConfirmationAnswer.CANCEL
        return ConfirmationAnswer.parse(text)


@dataclass
class ConfirmationState:
    """
    Per-run confirmation flags.

    Attributes:
        auto_confirm: Set by "All"; later prompts are skipped until an error
        cancelled: Set by "Cancel" (or a refusal after an error)
    """

    auto_confirm: bool = False
    cancelled: bool = False

    def confirm(self, confirmer: Confirmer, prompt: str) -> ConfirmationAnswer:
        """Ask for one recipient, honouring auto-confirm."""
        if self.auto_confirm:
            logger.debug(f"Auto-confirmed: {prompt}")
            return ConfirmationAnswer.YES

        answer = confirmer.ask(prompt)
        if answer is ConfirmationAnswer.ALL:
            self.auto_confirm = True
            logger.info("Auto-confirm enabled for the remaining recipients")
        elif answer is ConfirmationAnswer.CANCEL:
            self.cancelled = True
        return answer

    def continue_after_error(self, confirmer: Confirmer, prompt: str) -> bool:
        """
        Always prompt after a failed item. Auto-confirm is cleared first and
        only comes back if the operator answers "All" here.
        """
        if self.auto_confirm:
            logger.warning("Auto-confirm disabled due to error")
        self.auto_confirm = False

        answer = confirmer.ask(prompt)
        if answer is ConfirmationAnswer.ALL:
            self.auto_confirm = True
        elif not answer.proceeds:
            self.cancelled = True
        return not self.cancelled


def ask_gate(confirmer: Confirmer, prompt: str) -> bool:
    """One-off yes/no gate (execution mode, holder mismatch, low balance).

    Never touches the auto-confirm flag: "All" here only means yes.
    """
    return confirmer.ask(prompt).proceeds
