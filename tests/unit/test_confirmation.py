"""
Unit tests for the operator confirmation state machine.
"""

from unittest.mock import MagicMock, patch

import pytest

from conftest import ScriptedConfirmer
from vault_recovery.distribution.confirmation import (
    ConfirmationAnswer,
    ConfirmationState,
    TerminalConfirmer,
    ask_gate,
)


class TestConfirmationAnswer:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("y", ConfirmationAnswer.YES),
            ("", ConfirmationAnswer.YES),
            (None, ConfirmationAnswer.YES),
            ("whatever", ConfirmationAnswer.YES),
            ("N", ConfirmationAnswer.NO),
            ("no", ConfirmationAnswer.NO),
            ("a", ConfirmationAnswer.ALL),
            (" ALL ", ConfirmationAnswer.ALL),
            ("c", ConfirmationAnswer.CANCEL),
            ("cancel", ConfirmationAnswer.CANCEL),
        ],
    )
    def test_parse(self, text, expected):
        assert ConfirmationAnswer.parse(text) is expected

    def test_proceeds(self):
        assert ConfirmationAnswer.YES.proceeds
        assert ConfirmationAnswer.ALL.proceeds
        assert not ConfirmationAnswer.NO.proceeds
        assert not ConfirmationAnswer.CANCEL.proceeds


class TestConfirmationState:
    def test_all_enables_auto_confirm(self):
        confirmer = ScriptedConfirmer(["y", "a"])
        state = ConfirmationState()

        answers = [state.confirm(confirmer, f"send {i}") for i in range(5)]

        assert answers[:2] == [ConfirmationAnswer.YES, ConfirmationAnswer.ALL]
        assert answers[2:] == [ConfirmationAnswer.YES] * 3
        assert confirmer.prompts == ["send 0", "send 1"]
        assert state.auto_confirm

    def test_cancel_sets_flag(self):
        state = ConfirmationState()
        assert state.confirm(ScriptedConfirmer(["c"]), "send") is ConfirmationAnswer.CANCEL
        assert state.cancelled

    def test_no_does_not_change_state(self):
        state = ConfirmationState()
        assert state.confirm(ScriptedConfirmer(["n"]), "send") is ConfirmationAnswer.NO
        assert not state.auto_confirm
        assert not state.cancelled

    def test_error_always_prompts_and_clears_auto(self):
        confirmer = ScriptedConfirmer(["y"])
        state = ConfirmationState(auto_confirm=True)

        assert state.continue_after_error(confirmer, "continue?") is True
        assert confirmer.prompts == ["continue?"]
        assert not state.auto_confirm

    def test_all_after_error_restores_auto(self):
        state = ConfirmationState(auto_confirm=True)
        assert state.continue_after_error(ScriptedConfirmer(["a"]), "continue?")
        assert state.auto_confirm

    @pytest.mark.parametrize("answer", ["n", "c"])
    def test_refusal_after_error_cancels(self, answer):
        state = ConfirmationState()
        assert state.continue_after_error(ScriptedConfirmer([answer]), "continue?") is False
        assert state.cancelled


class TestAskGate:
    def test_all_means_yes_without_auto(self):
        assert ask_gate(ScriptedConfirmer(["a"]), "go?") is True

    @pytest.mark.parametrize("answer, expected", [("y", True), ("n", False), ("c", False)])
    def test_answers(self, answer, expected):
        assert ask_gate(ScriptedConfirmer([answer]), "go?") is expected


class TestTerminalConfirmer:
    def test_reads_prompt(self):
        with patch(
            "vault_recovery.distribution.confirmation.Prompt.ask", return_value="a"
        ):
            assert TerminalConfirmer(MagicMock()).ask("go?") is ConfirmationAnswer.ALL

    @pytest.mark.parametrize("error", [KeyboardInterrupt, EOFError])
    def test_interrupt_cancels(self, error):
        with patch(
            "vault_recovery.distribution.confirmation.Prompt.ask", side_effect=error
        ):
            assert TerminalConfirmer(MagicMock()).ask("go?") is ConfirmationAnswer.CANCEL
