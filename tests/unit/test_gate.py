"""Unit tests for the confirmation gate."""

from collections.abc import Callable
from pathlib import Path

import pytest
from reclaim.attribution.models import Confidence, Verdict
from reclaim.gate import (
    HEURISTIC_NOT_CONFIRMED,
    NO_APPLY,
    NO_CONFIRMATION,
    NON_INTERACTIVE,
    Authorization,
    ConfirmationGate,
)
from reclaim.inspection.models import FlaggedRecord

HEURISTIC = Verdict(
    confidence=Confidence.HEURISTIC,
    owner="com.gone.App",
    rule="bundle-id-shape",
    reason="named after bundle id 'com.gone.App' with no installed app",
)


class _Answers:
    """Scripted prompt recording the questions asked."""

    def __init__(self, *answers: bool) -> None:
        self.answers = list(answers)
        self.questions: list[str] = []

    def __call__(self, question: str) -> bool:
        self.questions.append(question)
        return self.answers.pop(0)


class TestAuthorization:
    """Tests for Authorization model."""

    def test_refusal_needs_reason(self) -> None:
        """A refusal without a reason is rejected."""
        with pytest.raises(ValueError, match="needs a reason"):
            Authorization(granted=False)

    def test_grant(self) -> None:
        """Granted authorizations carry no reason."""
        assert Authorization.grant() == Authorization(granted=True, reason=None)


class TestConfirmationGate:
    """Tests for ConfirmationGate.authorize."""

    def test_without_apply(self, make_record: Callable[..., FlaggedRecord]) -> None:
        """Nothing is authorized unless relocation was requested."""
        prompt = _Answers()
        gate = ConfirmationGate(apply=False, interactive=True, prompt=prompt)

        auth = gate.authorize(make_record(Path("/h/x"), size=1))

        assert auth == Authorization.refuse(NO_APPLY)
        assert prompt.questions == []

    def test_non_interactive(self, make_record: Callable[..., FlaggedRecord]) -> None:
        """Sessions that cannot prompt authorize nothing."""
        prompt = _Answers()
        gate = ConfirmationGate(apply=True, interactive=False, prompt=prompt)

        auth = gate.authorize(make_record(Path("/h/x"), size=1))

        assert auth.reason == NON_INTERACTIVE
        assert prompt.questions == []

    def test_declined(self, make_record: Callable[..., FlaggedRecord]) -> None:
        """A declined prompt refuses the item."""
        gate = ConfirmationGate(apply=True, interactive=True, prompt=_Answers(False))

        auth = gate.authorize(make_record(Path("/h/x"), size=1))

        assert auth.reason == NO_CONFIRMATION

    def test_confirmed_inventory_match(self, make_record: Callable[..., FlaggedRecord]) -> None:
        """Inventory-matched items need one confirmation."""
        prompt = _Answers(True)
        gate = ConfirmationGate(apply=True, interactive=True, prompt=prompt)

        auth = gate.authorize(make_record(Path("/h/x"), size=2048))

        assert auth.granted
        assert len(prompt.questions) == 1
        assert "/h/x" in prompt.questions[0]
        assert "2.0 KB" in prompt.questions[0]

    def test_heuristic_needs_second_confirmation(
        self, make_record: Callable[..., FlaggedRecord]
    ) -> None:
        """Heuristic attributions are confirmed again, naming the rule."""
        prompt = _Answers(True, True)
        gate = ConfirmationGate(apply=True, interactive=True, prompt=prompt)

        auth = gate.authorize(make_record(Path("/h/x"), size=1, verdict=HEURISTIC))

        assert auth.granted
        assert len(prompt.questions) == 2
        assert "bundle-id-shape" in prompt.questions[1]

    def test_heuristic_second_prompt_declined(
        self, make_record: Callable[..., FlaggedRecord]
    ) -> None:
        """Declining the rule confirmation refuses the item."""
        gate = ConfirmationGate(apply=True, interactive=True, prompt=_Answers(True, False))

        auth = gate.authorize(make_record(Path("/h/x"), size=1, verdict=HEURISTIC))

        assert auth.reason == HEURISTIC_NOT_CONFIRMED
