"""Confirmation gate in front of every relocation.

Nothing is relocated unless the user asked for it (--apply), the
session can prompt, and the user confirmed that specific item. Items
attributed only by a heuristic rule need a second confirmation naming
the rule.
"""

import logging
import sys
from collections.abc import Callable
from dataclasses import dataclass

import typer

from reclaim.attribution.models import Confidence
from reclaim.inspection.models import FlaggedRecord
from reclaim.utils.sizes import format_size

logger = logging.getLogger(__name__)

NO_APPLY = "no-apply"
NON_INTERACTIVE = "non-interactive"
NO_CONFIRMATION = "no-confirmation"
HEURISTIC_NOT_CONFIRMED = "heuristic-not-confirmed"


@dataclass(frozen=True, slots=True)
class Authorization:
    """Whether one record may be relocated.

    Attributes:
        granted: True only when every condition of the gate held.
        reason: Why authorization was refused (None when granted).
    """

    granted: bool
    reason: str | None = None

    def __post_init__(self) -> None:
        """Validate authorization data after initialization."""
        if not self.granted and not self.reason:
            msg = "A refused authorization needs a reason"
            raise ValueError(msg)

    @classmethod
    def grant(cls) -> "Authorization":
        return cls(granted=True)

    @classmethod
    def refuse(cls, reason: str) -> "Authorization":
        return cls(granted=False, reason=reason)


class ConfirmationGate:
    """Asks the user before each relocation.

    Args:
        apply: Whether relocation was requested at all.
        interactive: Whether the session can prompt. Defaults to whether
            stdin is a terminal.
        prompt: Yes/no prompt. Receives the question, returns the answer.
    """

    def __init__(
        self,
        *,
        apply: bool,
        interactive: bool | None = None,
        prompt: Callable[[str], bool] | None = None,
    ) -> None:
        self.apply = apply
        self.interactive = sys.stdin.isatty() if interactive is None else interactive
        self._prompt = prompt if prompt is not None else _typer_prompt

    def authorize(self, record: FlaggedRecord) -> Authorization:
        """Decide whether a record may be relocated.

        Args:
            record: The flagged record.

        Returns:
            Authorization granted only when apply is set, the session is
            interactive and the user confirmed the item.
        """
        if not self.apply:
            return Authorization.refuse(NO_APPLY)
        if not self.interactive:
            return Authorization.refuse(NON_INTERACTIVE)

        verdict = record.verdict
        question = (
            f"Move {record.path} ({format_size(record.size_bytes)}) to the backup? "
            f"[{record.module}: {record.flag_reason}]"
        )
        if not self._prompt(question):
            logger.debug("Declined %s", record.path)
            return Authorization.refuse(NO_CONFIRMATION)

        if verdict.confidence == Confidence.HEURISTIC:
            follow_up = (
                f"Ownership was only guessed by rule '{verdict.rule}' "
                f"({verdict.reason}). Move it anyway?"
            )
            if not self._prompt(follow_up):
                logger.debug("Heuristic attribution not confirmed for %s", record.path)
                return Authorization.refuse(HEURISTIC_NOT_CONFIRMED)

        return Authorization.grant()


def _typer_prompt(question: str) -> bool:
    return typer.confirm(question, default=False)
