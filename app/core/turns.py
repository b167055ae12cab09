from __future__ import annotations

from typing import Sequence

from .errors import ValidationError
from .types import CALLER_ROLE, CallerTurn, Turn

NO_CALLER_TURN_MESSAGE = "no caller turn found"


def extract_caller_turn(turns: Sequence[Turn]) -> CallerTurn:
    """Return the newest user-authored turn and its images.

    Only the newest user turn is considered; if it carries no text the
    conversation is treated as having no caller turn at all.
    """

    for turn in reversed(turns):
        if turn.role != CALLER_ROLE:
            continue

        if not turn.content:
            break

        return CallerTurn(content=turn.content, images=tuple(turn.images))

    raise ValidationError(NO_CALLER_TURN_MESSAGE, code="missing_caller_turn")
