"""
God cards for the Santorini rules engine.

The card set is closed: NONE plus three powers. Every rule hook below checks
each variant explicitly and raises on anything it does not know, so adding a
card without teaching every hook about it fails loudly in tests.

- Artemis: the worker may move one additional time, but not back to its initial space.
- Demeter: the worker may build one additional time, but not on the same space.
- Triton: each time the worker moves into a perimeter space, it may immediately
  move again (capped here at two moves per turn).
"""

from enum import Enum
from typing import Optional

MAX_MOVES_PER_TURN = 2
MAX_BUILDS_PER_TURN = 2


class GodCard(Enum):
    NONE = "None"
    ARTEMIS = "Artemis"
    DEMETER = "Demeter"
    TRITON = "Triton"

    @property
    def description(self) -> str:
        return CARD_DESCRIPTIONS[self]


CARD_DESCRIPTIONS = {
    GodCard.NONE: "No god power.",
    GodCard.ARTEMIS: "Your Worker may move one additional time, but not back to its initial space.",
    GodCard.DEMETER: "Your Worker may build one additional time, but not on the same space.",
    GodCard.TRITON: "Each time your Worker moves into a perimeter space, it may immediately move again.",
}


def _unhandled(card: GodCard) -> ValueError:
    return ValueError(f"Unhandled god card: {card!r}")


def parse_god_card(name: Optional[str]) -> GodCard:
    """
    Resolve a card from its display name (case-insensitive).

    None, "" and "none" all mean no card.

    Raises:
        ValueError: if the name matches no card
    """
    if name is None or str(name).strip() == "":
        return GodCard.NONE
    wanted = str(name).strip().lower()
    for card in GodCard:
        if card.value.lower() == wanted or card.name.lower() == wanted:
            return card
    raise ValueError(f"Unknown god card: {name}")


def stamps_initial_position(card: GodCard) -> bool:
    """Whether the first move of a turn records the worker's starting position."""
    if card is GodCard.NONE or card is GodCard.DEMETER:
        return False
    if card is GodCard.ARTEMIS or card is GodCard.TRITON:
        return True
    raise _unhandled(card)


def forbids_return_to_start(card: GodCard) -> bool:
    """Whether a bonus move may not end on the turn's starting cell."""
    if card is GodCard.ARTEMIS:
        return True
    if card is GodCard.NONE or card is GodCard.DEMETER or card is GodCard.TRITON:
        return False
    raise _unhandled(card)


def forbids_repeat_build(card: GodCard) -> bool:
    """Whether a bonus build may not target the first build's cell."""
    if card is GodCard.DEMETER:
        return True
    if card is GodCard.NONE or card is GodCard.ARTEMIS or card is GodCard.TRITON:
        return False
    raise _unhandled(card)


def grants_bonus_move(card: GodCard, moves_made: int, arrived_on_perimeter: bool) -> bool:
    """
    Decide whether a bonus move is on offer after a completed move.

    Args:
        card: The acting player's card
        moves_made: Moves executed this turn, including the one just made
        arrived_on_perimeter: Whether the last move ended on the outer ring

    Returns:
        True if the turn should enter SECOND_MOVE
    """
    if moves_made >= MAX_MOVES_PER_TURN:
        return False
    if card is GodCard.NONE or card is GodCard.DEMETER:
        return False
    if card is GodCard.ARTEMIS:
        return moves_made == 1
    if card is GodCard.TRITON:
        return arrived_on_perimeter
    raise _unhandled(card)


def grants_bonus_build(card: GodCard, builds_made: int) -> bool:
    """Decide whether a bonus build is on offer after a completed build."""
    if builds_made >= MAX_BUILDS_PER_TURN:
        return False
    if card is GodCard.DEMETER:
        return builds_made == 1
    if card is GodCard.NONE or card is GodCard.ARTEMIS or card is GodCard.TRITON:
        return False
    raise _unhandled(card)
