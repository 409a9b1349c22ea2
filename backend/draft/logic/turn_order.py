"""
Turn order calculation: map an overall pick number to its round, slot and picker.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, NamedTuple

from draft.logic.enums import TurnStyle

if TYPE_CHECKING:
    from collections.abc import Sequence


class TurnSlot(NamedTuple):
    """Position of one overall pick within the draft."""

    unit_index: int  # 1-based round (or category slot in oscar mode)
    position_in_unit: int  # 0-based position within the round
    participant_index: int  # index into the participant order


def turn_slot(overall_pick: int, num_participants: int, turn_style: TurnStyle) -> TurnSlot:
    """
    Compute the slot for a 1-based overall pick number.

    Serpentine drafts walk the order backwards on even rounds, so the
    participant picking last in round 1 picks first in round 2.
    """
    unit_index = ((overall_pick - 1) // num_participants) + 1
    position_in_unit = (overall_pick - 1) % num_participants
    if turn_style == TurnStyle.SERPENTINE and unit_index % 2 == 0:
        participant_index = num_participants - 1 - position_in_unit
    else:
        participant_index = position_in_unit
    return TurnSlot(unit_index, position_in_unit, participant_index)


def picker_for_pick(participant_order: Sequence[str], overall_pick: int, turn_style: TurnStyle) -> str:
    """Return the participant id picking at the given overall pick number."""
    slot = turn_slot(overall_pick, len(participant_order), turn_style)
    return participant_order[slot.participant_index]


def draft_board(
    participant_order: Sequence[str],
    units_per_participant: int,
    turn_style: TurnStyle,
) -> list[list[str]]:
    """Return the full pick grid: one row per round, pickers in pick order."""
    num_participants = len(participant_order)
    board: list[list[str]] = []
    for overall_pick in range(1, num_participants * units_per_participant + 1):
        slot = turn_slot(overall_pick, num_participants, turn_style)
        if slot.position_in_unit == 0:
            board.append([])
        board[-1].append(participant_order[slot.participant_index])
    return board
