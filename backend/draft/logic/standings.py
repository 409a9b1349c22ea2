"""
Standings aggregation: reduce the pick log into a ranked leaderboard.

The result depends only on the pick log, the participant order, the
scoring function and the previous snapshot passed in, so recomputing it
from the same inputs always yields the same ranks and totals.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, computed_field

from draft.logic.enums import ScoringDirection

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from draft.logic.state import Pick

    ScoreFunction = Callable[[str], float]


class Standing(BaseModel):
    """One participant's row in the leaderboard."""

    model_config = ConfigDict(frozen=True)

    participant_id: str
    rank: int
    total_score: float
    total_picks: int
    scored_picks: int  # picks that earned a positive score (correct picks in oscar mode)
    previous_rank: int | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def rank_change(self) -> int | None:
        """Positive when the participant moved up since the previous snapshot."""
        if self.previous_rank is None:
            return None
        return self.previous_rank - self.rank


def _participant_sequence(picks: Sequence[Pick], participant_order: Sequence[str]) -> list[str]:
    """Participant order first, then anyone who only appears in the pick log."""
    ordered = list(dict.fromkeys(participant_order))
    known = set(ordered)
    for pick in picks:
        if pick.participant_id not in known:
            ordered.append(pick.participant_id)
            known.add(pick.participant_id)
    return ordered


def compute_standings(
    picks: Iterable[Pick],
    participant_order: Sequence[str],
    score: ScoreFunction,
    previous: Sequence[Standing] | None = None,
    direction: ScoringDirection = ScoringDirection.HIGHEST,
) -> list[Standing]:
    """
    Rank participants by the summed score of their picks.

    Ties keep the participant order: whoever appears earlier in
    ``participant_order`` ranks higher. Every participant in the order is
    ranked, including those with no picks yet.
    """
    ordered_picks = sorted(picks, key=lambda pick: pick.overall_pick_number)
    participants = _participant_sequence(ordered_picks, participant_order)

    totals = dict.fromkeys(participants, 0.0)
    pick_counts = dict.fromkeys(participants, 0)
    scored_counts = dict.fromkeys(participants, 0)
    for pick in ordered_picks:
        value = float(score(pick.selection_id))
        totals[pick.participant_id] += value
        pick_counts[pick.participant_id] += 1
        if value > 0:
            scored_counts[pick.participant_id] += 1

    position = {participant_id: index for index, participant_id in enumerate(participants)}
    sign = -1.0 if direction == ScoringDirection.HIGHEST else 1.0
    ranked = sorted(participants, key=lambda pid: (sign * totals[pid], position[pid]))

    previous_ranks = {standing.participant_id: standing.rank for standing in previous or ()}
    return [
        Standing(
            participant_id=participant_id,
            rank=rank,
            total_score=totals[participant_id],
            total_picks=pick_counts[participant_id],
            scored_picks=scored_counts[participant_id],
            previous_rank=previous_ranks.get(participant_id),
        )
        for rank, participant_id in enumerate(ranked, start=1)
    ]


def roster_percentage(
    picks: Iterable[Pick],
    selection_id: str,
    num_participants: int,
    category_id: str | None = None,
) -> float:
    """Fraction of participants holding a selection (optionally within one category)."""
    if num_participants <= 0:
        return 0.0
    holders = {
        pick.participant_id
        for pick in picks
        if pick.selection_id == selection_id and (category_id is None or pick.category_id == category_id)
    }
    return len(holders) / num_participants
