"""Derive per-player fielding counters from ball-by-ball events.

The provider never states "player X took a catch" directly. Each delivery
carries a short outcome description ("catch out", "clean bowled",
"1 bye", "run out (sub)") plus up to three player references, and the
discrete fielding events have to be inferred from that text.

Outcome text is first classified into a set of categories (an outcome can
belong to several: "catch out" is both a dot ball and a catch), then each
category credits the players it concerns. Categories are evaluated in the
order they are declared in ``OutcomeCategory``.
"""

import logging
from collections import defaultdict
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, fields
from enum import Enum
from types import MappingProxyType
from typing import Any

logger = logging.getLogger(__name__)

BOWLED_OR_LBW_OUTCOMES = frozenset({"clean bowled", "lbw out"})
DOT_BALL_OUTCOMES = frozenset({"no run", "catch out", "clean bowled", "lbw out", "hit wicket"})
DOT_BALL_FRAGMENTS = ("stump out", "bye")


class OutcomeCategory(Enum):
    """Recognised fielding-relevant outcome categories, in evaluation order."""

    BOWLED_OR_LBW = "bowled_or_lbw"
    DOT_BALL = "dot_ball"
    CATCH = "catch"
    STUMPING = "stumping"
    RUN_OUT = "run_out"


@dataclass(frozen=True, slots=True)
class BallEvent:
    """The fielding-relevant parts of one delivery."""

    outcome: str
    bowler_id: int | None = None
    catch_stump_id: int | None = None
    run_out_by_id: int | None = None

    @classmethod
    def from_payload(cls, ball: Mapping[str, Any]) -> "BallEvent":
        """Parse a provider ball record. Zero or missing ids mean "absent"."""
        score = ball.get("score")
        outcome = score.get("name") if isinstance(score, Mapping) else None
        return cls(
            outcome=normalize_outcome(outcome),
            bowler_id=_player_ref(ball.get("bowler_id")),
            catch_stump_id=_player_ref(ball.get("catchstump_id")),
            run_out_by_id=_player_ref(ball.get("runout_by_id")),
        )


@dataclass(frozen=True, slots=True)
class FieldingCounters:
    """Fielding tallies for one player in one fixture."""

    catches: int = 0
    stumpings: int = 0
    direct_runouts: int = 0
    indirect_runouts: int = 0
    dot_balls: int = 0
    lbw_bowled_wickets: int = 0

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "FieldingCounters":
        """Build from a stored fielding_performances row."""
        return cls(**{f.name: int(row[f.name] or 0) for f in fields(cls)})


COUNTER_NAMES = tuple(f.name for f in fields(FieldingCounters))

# (player_id, counter name) pairs produced by one category for one ball
Credit = tuple[int, str]


def _player_ref(value: Any) -> int | None:
    """Provider ids arrive as ints, numeric strings, 0 or null."""
    if value is None or value == "":
        return None
    try:
        player_id = int(value)
    except (TypeError, ValueError):
        return None
    return player_id if player_id > 0 else None


def normalize_outcome(text: Any) -> str:
    """Lower-case and trim an outcome description."""
    return str(text or "").strip().lower()


def classify_outcome(outcome: str) -> frozenset[OutcomeCategory]:
    """Return every category a normalized outcome string belongs to."""
    categories = set()
    if outcome in BOWLED_OR_LBW_OUTCOMES:
        categories.add(OutcomeCategory.BOWLED_OR_LBW)
    if outcome in DOT_BALL_OUTCOMES or any(f in outcome for f in DOT_BALL_FRAGMENTS):
        categories.add(OutcomeCategory.DOT_BALL)
    if outcome == "catch out":
        categories.add(OutcomeCategory.CATCH)
    if "stump out" in outcome and "sub" not in outcome:
        categories.add(OutcomeCategory.STUMPING)
    if "run out" in outcome and "sub" not in outcome:
        categories.add(OutcomeCategory.RUN_OUT)
    return frozenset(categories)


# =============================================================================
# Credit rules, one per category
# =============================================================================


def _credit_bowled_or_lbw(event: BallEvent) -> list[Credit]:
    if event.bowler_id is None:
        return []
    return [(event.bowler_id, "lbw_bowled_wickets")]


def _credit_dot_ball(event: BallEvent) -> list[Credit]:
    if event.bowler_id is None:
        return []
    return [(event.bowler_id, "dot_balls")]


def _credit_catch(event: BallEvent) -> list[Credit]:
    if event.catch_stump_id is None:
        return []
    return [(event.catch_stump_id, "catches")]


def _credit_stumping(event: BallEvent) -> list[Credit]:
    if event.catch_stump_id is None:
        return []
    return [(event.catch_stump_id, "stumpings")]


def _credit_run_out(event: BallEvent) -> list[Credit]:
    """A lone fielder gets a direct run-out; two distinct fielders share it."""
    involved = {
        player_id
        for player_id in (event.run_out_by_id, event.catch_stump_id)
        if player_id is not None
    }
    if len(involved) == 1:
        return [(involved.pop(), "direct_runouts")]
    # Credited fielder first, then the catch/stump actor
    return [
        (player_id, "indirect_runouts")
        for player_id in (event.run_out_by_id, event.catch_stump_id)
        if player_id is not None
    ]


CREDIT_RULES: dict[OutcomeCategory, Callable[[BallEvent], list[Credit]]] = {
    OutcomeCategory.BOWLED_OR_LBW: _credit_bowled_or_lbw,
    OutcomeCategory.DOT_BALL: _credit_dot_ball,
    OutcomeCategory.CATCH: _credit_catch,
    OutcomeCategory.STUMPING: _credit_stumping,
    OutcomeCategory.RUN_OUT: _credit_run_out,
}


def credits_for(event: BallEvent) -> list[Credit]:
    """All (player, counter) credits one delivery produces, in category order."""
    categories = classify_outcome(event.outcome)
    credits: list[Credit] = []
    for category in OutcomeCategory:
        if category not in categories:
            continue
        category_credits = CREDIT_RULES[category](event)
        if not category_credits:
            logger.debug(
                f"No player reference for {category.value} on outcome {event.outcome!r}"
            )
        credits.extend(category_credits)
    return credits


def attribute_fielding(events: Iterable[BallEvent]) -> Mapping[int, FieldingCounters]:
    """
    Tally fielding counters for every player referenced by a fixture's balls.

    Args:
        events: Deliveries for one fixture, in order

    Returns:
        Read-only mapping of player id to counters. Players never credited
        are absent (all their counters are zero).
    """
    tallies: dict[int, dict[str, int]] = defaultdict(lambda: dict.fromkeys(COUNTER_NAMES, 0))
    for event in events:
        for player_id, counter in credits_for(event):
            tallies[player_id][counter] += 1

    return MappingProxyType(
        {player_id: FieldingCounters(**counts) for player_id, counts in tallies.items()}
    )


def attribute_fielding_from_payload(
    balls: Iterable[Mapping[str, Any]],
) -> Mapping[int, FieldingCounters]:
    """Convenience wrapper taking raw provider ball records."""
    return attribute_fielding(BallEvent.from_payload(ball) for ball in balls)
