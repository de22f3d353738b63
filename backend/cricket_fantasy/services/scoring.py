"""Pure fantasy-points calculation for cricket performances.

These functions are stateless and have no database or external dependencies.
Inputs are the normalized batting/bowling records and derived fielding
counters for one player in one fixture; any of the three may be absent.

Scoring Rules Reference:
| Discipline | Event                 | Points |
|------------|-----------------------|--------|
| Batting    | Run                   | 1      |
|            | Four                  | 4      |
|            | Six                   | 6      |
|            | Duck (faced a ball)   | -2     |
| Bowling    | Wicket                | 25     |
|            | Maiden over           | 12     |
| Fielding   | Catch                 | 8      |
|            | Stumping              | 12     |
|            | Direct run-out        | 12     |
|            | Indirect run-out      | 6      |
|            | Dot ball              | 1      |
|            | Bowled / LBW wicket   | 8      |
| Any        | Appearance            | 4      |
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from cricket_fantasy.services.fielding import FieldingCounters
from cricket_fantasy.services.normalizer import BattingRecord, BowlingRecord

# =============================================================================
# Constants
# =============================================================================

APPEARANCE_BONUS = 4

POINTS_PER_RUN = 1
POINTS_PER_BOUNDARY = 4
POINTS_PER_SIX = 6
DUCK_PENALTY = -2

# (minimum runs, bonus), highest first; only the first threshold met applies
BATTING_MILESTONES = ((100, 16), (75, 12), (50, 8), (25, 4))

MIN_BALLS_FOR_STRIKE_RATE = 10

POINTS_PER_WICKET = 25
POINTS_PER_MAIDEN = 12

# Exact wicket count -> bonus; five or more earns FIVE_WICKET_HAUL_BONUS
WICKET_HAUL_BONUS = {3: 4, 4: 8}
FIVE_WICKET_HAUL_BONUS = 12

MIN_OVERS_FOR_ECONOMY = 2

POINTS_PER_CATCH = 8
THREE_CATCH_BONUS = 4
POINTS_PER_STUMPING = 12
POINTS_PER_DIRECT_RUNOUT = 12
POINTS_PER_INDIRECT_RUNOUT = 6
POINTS_PER_DOT_BALL = 1
POINTS_PER_LBW_BOWLED = 8


@dataclass(frozen=True, slots=True)
class ScoreBreakdown:
    """Fantasy points for one player in one fixture."""

    batting_points: int
    bowling_points: int
    fielding_points: int
    total_points: int


# =============================================================================
# Pure Functions
# =============================================================================


def milestone_bonus(runs: int) -> int:
    """Bonus for the highest run milestone reached (0 below 25)."""
    for threshold, bonus in BATTING_MILESTONES:
        if runs >= threshold:
            return bonus
    return 0


def strike_rate_adjustment(strike_rate: float) -> int:
    """Strike-rate bonus or penalty (caller checks the minimum balls faced)."""
    if strike_rate > 170:
        return 6
    if strike_rate > 150:
        return 4
    if strike_rate >= 130:
        return 2
    if 60 < strike_rate <= 70:
        return -2
    if 50 <= strike_rate <= 60:
        return -4
    if strike_rate < 50:
        return -6
    return 0


def wicket_haul_bonus(wickets: int) -> int:
    """Bonus for taking exactly 3, exactly 4, or 5+ wickets."""
    if wickets >= 5:
        return FIVE_WICKET_HAUL_BONUS
    return WICKET_HAUL_BONUS.get(wickets, 0)


def economy_adjustment(economy: float) -> int:
    """
    Economy-rate bonus or penalty (caller checks the minimum overs bowled).

    Bands follow the published rules literally, so values falling between
    bands (e.g. 5.995 or 7.5) earn nothing.
    """
    if economy < 5:
        return 6
    if 5 <= economy <= 5.99:
        return 4
    if 6 <= economy <= 7:
        return 2
    if 10 <= economy <= 11:
        return -2
    if 11 < economy <= 12:
        return -4
    if economy > 12:
        return -6
    return 0


def calculate_batting_points(batting: BattingRecord) -> int:
    """Points for one batting performance."""
    points = (
        batting.runs_scored * POINTS_PER_RUN
        + batting.boundaries * POINTS_PER_BOUNDARY
        + batting.sixes * POINTS_PER_SIX
    )
    points += milestone_bonus(batting.runs_scored)

    if batting.runs_scored == 0 and batting.balls_faced > 0:
        points += DUCK_PENALTY

    if batting.balls_faced >= MIN_BALLS_FOR_STRIKE_RATE:
        points += strike_rate_adjustment(batting.strike_rate)

    return points


def calculate_bowling_points(bowling: BowlingRecord) -> int:
    """Points for one bowling performance."""
    points = bowling.wickets * POINTS_PER_WICKET + bowling.maiden_overs * POINTS_PER_MAIDEN
    points += wicket_haul_bonus(bowling.wickets)

    if bowling.overs_bowled >= MIN_OVERS_FOR_ECONOMY:
        points += economy_adjustment(bowling.economy)

    return points


def calculate_fielding_points(fielding: FieldingCounters) -> int:
    """Points for one player's derived fielding counters."""
    points = fielding.catches * POINTS_PER_CATCH
    if fielding.catches >= 3:
        points += THREE_CATCH_BONUS
    points += fielding.stumpings * POINTS_PER_STUMPING
    points += fielding.direct_runouts * POINTS_PER_DIRECT_RUNOUT
    points += fielding.indirect_runouts * POINTS_PER_INDIRECT_RUNOUT
    points += fielding.dot_balls * POINTS_PER_DOT_BALL
    points += fielding.lbw_bowled_wickets * POINTS_PER_LBW_BOWLED
    return points


def calculate_fantasy_score(
    batting: BattingRecord | None,
    bowling: BowlingRecord | None,
    fielding: FieldingCounters | None,
) -> ScoreBreakdown | None:
    """Combine the three disciplines into a score breakdown.

    Returns None when the player has no performance at all, since the
    appearance bonus is only earned by appearing in some record.
    """
    if batting is None and bowling is None and fielding is None:
        return None

    batting_points = calculate_batting_points(batting) if batting is not None else 0
    bowling_points = calculate_bowling_points(bowling) if bowling is not None else 0
    fielding_points = calculate_fielding_points(fielding) if fielding is not None else 0

    return ScoreBreakdown(
        batting_points=batting_points,
        bowling_points=bowling_points,
        fielding_points=fielding_points,
        total_points=batting_points + bowling_points + fielding_points + APPEARANCE_BONUS,
    )


def score_fixture(
    batting: Iterable[BattingRecord],
    bowling: Iterable[BowlingRecord],
    fielding: Mapping[int, FieldingCounters],
) -> list[tuple[int, ScoreBreakdown]]:
    """Score every player with any performance in a fixture.

    Returns (player_id, breakdown) pairs ordered by player id.
    """
    batting_by_player = {record.player_id: record for record in batting}
    bowling_by_player = {record.player_id: record for record in bowling}
    player_ids = sorted(set(batting_by_player) | set(bowling_by_player) | set(fielding))

    scores = []
    for player_id in player_ids:
        breakdown = calculate_fantasy_score(
            batting_by_player.get(player_id),
            bowling_by_player.get(player_id),
            fielding.get(player_id),
        )
        if breakdown is not None:
            scores.append((player_id, breakdown))
    return scores
