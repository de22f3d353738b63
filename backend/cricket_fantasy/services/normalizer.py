"""Map provider batting/bowling payloads onto canonical performance records.

The provider is inconsistent about where and under which name a figure
lives: a batting record may carry ``score`` at the top level or ``runs``
inside an ``attributes`` object. Every lookup here walks a list of candidate
names, first on the record and then on its attributes, and missing figures
become 0 so the scoring engine never sees None.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

logger = logging.getLogger(__name__)

# Candidate field names per canonical field, in priority order
BATTING_FIELDS: dict[str, tuple[str, ...]] = {
    "runs_scored": ("score", "runs"),
    "balls_faced": ("ball", "balls"),
    "boundaries": ("four_x", "fours"),
    "sixes": ("six_x", "sixes"),
}

BOWLING_FIELDS: dict[str, tuple[str, ...]] = {
    "overs_bowled": ("overs",),
    "runs_conceded": ("runs",),
    "wickets": ("wickets",),
    "maiden_overs": ("medians", "maidens"),
    "economy": ("rate", "economy"),
}


def _safe_int(val: Any, default: int = 0) -> int:
    """Safely convert API value to int, handling None and empty strings."""
    if val is None or val == "":
        return default
    try:
        return int(val)
    except (ValueError, TypeError, OverflowError):
        try:
            return int(float(val))
        except (ValueError, TypeError, OverflowError):
            return default


def _safe_float(val: Any, default: float = 0.0) -> float:
    """Safely convert API value to a finite float, handling None and empty strings."""
    if val is None or val == "":
        return default
    try:
        result = float(val)
    except (ValueError, TypeError, OverflowError):
        return default
    return result if math.isfinite(result) else default


def _lookup(record: Mapping[str, Any], names: Iterable[str]) -> Any:
    """Return the first present, non-empty value among candidate names."""
    attributes = record.get("attributes")
    sources = [record]
    if isinstance(attributes, Mapping):
        sources.append(attributes)

    for source in sources:
        for name in names:
            value = source.get(name)
            if value is not None and value != "":
                return value
    return None


def calculate_strike_rate(runs: int, balls: int) -> float:
    """Runs per 100 balls; 0 when no balls were faced."""
    if balls <= 0:
        return 0.0
    return runs * 100 / balls


@dataclass(frozen=True, slots=True)
class BattingRecord:
    """One player's batting figures in one fixture."""

    player_id: int
    runs_scored: int = 0
    balls_faced: int = 0
    boundaries: int = 0
    sixes: int = 0
    strike_rate: float = 0.0

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "BattingRecord":
        """Build from a stored batting_performances row."""
        return cls(
            player_id=row["player_id"],
            runs_scored=_safe_int(row["runs_scored"]),
            balls_faced=_safe_int(row["balls_faced"]),
            boundaries=_safe_int(row["boundaries"]),
            sixes=_safe_int(row["sixes"]),
            strike_rate=_safe_float(row["strike_rate"]),
        )


@dataclass(frozen=True, slots=True)
class BowlingRecord:
    """One player's bowling figures in one fixture."""

    player_id: int
    overs_bowled: float = 0.0
    runs_conceded: int = 0
    wickets: int = 0
    maiden_overs: int = 0
    economy: float = 0.0

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "BowlingRecord":
        """Build from a stored bowling_performances row."""
        return cls(
            player_id=row["player_id"],
            overs_bowled=_safe_float(row["overs_bowled"]),
            runs_conceded=_safe_int(row["runs_conceded"]),
            wickets=_safe_int(row["wickets"]),
            maiden_overs=_safe_int(row["maiden_overs"]),
            economy=_safe_float(row["economy"]),
        )


def normalize_batting(record: Mapping[str, Any]) -> BattingRecord | None:
    """Normalize one provider batting record. Returns None without a player id."""
    player_id = _safe_int(_lookup(record, ("player_id",)))
    if player_id <= 0:
        return None

    runs = _safe_int(_lookup(record, BATTING_FIELDS["runs_scored"]))
    balls = _safe_int(_lookup(record, BATTING_FIELDS["balls_faced"]))
    return BattingRecord(
        player_id=player_id,
        runs_scored=runs,
        balls_faced=balls,
        boundaries=_safe_int(_lookup(record, BATTING_FIELDS["boundaries"])),
        sixes=_safe_int(_lookup(record, BATTING_FIELDS["sixes"])),
        strike_rate=calculate_strike_rate(runs, balls),
    )


def normalize_bowling(record: Mapping[str, Any]) -> BowlingRecord | None:
    """Normalize one provider bowling record. Returns None without a player id."""
    player_id = _safe_int(_lookup(record, ("player_id",)))
    if player_id <= 0:
        return None

    return BowlingRecord(
        player_id=player_id,
        overs_bowled=_safe_float(_lookup(record, BOWLING_FIELDS["overs_bowled"])),
        runs_conceded=_safe_int(_lookup(record, BOWLING_FIELDS["runs_conceded"])),
        wickets=_safe_int(_lookup(record, BOWLING_FIELDS["wickets"])),
        maiden_overs=_safe_int(_lookup(record, BOWLING_FIELDS["maiden_overs"])),
        economy=_safe_float(_lookup(record, BOWLING_FIELDS["economy"])),
    )


def normalize_batting_listing(
    records: Iterable[Mapping[str, Any]], fixture_id: int
) -> list[BattingRecord]:
    """Normalize a fixture's batting listing, one record per player (last wins)."""
    by_player: dict[int, BattingRecord] = {}
    for record in records:
        normalized = normalize_batting(record)
        if normalized is None:
            logger.warning(f"Fixture {fixture_id}: batting record without player_id skipped")
            continue
        by_player[normalized.player_id] = normalized
    return list(by_player.values())


def normalize_bowling_listing(
    records: Iterable[Mapping[str, Any]], fixture_id: int
) -> list[BowlingRecord]:
    """Normalize a fixture's bowling listing, one record per player (last wins)."""
    by_player: dict[int, BowlingRecord] = {}
    for record in records:
        normalized = normalize_bowling(record)
        if normalized is None:
            logger.warning(f"Fixture {fixture_id}: bowling record without player_id skipped")
            continue
        by_player[normalized.player_id] = normalized
    return list(by_player.values())
