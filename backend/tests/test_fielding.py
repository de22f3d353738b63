"""Tests for ball-by-ball fielding attribution."""

import pytest

from cricket_fantasy.services.fielding import (
    BallEvent,
    FieldingCounters,
    OutcomeCategory,
    attribute_fielding,
    attribute_fielding_from_payload,
    classify_outcome,
    credits_for,
)

BOWLER = 10
KEEPER = 20
FIELDER = 30


class TestClassifyOutcome:
    """Tests for outcome text classification."""

    @pytest.mark.parametrize(
        "outcome,expected",
        [
            ("catch out", {OutcomeCategory.DOT_BALL, OutcomeCategory.CATCH}),
            ("clean bowled", {OutcomeCategory.BOWLED_OR_LBW, OutcomeCategory.DOT_BALL}),
            ("lbw out", {OutcomeCategory.BOWLED_OR_LBW, OutcomeCategory.DOT_BALL}),
            ("no run", {OutcomeCategory.DOT_BALL}),
            ("hit wicket", {OutcomeCategory.DOT_BALL}),
            ("1 bye", {OutcomeCategory.DOT_BALL}),
            ("4 leg bye", {OutcomeCategory.DOT_BALL}),
            ("stump out", {OutcomeCategory.DOT_BALL, OutcomeCategory.STUMPING}),
            ("stump out (sub)", {OutcomeCategory.DOT_BALL}),
            ("run out", {OutcomeCategory.RUN_OUT}),
            ("1 run + run out", {OutcomeCategory.RUN_OUT}),
            ("run out (sub)", set()),
            ("4 runs", set()),
            ("", set()),
        ],
    )
    def test_categories(self, outcome, expected):
        assert classify_outcome(outcome) == frozenset(expected)


class TestCredits:
    """Tests for per-delivery credits."""

    def test_catch_out_credits_catcher_only_with_catch(self):
        """The catcher gets exactly one catch; the bowler gets the dot ball."""
        event = BallEvent("catch out", bowler_id=BOWLER, catch_stump_id=FIELDER)

        counters = attribute_fielding([event])

        assert counters[FIELDER] == FieldingCounters(catches=1)
        assert counters[BOWLER] == FieldingCounters(dot_balls=1)

    def test_bowled_credits_bowler_twice(self):
        event = BallEvent("clean bowled", bowler_id=BOWLER)

        assert credits_for(event) == [
            (BOWLER, "lbw_bowled_wickets"),
            (BOWLER, "dot_balls"),
        ]

    def test_stumping_credits_keeper(self):
        event = BallEvent("stump out", bowler_id=BOWLER, catch_stump_id=KEEPER)

        counters = attribute_fielding([event])

        assert counters[KEEPER].stumpings == 1
        assert counters[BOWLER].dot_balls == 1

    def test_substitute_stumping_not_credited(self):
        event = BallEvent("stump out (sub)", bowler_id=BOWLER, catch_stump_id=KEEPER)

        counters = attribute_fielding([event])

        assert KEEPER not in counters
        assert counters[BOWLER].dot_balls == 1

    def test_byes_count_as_dot_balls(self):
        events = [BallEvent("1 bye", bowler_id=BOWLER), BallEvent("2 bye", bowler_id=BOWLER)]

        assert attribute_fielding(events)[BOWLER].dot_balls == 2

    def test_missing_bowler_credits_nothing(self):
        assert credits_for(BallEvent("no run")) == []


class TestRunOuts:
    """Tests for run-out attribution."""

    def test_single_fielder_direct(self):
        event = BallEvent("run out", bowler_id=BOWLER, run_out_by_id=FIELDER)

        counters = attribute_fielding([event])

        assert counters[FIELDER] == FieldingCounters(direct_runouts=1)
        assert BOWLER not in counters

    def test_single_catch_stump_actor_direct(self):
        event = BallEvent("run out", catch_stump_id=KEEPER)

        assert attribute_fielding([event])[KEEPER].direct_runouts == 1

    def test_two_fielders_both_indirect(self):
        event = BallEvent("run out", run_out_by_id=FIELDER, catch_stump_id=KEEPER)

        counters = attribute_fielding([event])

        assert counters[FIELDER] == FieldingCounters(indirect_runouts=1)
        assert counters[KEEPER] == FieldingCounters(indirect_runouts=1)

    def test_same_player_in_both_slots_direct_once(self):
        event = BallEvent("run out", run_out_by_id=FIELDER, catch_stump_id=FIELDER)

        counters = attribute_fielding([event])

        assert counters[FIELDER] == FieldingCounters(direct_runouts=1)

    def test_no_fielder_credits_nobody(self):
        assert attribute_fielding([BallEvent("run out", bowler_id=BOWLER)]) == {}

    def test_substitute_run_out_not_credited(self):
        event = BallEvent("run out (sub)", run_out_by_id=FIELDER)

        assert attribute_fielding([event]) == {}


class TestAttributeFromPayload:
    """Tests for raw provider ball records."""

    def test_parses_provider_shape(self):
        balls = [
            {"score": {"name": "Catch Out"}, "bowler_id": BOWLER, "catchstump_id": FIELDER},
            {"score": {"name": " no run "}, "bowler_id": BOWLER, "catchstump_id": 0},
            {"score": {"name": "Run Out"}, "bowler_id": BOWLER, "runout_by_id": "30"},
            {"score": None, "bowler_id": BOWLER},
        ]

        counters = attribute_fielding_from_payload(balls)

        assert counters[FIELDER] == FieldingCounters(catches=1, direct_runouts=1)
        assert counters[BOWLER] == FieldingCounters(dot_balls=2)

    def test_zero_ids_are_absent(self):
        event = BallEvent.from_payload(
            {"score": {"name": "run out"}, "catchstump_id": 0, "runout_by_id": None}
        )

        assert event.catch_stump_id is None
        assert event.run_out_by_id is None

    def test_result_is_read_only(self):
        counters = attribute_fielding([BallEvent("no run", bowler_id=BOWLER)])

        with pytest.raises(TypeError):
            counters[BOWLER] = FieldingCounters()

    def test_independent_runs_do_not_share_state(self):
        first = attribute_fielding([BallEvent("no run", bowler_id=BOWLER)])
        second = attribute_fielding([BallEvent("no run", bowler_id=BOWLER)])

        assert first[BOWLER].dot_balls == 1
        assert second[BOWLER].dot_balls == 1
