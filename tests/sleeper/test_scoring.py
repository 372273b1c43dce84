"""Tests for fplsleeper/sleeper/scoring.py."""

from unittest.mock import patch

import pytest

from fplsleeper.common.error_helpers import MissingPeriodError
from fplsleeper.common.records import player_from_projection
from fplsleeper.sleeper.scoring import (
    PeriodContext,
    apply_scoring,
    convert_player,
    next_n_minutes,
    next_n_points,
    prediction_confidence,
    predictions_to_dataframe,
    resolve_current_period,
)


@pytest.fixture
def neutral_player(make_player):
    """Ratio 1.00 archetype, full minutes, not enough history for form / fixture."""
    return make_player(points=[8.0], minutes=[90], start=10, name="Bruno Fernandes",
                       position="MID", season_total=100.0, season_avg=5.0)


class TestResolveCurrentPeriod:
    @pytest.mark.parametrize("period,expected", [
        (5, 5), ("12", 12), (3.0, 3), (PeriodContext(7), 7),
        ({"current_period": 9}, 9), ({"currentPeriodNumber": 4}, 4),
    ])
    def test_accepted(self, period, expected):
        assert resolve_current_period(period) == expected

    @pytest.mark.parametrize("period", [None, {}, 0, -1, 2.5, "abc", True, PeriodContext(None)])
    def test_rejected(self, period):
        with pytest.raises(MissingPeriodError):
            resolve_current_period(period)


class TestConvertPlayer:
    def test_defender_ratio(self, make_player):
        player = make_player(position="DEF", name="Plain Defender", season_total=10.0)
        pred = convert_player(player, 10)
        assert pred.converted_season_total == 11.5
        assert pred.conversion_ratio == 1.15

    def test_neutral_round_trip(self, neutral_player):
        pred = convert_player(neutral_player, 10)
        assert pred.conversion_ratio == 1.0
        assert pred.ratio_source == "archetype"
        assert pred.archetype == "creative_playmaker"
        assert set(pred.multipliers.values()) == {1.0}
        assert pred.converted_current_period == 8.0
        assert pred.converted_season_total == 100.0
        assert pred.converted_season_avg == 5.0

    def test_current_prediction_field_wins(self, neutral_player):
        pred = convert_player(neutral_player._replace(current_prediction=6.0), 10)
        assert pred.base_prediction == 6.0
        assert pred.converted_current_period == 6.0

    def test_blend_with_secondary_expectation(self, neutral_player):
        pred = convert_player(neutral_player._replace(secondary_expectation=6.0), 10)
        assert pred.converted_current_period == pytest.approx(8.0 * 0.65 + 6.0 * 0.35)

    def test_no_blend_without_base(self, make_player):
        player = make_player(name="Bruno Fernandes", secondary_expectation=6.0)
        assert convert_player(player, 10).converted_current_period == 0.0

    def test_injury_only_hits_current_period(self, neutral_player):
        injured = neutral_player._replace(news="Ankle injury - ruled out")
        pred = convert_player(injured, 10)
        assert pred.injury_status == "injured"
        assert pred.converted_current_period == 4.0
        assert pred.converted_season_total == 100.0

    def test_season_values_take_form(self, make_player):
        player = make_player(points=[7, 7, 7, 5], minutes=[90] * 4, start=7,
                             name="Bruno Fernandes", season_total=100.0, season_avg=5.0)
        pred = convert_player(player, 10)
        assert pred.form_trend == "hot"
        assert pred.converted_season_total == 120.0
        assert pred.converted_season_avg == 6.0
        assert pred.converted_current_period == 6.0

    def test_per_period_values_take_ratio_only(self, make_player):
        player = make_player(points=[2.0, 4.0], start=9, position="DEF", name="Plain Defender",
                             news="Knee injury")
        pred = convert_player(player, 10)
        assert [p.converted_points for p in pred.converted_per_period] == [2.3, 4.6]

    def test_rounded_to_two_decimals(self, make_player):
        player = make_player(position="FWD", name="Plain Forward", season_total=10.123, season_avg=3.333)
        pred = convert_player(player, 10)
        assert pred.converted_season_total == round(10.123 * 0.97, 2)
        assert pred.converted_season_avg == round(3.333 * 0.97, 2)

    def test_missing_period_raises(self, neutral_player):
        with pytest.raises(MissingPeriodError):
            convert_player(neutral_player, None)

    def test_sparse_player_never_raises(self):
        pred = convert_player(player_from_projection({}), 10)
        assert pred.converted_current_period == 0.0
        assert pred.confidence == "none"
        assert pred.matchup.quality == "unknown"
        assert pred.recommendation.recommendation == "BENCH"

    def test_matchup_and_recommendation(self):
        player = player_from_projection({
            "id": "1", "name": "Plain Forward", "position": "FWD",
            "predictions": [{"gw": 10, "predicted_pts": 9, "xmins": 90, "opp": [["SHU", "Sheffield Utd (H)", 2]]}],
        })
        pred = convert_player(player, 10)
        assert pred.matchup.quality == "smash_spot"
        assert pred.matchup.opponent == "SHU"
        assert pred.recommendation.recommendation == "MUST_START"
        assert pred.expected_minutes == 90.0

    def test_matchup_failure_uses_placeholder(self, neutral_player):
        with patch("fplsleeper.sleeper.scoring.classify_matchup", side_effect=ValueError("boom")), \
                patch("fplsleeper.sleeper.scoring.log_fallback") as mock_fallback:
            pred = convert_player(neutral_player, 10)
        assert pred.matchup.quality == "unknown"
        assert pred.converted_current_period == 8.0
        mock_fallback.assert_called_once()

    def test_recommendation_failure_uses_placeholder(self, neutral_player):
        with patch("fplsleeper.sleeper.scoring.start_recommendation", side_effect=KeyError("pos")), \
                patch("fplsleeper.sleeper.scoring.log_fallback"):
            pred = convert_player(neutral_player, 10)
        assert pred.recommendation.recommendation == "UNKNOWN"


class TestPredictionConfidence:
    @pytest.mark.parametrize("entries,label", [(20, "high"), (15, "high"), (14, "medium"),
                                               (10, "medium"), (9, "low"), (1, "low"), (0, "none")])
    def test_labels(self, entries, label):
        assert prediction_confidence(entries) == label

    def test_from_player(self, make_player):
        pred = convert_player(make_player(points=[1] * 12, start=1), 10)
        assert pred.confidence == "medium"


class TestApplyScoring:
    def test_counts(self, make_player, neutral_player):
        players = [
            neutral_player,
            make_player(name="Declan Rice", points=[3], minutes=[45], start=10),
            make_player(name="Nobody", news="Suspended"),
        ]
        predictions, counts = apply_scoring(players, PeriodContext(10))
        assert len(predictions) == 3
        assert counts["total"] == 3
        assert counts["with_predictions"] == 2
        assert counts["zero_predictions"] == 1
        assert counts["archetype_ratios"] == 2
        assert counts["minutes_adjusted"] == 2
        assert counts["injured"] == 1
        assert counts["hot_form"] == 0

    def test_missing_period_raises_before_converting(self, neutral_player):
        with patch("fplsleeper.sleeper.scoring.convert_player") as mock_convert:
            with pytest.raises(MissingPeriodError):
                apply_scoring([neutral_player], {})
            mock_convert.assert_not_called()


class TestNextN:
    def test_points_window(self, make_player):
        player = make_player(points=[1.0] * 8, start=8, position="DEF", name="Plain Defender")
        pred = convert_player(player, 10)
        assert next_n_points(pred) == pytest.approx(5.75)
        assert next_n_points(pred, n=2) == pytest.approx(2.3)

    def test_minutes_window(self, make_player):
        player = make_player(points=[1.0] * 4, minutes=[90, 60, None, 30], start=10)
        pred = convert_player(player, 10)
        assert next_n_minutes(pred) == 60.0

    def test_minutes_none_without_data(self, make_player):
        assert next_n_minutes(convert_player(make_player(points=[1.0], start=10), 10)) is None


class TestPredictionsToDataFrame:
    def test_columns(self, neutral_player):
        df = predictions_to_dataframe([convert_player(neutral_player, 10)])
        assert len(df) == 1
        for col in ("player_id", "season_total", "current_period", "next_n", "recommendation",
                    "form_multiplier", "minutes_multiplier"):
            assert col in df.columns
        assert df.iloc[0]["current_period"] == 8.0
