"""Tests for fplsleeper/common/records.py."""

from collections import namedtuple

import pytest

from fplsleeper.common.records import (
    build_projection_record,
    build_roster_record,
    join_matches,
    join_records,
    merge_period_predictions,
    parse_period_entry,
    player_from_projection,
)


class TestBuildRosterRecord:
    def test_sleeper_shape(self):
        rec = build_roster_record({
            "player_id": "1234", "full_name": "Bukayo Saka", "team": "ars",
            "fantasy_positions": ["M"], "opta_id": "abc", "rotowire_id": 77.0,
            "injury_status": "Questionable",
        })
        assert rec.record_id == "1234"
        assert rec.name == "Bukayo Saka"
        assert rec.team == "ARS"
        assert rec.position == "MID"
        assert rec.strong_id1 == "abc"
        assert rec.strong_id2 == "77"
        assert rec.injury_status == "Questionable"

    def test_name_from_parts(self):
        rec = build_roster_record({"first_name": "Declan", "last_name": "Rice", "team": "ARS"})
        assert rec.name == "Declan Rice"
        assert rec.record_id == "Declan Rice_ARS"

    def test_name_field_preferred(self):
        rec = build_roster_record({"name": "Short", "full_name": "Long Name"})
        assert rec.name == "Short"

    def test_missing_position_is_none(self):
        assert build_roster_record({"name": "X"}).position is None

    def test_sparse_input_never_raises(self):
        rec = build_roster_record({})
        assert rec.name == ""
        assert rec.team == ""
        assert rec.strong_id1 is None

    def test_non_dict_input(self):
        assert build_roster_record(None).name == ""


class TestParsePeriodEntry:
    def test_flat_entry(self):
        entry = parse_period_entry({
            "gw": 10, "predicted_pts": 5.5, "predicted_mins": 85,
            "opponent_code": "avl", "opponent_difficulty": 3, "is_home": True,
        })
        assert entry.period == 10
        assert entry.predicted_points == 5.5
        assert entry.predicted_minutes == 85
        assert entry.opponent == "AVL"
        assert entry.opponent_difficulty == 3
        assert entry.is_home is True

    def test_nested_opp(self):
        entry = parse_period_entry({"gw": 3, "predicted_pts": 4, "opp": [["che", "Chelsea (A)", 4]]})
        assert entry.opponent == "CHE"
        assert entry.opponent_difficulty == 4
        assert entry.is_home is False

    def test_nested_points_payload(self):
        entry = parse_period_entry({"gw": 2, "predicted_pts": {"predicted_pts": 6.1}})
        assert entry.predicted_points == 6.1

    def test_xmins(self):
        assert parse_period_entry({"gw": 1, "predicted_pts": 2, "xmins": 60}).predicted_minutes == 60

    def test_zero_points_kept(self):
        assert parse_period_entry({"gw": 1, "predicted_pts": 0}).predicted_points == 0.0

    @pytest.mark.parametrize("raw", [
        None, "bad", {}, {"gw": 1}, {"predicted_pts": 3}, {"gw": "x", "predicted_pts": 3},
        {"gw": 1, "predicted_pts": -1}, {"gw": 0, "predicted_pts": 1},
    ])
    def test_unusable_entries(self, raw):
        assert parse_period_entry(raw) is None


class TestMergePeriodPredictions:
    def test_results_override_predictions(self):
        merged = merge_period_predictions(
            [{"gw": 1, "predicted_pts": 3}, {"gw": 2, "predicted_pts": 4}],
            [{"gw": 1, "predicted_pts": 9}],
        )
        assert [(p.period, p.predicted_points, p.source) for p in merged] == [
            (1, 9.0, "results"), (2, 4.0, "predictions"),
        ]

    def test_sorted_by_period(self):
        merged = merge_period_predictions([{"gw": 5, "predicted_pts": 1}, {"gw": 2, "predicted_pts": 1}])
        assert [p.period for p in merged] == [2, 5]

    def test_other_season_results_ignored(self):
        merged = merge_period_predictions(
            [{"gw": 1, "predicted_pts": 3}],
            [{"gw": 1, "predicted_pts": 9, "season": 2023}],
            season=2024,
        )
        assert merged[0].predicted_points == 3.0

    def test_malformed_collections(self):
        assert merge_period_predictions("nope", {"gw": 1}) == ()


class TestBuildProjectionRecord:
    def test_ffh_shape(self):
        rec = build_projection_record({
            "fpl_id": 308, "web_name": "Salah", "team": {"code_name": "LIV"}, "position_id": 3,
            "opta_uuid": "p118748", "predictions": [{"gw": 1, "predicted_pts": 6}, {"gw": 2, "predicted_pts": 8}],
            "ep_next": 7.2, "news": "",
        })
        assert rec.record_id == "308"
        assert rec.strong_id1 == "p118748"
        assert rec.strong_id2 == "308"
        assert rec.team == "LIV"
        assert rec.position == "MID"
        assert rec.season_total == 14.0
        assert rec.season_avg == 7.0
        assert rec.secondary_expectation == 7.2

    def test_explicit_season_values_win(self):
        rec = build_projection_record({
            "name": "X", "season_prediction_avg": 5.0, "predicted_points": 150,
            "predictions": [{"gw": 1, "predicted_pts": 1}],
        })
        assert rec.season_avg == 5.0
        assert rec.season_total == 150.0

    def test_team_fallback_fields(self):
        assert build_projection_record({"name": "X", "club": "Arsenal"}).team == "ARS"
        assert build_projection_record({"name": "X", "team_short_name": "che"}).team == "CHE"

    def test_record_id_fallback(self):
        assert build_projection_record({"name": "Cole Palmer", "team": "CHE"}).record_id == "Cole Palmer_CHE"

    def test_no_predictions(self):
        rec = build_projection_record({"name": "X"})
        assert rec.predictions == ()
        assert rec.season_total is None
        assert rec.season_avg is None


Pair = namedtuple("Pair", "roster projection method confidence")


class TestJoin:
    def test_roster_position_authoritative(self):
        roster = build_roster_record({"id": "s1", "name": "Kai Havertz", "team": "ARS", "position": "F",
                                      "injury_status": "Out"})
        projection = build_projection_record({"id": "f1", "name": "Havertz", "team": "ARS", "position_id": 3,
                                              "news": "Knee injury", "status": "i"})
        joined = join_records(roster, projection, "NameAndTeam", "High")
        assert joined.position == "FWD"
        assert joined.player_id == "s1"
        assert joined.projection_id == "f1"
        assert joined.injury_status == "Out"
        assert joined.news == "Knee injury"

    def test_projection_fills_gaps(self):
        roster = build_roster_record({"id": "s1", "name": "X"})
        projection = build_projection_record({"id": "f1", "name": "X", "team": "ARS", "position_id": 2,
                                              "status": "d"})
        joined = join_records(roster, projection)
        assert joined.position == "DEF"
        assert joined.team == "ARS"
        assert joined.injury_status == "d"

    def test_join_matches(self):
        roster = build_roster_record({"id": "s1", "name": "X"})
        projection = build_projection_record({"id": "f1", "name": "X"})
        joined = join_matches([Pair(roster, projection, "StrongId1", "High")])
        assert joined[0].match_method == "StrongId1"

    def test_player_from_projection(self):
        player = player_from_projection({"id": "f1", "name": "X", "position": "GK",
                                         "predictions": [{"gw": 1, "predicted_pts": 3}]})
        assert player.position == "GKP"
        assert len(player.predictions) == 1
