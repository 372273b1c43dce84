"""
Shared test fixtures for fpl-sleeper.

This module:
1. Points the settings loader at a file that doesn't exist, so tests run
   against the built-in defaults instead of the repo's matching_settings.json
2. Clears the cached settings around every test
3. Provides roster / projection fixtures and a JoinedPlayer factory
"""

import os

import pytest

# =====================================================================
# 1. Use default matching settings
# =====================================================================
os.environ["FPLSLEEPER_SETTINGS_PATH"] = os.path.join(
    os.path.dirname(__file__), "no_such_matching_settings.json"
)

from fplsleeper.common.matching_settings import get_settings  # noqa: E402
from fplsleeper.common.records import JoinedPlayer, PeriodPrediction  # noqa: E402


# =====================================================================
# 2. Fresh settings cache per test
# =====================================================================

@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# =====================================================================
# 3. Data fixtures
# =====================================================================

@pytest.fixture
def sleeper_players():
    """Roster-side records across four teams, in Sleeper's shape."""
    return [
        {"player_id": "s1", "full_name": "Mo Salah", "team": "LIV", "position": "M"},
        {"player_id": "s2", "full_name": "Bukayo Saka", "team": "ARS", "position": "M",
         "opta_id": "opta-saka"},
        {"player_id": "s3", "full_name": "Erling Haaland", "team": "MCI", "position": "F",
         "rotowire_id": 4321},
        {"player_id": "s4", "full_name": "Rasmus Højlund", "team": "MUN", "position": "F"},
        {"player_id": "s5", "full_name": "Unknown Youngster", "team": "CHE", "position": "D"},
    ]


@pytest.fixture
def ffh_players():
    """Projection-side records in FFH's shape."""
    return [
        {"fpl_id": 308, "web_name": "Mohamed Salah", "team": {"code_name": "LIV"}, "position_id": 3},
        {"fpl_id": 17, "name": "Bukayo Saka", "club": "ARS", "position_id": 3, "opta_uuid": "opta-saka"},
        {"fpl_id": "4321", "name": "Erling Haaland", "team": "MCI", "position_id": 4},
        {"fpl_id": 401, "name": "Rasmus Hojlund", "team": "MUN", "position_id": 4},
        {"fpl_id": 999, "name": "Cole Palmer", "team": "CHE", "position_id": 3},
    ]


@pytest.fixture
def make_player():
    """Factory for JoinedPlayer records with sensible defaults."""

    def _make(
        points=None,
        minutes=None,
        start=1,
        position="MID",
        name="Test Player",
        **kwargs,
    ):
        points = points or []
        predictions = []
        for i, pts in enumerate(points):
            mins = minutes[i] if isinstance(minutes, (list, tuple)) else minutes
            predictions.append(PeriodPrediction(
                period=start + i,
                predicted_points=float(pts),
                predicted_minutes=mins,
            ))
        fields = {
            "player_id": "p1",
            "name": name,
            "team": "ARS",
            "position": position,
            "predictions": tuple(predictions),
        }
        fields.update(kwargs)
        return JoinedPlayer(**fields)

    return _make
