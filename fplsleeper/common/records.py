"""
Record Normalization.

Turns raw roster (Sleeper) and projection (FFH) dicts into immutable records
before any matching or scoring happens. Every optional field has exactly one
resolution order, listed in the ``*_FIELDS`` tuples below; the first present
(non-missing) key wins. Nothing here raises for sparse or malformed input:
missing fields become None / defaults and malformed per-period entries are
skipped.
"""

from typing import Any, Iterable, List, NamedTuple, Optional, Tuple

import numpy as np

from fplsleeper.common.text_helpers import (
    clean_text,
    is_missing,
    map_position,
    normalize_team,
)


# =============================================================================
# FIELD RESOLUTION ORDERS
# =============================================================================

# Roster side (source A)
ROSTER_ID_FIELDS = ("id", "player_id", "sleeper_id")
ROSTER_NAME_FIELDS = ("name", "full_name")
ROSTER_TEAM_FIELDS = ("team", "team_abbr")
ROSTER_STRONG_ID1_FIELDS = ("strong_id1", "opta_id")
ROSTER_STRONG_ID2_FIELDS = ("strong_id2", "rotowire_id", "fpl_id")
ROSTER_POSITION_FIELDS = ("position", "position_id")

# Projection side (source B)
PROJECTION_NAME_FIELDS = ("name", "web_name")
PROJECTION_TEAM_FIELDS = ("team", "club", "team_short_name", "team_abbr")
PROJECTION_STRONG_ID1_FIELDS = ("strong_id1", "opta_uuid", "opta_id")
PROJECTION_STRONG_ID2_FIELDS = ("strong_id2", "fpl_id", "element_id")
PROJECTION_POSITION_FIELDS = ("position", "position_id")
SEASON_TOTAL_FIELDS = ("season_total", "predicted_points")
SEASON_AVG_FIELDS = ("season_avg", "season_prediction_avg")
CURRENT_PREDICTION_FIELDS = ("current_prediction", "current_gw_prediction")
SEASON_MINUTES_FIELDS = ("season_avg_minutes", "avg_minutes", "season_xmins")
SECONDARY_EXPECTATION_FIELDS = ("secondary_expectation", "ep_next")

# Shared
INJURY_STATUS_FIELDS = ("injury_status", "status")
NEWS_FIELDS = ("news",)

# Per-period entries
PERIOD_FIELDS = ("period", "gw", "event")
POINTS_FIELDS = ("predicted_points", "predicted_pts", "points")
MINUTES_FIELDS = ("predicted_minutes", "predicted_mins", "xmins")
OPPONENT_FIELDS = ("opponent_code", "opponent")
DIFFICULTY_FIELDS = ("opponent_difficulty", "difficulty")


class PeriodPrediction(NamedTuple):
    """One scoring period from the projection source."""
    period: int
    predicted_points: float
    predicted_minutes: Optional[float] = None
    opponent: str = ""
    opponent_difficulty: Optional[float] = None
    is_home: Optional[bool] = None
    source: str = "predictions"  # 'predictions' or 'results'


class RosterRecord(NamedTuple):
    """Immutable roster-side (A) record."""
    record_id: str
    name: str
    team: str
    position: Optional[str] = None
    strong_id1: Optional[str] = None
    strong_id2: Optional[str] = None
    injury_status: str = ""
    news: str = ""


class ProjectionRecord(NamedTuple):
    """Immutable projection-side (B) record, carrying the per-period data."""
    record_id: str
    name: str
    team: str
    position: Optional[str] = None
    strong_id1: Optional[str] = None
    strong_id2: Optional[str] = None
    predictions: Tuple[PeriodPrediction, ...] = ()
    season_total: Optional[float] = None
    season_avg: Optional[float] = None
    current_prediction: Optional[float] = None
    season_avg_minutes: Optional[float] = None
    secondary_expectation: Optional[float] = None
    injury_status: str = ""
    news: str = ""


class JoinedPlayer(NamedTuple):
    """A matched roster/projection pair, as consumed by the scoring converter."""
    player_id: str
    name: str
    team: str
    position: str
    predictions: Tuple[PeriodPrediction, ...] = ()
    season_total: Optional[float] = None
    season_avg: Optional[float] = None
    current_prediction: Optional[float] = None
    season_avg_minutes: Optional[float] = None
    secondary_expectation: Optional[float] = None
    injury_status: str = ""
    news: str = ""
    match_method: Optional[str] = None
    match_confidence: Optional[str] = None
    projection_id: Optional[str] = None


# =============================================================================
# FIELD HELPERS
# =============================================================================

def _first_present(raw: dict, fields: Iterable[str]) -> Any:
    """Value of the first key in `fields` that is present and not missing."""
    for field in fields:
        value = raw.get(field)
        if not is_missing(value):
            return value
    return None


def _to_float(value: Any) -> Optional[float]:
    """Float or None; nested {'predicted_pts': x} payloads are unwrapped."""
    if isinstance(value, dict):
        value = _first_present(value, POINTS_FIELDS)
    if is_missing(value) or isinstance(value, bool):
        return None
    try:
        f = float(value)
    except (TypeError, ValueError):
        return None
    return None if np.isnan(f) else f


def _to_id(value: Any) -> Optional[str]:
    """Provider ids compared as strings ('123' == 123 == 123.0)."""
    if is_missing(value) or isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _to_bool(value: Any) -> Optional[bool]:
    if is_missing(value):
        return None
    if isinstance(value, str):
        v = value.strip().lower()
        if v in ("h", "home", "true", "1", "yes"):
            return True
        if v in ("a", "away", "false", "0", "no"):
            return False
        return None
    return bool(value)


def _team_value(raw: dict, fields: Iterable[str]) -> str:
    """Team short code; a nested {'code_name': ...} team object is accepted."""
    for field in fields:
        value = raw.get(field)
        if isinstance(value, dict):
            value = value.get("code_name") or value.get("short_name")
        if not is_missing(value):
            return normalize_team(value)
    return ""


def _position_value(raw: dict, fields: Iterable[str]) -> Optional[str]:
    """GKP/DEF/MID/FWD, or None when the record carries no position at all."""
    fantasy = raw.get("fantasy_positions")
    if isinstance(fantasy, (list, tuple)) and fantasy:
        return map_position(fantasy[0])
    value = _first_present(raw, fields)
    return None if value is None else map_position(value)


def _parse_opp(opp: Any) -> Tuple[str, Optional[float], Optional[bool]]:
    """
    Parse the nested FFH opponent payload: [["AVL", "Aston Villa (H)", 3], ...].
    Only the first fixture of the period is used.
    """
    if not isinstance(opp, (list, tuple)) or not opp:
        return "", None, None
    first = opp[0]
    if not isinstance(first, (list, tuple)) or len(first) < 3:
        return "", None, None
    code = clean_text(first[0]).upper()
    full = clean_text(first[1])
    is_home = True if "(H)" in full else False if "(A)" in full else None
    return code, _to_float(first[2]), is_home


# =============================================================================
# PER-PERIOD DATA
# =============================================================================

def parse_period_entry(entry: Any, source: str = "predictions") -> Optional[PeriodPrediction]:
    """Build a PeriodPrediction from one raw entry, or None if it is unusable."""
    if not isinstance(entry, dict):
        return None
    period = _to_float(_first_present(entry, PERIOD_FIELDS))
    points = _to_float(_first_present(entry, POINTS_FIELDS))
    if period is None or points is None or period < 1 or points < 0:
        return None

    opponent = clean_text(_first_present(entry, OPPONENT_FIELDS)).upper()
    difficulty = _to_float(_first_present(entry, DIFFICULTY_FIELDS))
    is_home = _to_bool(entry.get("is_home"))
    if not opponent and "opp" in entry:
        opponent, opp_difficulty, opp_home = _parse_opp(entry["opp"])
        difficulty = difficulty if difficulty is not None else opp_difficulty
        is_home = is_home if is_home is not None else opp_home

    return PeriodPrediction(
        period=int(period),
        predicted_points=points,
        predicted_minutes=_to_float(_first_present(entry, MINUTES_FIELDS)),
        opponent=opponent,
        opponent_difficulty=difficulty,
        is_home=is_home,
        source=source,
    )


def merge_period_predictions(
    predictions: Any = None,
    results: Any = None,
    season: int = None,
) -> Tuple[PeriodPrediction, ...]:
    """
    Combine forward-looking `predictions` with completed `results`.

    Results take priority over predictions for the same period. When `season`
    is given, result entries tagged with a different season are ignored.
    Output is sorted by period.
    """
    by_period = {}
    for raw in predictions if isinstance(predictions, (list, tuple)) else []:
        entry = parse_period_entry(raw, source="predictions")
        if entry is not None:
            by_period[entry.period] = entry
    for raw in results if isinstance(results, (list, tuple)) else []:
        if season is not None and isinstance(raw, dict) and raw.get("season") not in (None, season):
            continue
        entry = parse_period_entry(raw, source="results")
        if entry is not None:
            by_period[entry.period] = entry
    return tuple(by_period[p] for p in sorted(by_period))


# =============================================================================
# RECORD BUILDERS
# =============================================================================

def build_roster_record(raw: dict) -> RosterRecord:
    """Normalize one raw roster-side dict."""
    raw = raw if isinstance(raw, dict) else {}
    name = clean_text(_first_present(raw, ROSTER_NAME_FIELDS))
    if not name:
        name = clean_text(f"{raw.get('first_name') or ''} {raw.get('last_name') or ''}")
    team = _team_value(raw, ROSTER_TEAM_FIELDS)
    record_id = _to_id(_first_present(raw, ROSTER_ID_FIELDS)) or f"{name}_{team}"
    return RosterRecord(
        record_id=record_id,
        name=name,
        team=team,
        position=_position_value(raw, ROSTER_POSITION_FIELDS),
        strong_id1=_to_id(_first_present(raw, ROSTER_STRONG_ID1_FIELDS)),
        strong_id2=_to_id(_first_present(raw, ROSTER_STRONG_ID2_FIELDS)),
        injury_status=clean_text(_first_present(raw, INJURY_STATUS_FIELDS)),
        news=clean_text(_first_present(raw, NEWS_FIELDS)),
    )


def build_projection_record(raw: dict, season: int = None) -> ProjectionRecord:
    """
    Normalize one raw projection-side dict.

    Season total / average fall back to the sum / mean of the per-period points
    when the source doesn't provide them.
    """
    raw = raw if isinstance(raw, dict) else {}
    name = clean_text(_first_present(raw, PROJECTION_NAME_FIELDS))
    if not name:
        name = clean_text(f"{raw.get('first_name') or ''} {raw.get('second_name') or ''}")
    team = _team_value(raw, PROJECTION_TEAM_FIELDS)
    strong_id2 = _to_id(_first_present(raw, PROJECTION_STRONG_ID2_FIELDS))
    record_id = _to_id(raw.get("id")) or strong_id2 or f"{name}_{team}"

    predictions = merge_period_predictions(raw.get("predictions"), raw.get("results"), season=season)
    points = [p.predicted_points for p in predictions]

    season_total = _to_float(_first_present(raw, SEASON_TOTAL_FIELDS))
    if season_total is None and points:
        season_total = float(np.sum(points))
    season_avg = _to_float(_first_present(raw, SEASON_AVG_FIELDS))
    if season_avg is None and points:
        season_avg = float(np.mean(points))

    return ProjectionRecord(
        record_id=record_id,
        name=name,
        team=team,
        position=_position_value(raw, PROJECTION_POSITION_FIELDS),
        strong_id1=_to_id(_first_present(raw, PROJECTION_STRONG_ID1_FIELDS)),
        strong_id2=strong_id2,
        predictions=predictions,
        season_total=season_total,
        season_avg=season_avg,
        current_prediction=_to_float(_first_present(raw, CURRENT_PREDICTION_FIELDS)),
        season_avg_minutes=_to_float(_first_present(raw, SEASON_MINUTES_FIELDS)),
        secondary_expectation=_to_float(_first_present(raw, SECONDARY_EXPECTATION_FIELDS)),
        injury_status=clean_text(_first_present(raw, INJURY_STATUS_FIELDS)),
        news=clean_text(_first_present(raw, NEWS_FIELDS)),
    )


def join_records(
    roster: RosterRecord,
    projection: ProjectionRecord,
    method: str = None,
    confidence: str = None,
) -> JoinedPlayer:
    """
    Join a matched pair. Identity and position come from the roster side
    (the league's own positions are authoritative); numbers come from the
    projection side. Injury status prefers the roster, news prefers the
    projection feed.
    """
    return JoinedPlayer(
        player_id=roster.record_id,
        name=roster.name or projection.name,
        team=roster.team or projection.team,
        position=roster.position or projection.position or map_position(None),
        predictions=projection.predictions,
        season_total=projection.season_total,
        season_avg=projection.season_avg,
        current_prediction=projection.current_prediction,
        season_avg_minutes=projection.season_avg_minutes,
        secondary_expectation=projection.secondary_expectation,
        injury_status=roster.injury_status or projection.injury_status,
        news=projection.news or roster.news,
        match_method=method,
        match_confidence=confidence,
        projection_id=projection.record_id,
    )


def join_matches(matches: Iterable) -> List[JoinedPlayer]:
    """Join every match (anything with roster/projection/method/confidence attributes)."""
    return [
        join_records(m.roster, m.projection, method=m.method, confidence=m.confidence)
        for m in matches
    ]


def player_from_projection(raw: dict, season: int = None) -> JoinedPlayer:
    """Score a projection record directly, without a roster-side match."""
    projection = build_projection_record(raw, season=season)
    return JoinedPlayer(
        player_id=projection.record_id,
        name=projection.name,
        team=projection.team,
        position=projection.position or map_position(None),
        predictions=projection.predictions,
        season_total=projection.season_total,
        season_avg=projection.season_avg,
        current_prediction=projection.current_prediction,
        season_avg_minutes=projection.season_avg_minutes,
        secondary_expectation=projection.secondary_expectation,
        injury_status=projection.injury_status,
        news=projection.news,
        projection_id=projection.record_id,
    )
