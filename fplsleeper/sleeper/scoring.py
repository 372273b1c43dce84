"""
FPL -> Sleeper scoring conversion.

convert_player() takes one JoinedPlayer and the current period and returns a
Prediction:

    1. base ratio (calibration / archetype / position)
    2-5. the adjustment chain (form, fixture, injury, minutes)
    6. optional blend with the secondary expectation (FPL ep_next)

Season total and average get the ratio and the form / fixture factors only;
the current period gets every factor. Per-period converted points get the
ratio only. All point outputs are rounded to 2 decimals.
"""

from collections import Counter
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

import numpy as np
import pandas as pd

import config
from fplsleeper.common.error_helpers import MissingPeriodError, get_logger, log_fallback
from fplsleeper.common.text_helpers import display_name, map_position
from fplsleeper.sleeper.adjustments import SEASON_ADJUSTMENTS, AppliedAdjustment, apply_chain
from fplsleeper.sleeper.conversion_ratios import SOURCE_ARCHETYPE, get_conversion_ratio
from fplsleeper.sleeper.matchup import (
    UNKNOWN_MATCHUP,
    UNKNOWN_RECOMMENDATION,
    Matchup,
    Recommendation,
    classify_matchup,
    start_recommendation,
)

_logger = get_logger("fpl_sleeper.scoring")


class PeriodContext(NamedTuple):
    current_period: int


class ConvertedPeriod(NamedTuple):
    period: int
    predicted_points: float
    converted_points: float
    predicted_minutes: Optional[float]
    opponent: str
    source: str


class Prediction(NamedTuple):
    """Converted Sleeper prediction for one player."""
    player_id: str
    name: str
    position: str
    current_period: int
    base_prediction: float
    base_season_total: float
    base_season_avg: float
    conversion_ratio: float
    ratio_source: str
    archetype: Optional[str]
    adjustments: Tuple[AppliedAdjustment, ...]
    converted_season_total: float
    converted_season_avg: float
    converted_current_period: float
    converted_per_period: Tuple[ConvertedPeriod, ...]
    confidence: str
    form_trend: str
    fixture_rating: str
    injury_status: str
    expected_minutes: Optional[float]
    matchup: Matchup
    recommendation: Recommendation

    @property
    def multipliers(self) -> Dict[str, float]:
        return {a.name: a.factor for a in self.adjustments}


def resolve_current_period(period) -> int:
    """
    Accept an int, a PeriodContext or a dict with 'current_period'.

    Raises:
        MissingPeriodError: when no positive integer period can be found
    """
    if isinstance(period, PeriodContext):
        value = period.current_period
    elif isinstance(period, dict):
        value = period.get("current_period", period.get("currentPeriodNumber"))
    else:
        value = period
    if value is None:
        raise MissingPeriodError(f"No current period in {period!r}")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value < 1:
        raise MissingPeriodError(f"Invalid current period {value!r}")
    return int(value)


def prediction_confidence(entries: int) -> str:
    """Confidence label from the number of per-period data points."""
    if entries >= config.PREDICTION_CONFIDENCE_HIGH:
        return "high"
    if entries >= config.PREDICTION_CONFIDENCE_MEDIUM:
        return "medium"
    if entries > 0:
        return "low"
    return "none"


def _current_base(player, current_period: int) -> float:
    if player.current_prediction is not None:
        return float(player.current_prediction)
    for p in player.predictions:
        if p.period == current_period:
            return float(p.predicted_points)
    return 0.0


def _product(factors: List[float]) -> float:
    return float(np.prod(factors)) if factors else 1.0


def convert_player(player, period, calibration=None, archetypes: dict = None) -> Prediction:
    """
    Convert one JoinedPlayer to a Sleeper Prediction for the current period.

    Raises:
        MissingPeriodError: when `period` carries no usable current period
    """
    current = resolve_current_period(period)
    position = map_position(player.position)

    choice = get_conversion_ratio(player, calibration=calibration, archetypes=archetypes)
    ratio = choice.ratio

    adjustments = apply_chain(player, current)
    by_name = {a.name: a for a in adjustments}
    season_factor = _product([by_name[n].factor for n in SEASON_ADJUSTMENTS if n in by_name])
    current_factor = _product([a.factor for a in adjustments])

    season_total = float(player.season_total or 0.0)
    season_avg = float(player.season_avg or 0.0)
    base_current = _current_base(player, current)

    converted_current = base_current * ratio * current_factor
    secondary = player.secondary_expectation
    if secondary is not None and secondary > 0 and base_current > 0:
        converted_current = (
            converted_current * config.CHAIN_BLEND_WEIGHT
            + secondary * ratio * config.SECONDARY_BLEND_WEIGHT
        )
    converted_current = round(converted_current, 2)

    per_period = tuple(
        ConvertedPeriod(
            period=p.period,
            predicted_points=p.predicted_points,
            converted_points=round(p.predicted_points * ratio, 2),
            predicted_minutes=p.predicted_minutes,
            opponent=p.opponent,
            source=p.source,
        )
        for p in player.predictions
    )

    who = display_name(player.name, player.team)
    try:
        matchup = classify_matchup(player, current)
    except Exception as e:
        log_fallback("matchup classification", who, exception=e, logger=_logger)
        matchup = UNKNOWN_MATCHUP
    try:
        recommendation = start_recommendation(converted_current, position)
    except Exception as e:
        log_fallback("start recommendation", who, exception=e, logger=_logger)
        recommendation = UNKNOWN_RECOMMENDATION

    minutes_detail = (by_name["minutes"].detail or {}) if "minutes" in by_name else {}
    return Prediction(
        player_id=player.player_id,
        name=player.name,
        position=position,
        current_period=current,
        base_prediction=round(base_current, 2),
        base_season_total=round(season_total, 2),
        base_season_avg=round(season_avg, 2),
        conversion_ratio=ratio,
        ratio_source=choice.source,
        archetype=choice.archetype,
        adjustments=tuple(adjustments),
        converted_season_total=round(season_total * ratio * season_factor, 2),
        converted_season_avg=round(season_avg * ratio * season_factor, 2),
        converted_current_period=converted_current,
        converted_per_period=per_period,
        confidence=prediction_confidence(len(player.predictions)),
        form_trend=by_name["form"].label if "form" in by_name else "neutral",
        fixture_rating=by_name["fixture"].label if "fixture" in by_name else "average",
        injury_status=by_name["injury"].label if "injury" in by_name else "healthy",
        expected_minutes=minutes_detail.get("expected_minutes"),
        matchup=matchup,
        recommendation=recommendation,
    )


def apply_scoring(players: Iterable, period, calibration=None) -> Tuple[List[Prediction], Dict[str, int]]:
    """
    Convert every player and count what the adjustments did.

    Raises:
        MissingPeriodError: once, before any player is converted
    """
    current = resolve_current_period(period)
    predictions = [convert_player(p, current, calibration=calibration) for p in players]

    counts = Counter()
    for pred in predictions:
        counts["with_predictions"] += pred.converted_current_period > 0
        counts["zero_predictions"] += pred.converted_current_period <= 0
        counts["archetype_ratios"] += pred.ratio_source == SOURCE_ARCHETYPE
        counts["minutes_adjusted"] += pred.multipliers.get("minutes", 1.0) < 1.0
        counts["hot_form"] += pred.form_trend == "hot"
        counts["cold_form"] += pred.form_trend == "cold"
        counts["favorable_fixtures"] += pred.fixture_rating == "favorable"
        counts["difficult_fixtures"] += pred.fixture_rating == "difficult"
        counts["returning"] += pred.injury_status == "returning"
        counts["injured"] += pred.injury_status == "injured"

    summary = {key: int(counts.get(key, 0)) for key in (
        "with_predictions", "zero_predictions", "archetype_ratios", "minutes_adjusted",
        "hot_form", "cold_form", "favorable_fixtures", "difficult_fixtures",
        "returning", "injured",
    )}
    summary["total"] = len(predictions)
    _logger.info(
        "Converted %d players for period %d (%d with predictions)",
        len(predictions), current, summary["with_predictions"],
    )
    return predictions, summary


# =============================================================================
# NEXT-N HELPERS
# =============================================================================

def next_n_points(prediction: Prediction, n: int = config.NEXT_N_PERIODS) -> float:
    """Converted points over the next `n` periods, current period included."""
    last = prediction.current_period + n - 1
    return round(sum(
        p.converted_points for p in prediction.converted_per_period
        if prediction.current_period <= p.period <= last
    ), 2)


def next_n_minutes(prediction: Prediction, n: int = config.NEXT_N_PERIODS) -> Optional[float]:
    """Average predicted minutes over the next `n` periods, None without minutes data."""
    last = prediction.current_period + n - 1
    minutes = [
        p.predicted_minutes for p in prediction.converted_per_period
        if prediction.current_period <= p.period <= last and p.predicted_minutes is not None
    ]
    return round(float(np.mean(minutes)), 1) if minutes else None


def predictions_to_dataframe(predictions: Iterable[Prediction]) -> pd.DataFrame:
    """One flat row per player, for tables and exports."""
    rows = []
    for pred in predictions:
        row = {
            "player_id": pred.player_id,
            "name": pred.name,
            "position": pred.position,
            "base_prediction": pred.base_prediction,
            "conversion_ratio": pred.conversion_ratio,
            "ratio_source": pred.ratio_source,
            "archetype": pred.archetype,
            "season_total": pred.converted_season_total,
            "season_avg": pred.converted_season_avg,
            "current_period": pred.converted_current_period,
            "next_n": next_n_points(pred),
            "confidence": pred.confidence,
            "form_trend": pred.form_trend,
            "fixture_rating": pred.fixture_rating,
            "injury_status": pred.injury_status,
            "expected_minutes": pred.expected_minutes,
            "opponent": pred.matchup.opponent,
            "matchup": pred.matchup.quality,
            "recommendation": pred.recommendation.recommendation,
        }
        row.update({f"{name}_multiplier": f for name, f in pred.multipliers.items()})
        rows.append(row)
    return pd.DataFrame(rows)
