"""
Sleeper conversion adjustments.

Four independent calculators, each turning one player's per-period history
or status text into a multiplicative factor:

    form      recent elapsed periods vs season average      [0.80, 1.20]
    fixture   upcoming periods vs season average            [0.92, 1.08]
    injury    injured / returning-from-injury state         [0.50, 1.00]
    minutes   expected playing time for the current period  [0.40, 1.00]

ADJUSTMENT_CHAIN lists them in application order as
(name, calculator, cap_min, cap_max). Missing data never raises; a
calculator without enough data returns a neutral 1.0.
"""

import re
from typing import Dict, List, NamedTuple, Optional

import numpy as np

import config

STATUS_HEALTHY = "healthy"
STATUS_INJURED = "injured"
STATUS_RETURNING = "returning"


class AdjustmentResult(NamedTuple):
    """Raw (uncapped) factor plus a short label for reporting."""
    factor: float
    label: str
    detail: Optional[Dict] = None


class AppliedAdjustment(NamedTuple):
    name: str
    factor: float   # capped, the value actually applied
    raw: float
    label: str
    detail: Optional[Dict] = None


class InjuryState(NamedTuple):
    status: str
    weeks_since_return: Optional[int] = None


def _season_avg(player) -> float:
    avg = player.season_avg
    return float(avg) if avg is not None else 0.0


def _window(player, first: int, last: int) -> list:
    return [p for p in player.predictions if first <= p.period <= last]


# =============================================================================
# FORM MOMENTUM
# =============================================================================

def form_momentum(player, current_period: int) -> AdjustmentResult:
    """
    Average of the (up to 3) elapsed periods before `current_period` over the
    season average. Neutral when fewer than 2 recent periods or no season average.
    """
    season_avg = _season_avg(player)
    recent = _window(player, current_period - config.FORM_LOOKBACK_PERIODS, current_period - 1)
    if season_avg <= 0 or len(recent) < config.FORM_MIN_PERIODS:
        return AdjustmentResult(1.0, "neutral", {"reason": "insufficient_data"})

    recent_avg = float(np.mean([p.predicted_points for p in recent]))
    momentum = recent_avg / season_avg
    capped = min(max(momentum, config.FORM_CAP[0]), config.FORM_CAP[1])
    if capped > 1 + config.TREND_BAND:
        trend = "hot"
    elif capped < 1 - config.TREND_BAND:
        trend = "cold"
    else:
        trend = "neutral"
    return AdjustmentResult(momentum, trend, {"recent_avg": recent_avg, "periods": len(recent)})


# =============================================================================
# FIXTURE RUN
# =============================================================================

def fixture_run(player, current_period: int) -> AdjustmentResult:
    """Average of the next up-to-6 periods (current included) over the season average."""
    season_avg = _season_avg(player)
    upcoming = _window(
        player, current_period, current_period + config.FIXTURE_LOOKAHEAD_PERIODS - 1
    )
    if season_avg <= 0 or len(upcoming) < config.FIXTURE_MIN_PERIODS:
        return AdjustmentResult(1.0, "average", {"reason": "insufficient_data"})

    upcoming_avg = float(np.mean([p.predicted_points for p in upcoming]))
    quality = upcoming_avg / season_avg
    capped = min(max(quality, config.FIXTURE_CAP[0]), config.FIXTURE_CAP[1])
    if capped > 1 + config.TREND_BAND:
        rating = "favorable"
    elif capped < 1 - config.TREND_BAND:
        rating = "difficult"
    else:
        rating = "average"
    return AdjustmentResult(quality, rating, {"upcoming_avg": upcoming_avg, "periods": len(upcoming)})


# =============================================================================
# INJURY RETURN
# =============================================================================

def _has_keyword(text: str, keywords) -> bool:
    text = (text or "").lower()
    return any(re.search(rf"\b{re.escape(kw)}\b", text) for kw in keywords)


def _minutes_or_default(entry) -> float:
    m = entry.predicted_minutes
    return float(m) if m is not None else float(config.DEFAULT_EXPECTED_MINUTES)


def classify_injury_state(player, current_period: int) -> InjuryState:
    """
    Keyword heuristic over the status / news text.

    - injury keyword and no return keyword: injured
    - return keyword and a low-minutes period among the last 3: returning,
      with weeks counted from the most recent low-minutes period
    - anything else: healthy
    """
    has_injury = (
        _has_keyword(player.injury_status, config.INJURY_KEYWORDS)
        or _has_keyword(player.news, config.INJURY_KEYWORDS)
    )
    has_return = _has_keyword(player.news, config.RETURN_KEYWORDS)

    if has_injury and not has_return:
        return InjuryState(STATUS_INJURED)
    if has_return:
        recent = _window(player, current_period - config.INJURY_LOOKBACK_PERIODS, current_period - 1)
        low = [p.period for p in recent if _minutes_or_default(p) < config.LOW_MINUTES_THRESHOLD]
        if low:
            return InjuryState(STATUS_RETURNING, current_period - max(low))
    return InjuryState(STATUS_HEALTHY)


def injury_adjustment(player, current_period: int) -> AdjustmentResult:
    state = classify_injury_state(player, current_period)
    if state.status == STATUS_INJURED:
        return AdjustmentResult(config.INJURED_MULTIPLIER, state.status)
    if state.status == STATUS_RETURNING:
        steps = config.RECOVERY_MULTIPLIERS
        factor = steps[min(max(state.weeks_since_return, 1), len(steps)) - 1]
        return AdjustmentResult(factor, state.status, {"weeks_since_return": state.weeks_since_return})
    return AdjustmentResult(1.0, state.status)


# =============================================================================
# PLAYING TIME
# =============================================================================

def expected_minutes(player, current_period: int) -> Optional[float]:
    """
    Best available minutes estimate for the current period:
    explicit per-period minutes, else season-average minutes, else 90 when
    the feed carries any minutes at all. None when there is no minutes data.
    """
    for p in player.predictions:
        if p.period == current_period and p.predicted_minutes is not None:
            return float(p.predicted_minutes)
    if player.season_avg_minutes is not None:
        return float(player.season_avg_minutes)
    if any(p.predicted_minutes is not None for p in player.predictions):
        return float(config.DEFAULT_EXPECTED_MINUTES)
    return None


def minutes_multiplier(minutes: Optional[float]) -> float:
    """Banded multiplier; flat NO_MINUTES_MULTIPLIER when minutes are unknown."""
    if minutes is None:
        return config.NO_MINUTES_MULTIPLIER
    for floor, multiplier in config.MINUTES_BANDS:
        if minutes >= floor:
            return multiplier
    return config.MINUTES_BANDS[-1][1]


def playing_time(player, current_period: int) -> AdjustmentResult:
    minutes = expected_minutes(player, current_period)
    label = "no_data" if minutes is None else f"{minutes:.0f} mins"
    return AdjustmentResult(minutes_multiplier(minutes), label, {"expected_minutes": minutes})


# =============================================================================
# CHAIN
# =============================================================================

ADJUSTMENT_CHAIN = [
    ("form", form_momentum, config.FORM_CAP[0], config.FORM_CAP[1]),
    ("fixture", fixture_run, config.FIXTURE_CAP[0], config.FIXTURE_CAP[1]),
    ("injury", injury_adjustment, config.INJURED_MULTIPLIER, 1.0),
    ("minutes", playing_time, config.MINUTES_BANDS[-1][1], 1.0),
]

# Historical aggregates only take the forward-neutral factors
SEASON_ADJUSTMENTS = ("form", "fixture")


def apply_chain(player, current_period: int, chain=None) -> List[AppliedAdjustment]:
    """Run every calculator in order, clamping each factor to its caps.

    An explicit empty chain applies nothing.
    """
    applied = []
    for name, calculator, cap_min, cap_max in ADJUSTMENT_CHAIN if chain is None else chain:
        result = calculator(player, current_period)
        factor = min(max(result.factor, cap_min), cap_max)
        applied.append(AppliedAdjustment(name, factor, result.factor, result.label, dict(result.detail or {})))
    return applied
