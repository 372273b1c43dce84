"""
Player Matching Module

Provides canonical name normalization, token-level name similarity and the
tiered IdentityResolver that pairs Sleeper roster records (source A) with
FFH projection records (source B).

Matching tiers, tried in order for every roster record:
    0. Manual override   ("<normalized name>|<TEAM>" -> projection name)
    1. Strong id 1       (opta id on both sides)
    2. Strong id 2       (league-specific id on both sides)
    3. Name + team       (best same-team similarity >= 0.6)
    4. Name only         (best similarity anywhere >= 0.85)

Assignment is greedy: roster records are processed in input order and each
projection record can be claimed at most once per resolve() call, so the
outcome depends on input order.
"""

from collections import Counter
from functools import lru_cache
from typing import Callable, Dict, Iterable, List, NamedTuple, Optional, Tuple

import Levenshtein
import pandas as pd
from fuzzywuzzy import fuzz, process

import config
from fplsleeper.common.error_helpers import MatchInvariantError, get_logger
from fplsleeper.common.matching_settings import (
    build_alias_table,
    build_override_table,
    get_settings,
)
from fplsleeper.common.records import (
    ProjectionRecord,
    RosterRecord,
    build_projection_record,
    build_roster_record,
    join_matches,
)
from fplsleeper.common.text_helpers import apply_aliases, base_normalize, display_name

_logger = get_logger("fpl_sleeper.player_matching")

METHOD_OVERRIDE = "ManualOverride"
METHOD_STRONG_ID1 = "StrongId1"
METHOD_STRONG_ID2 = "StrongId2"
METHOD_NAME_TEAM = "NameAndTeam"
METHOD_NAME_ONLY = "NameOnly"
METHOD_NONE = "NoMatch"

# Lower tier = higher trust
METHOD_TIERS = {
    METHOD_OVERRIDE: 0,
    METHOD_STRONG_ID1: 1,
    METHOD_STRONG_ID2: 2,
    METHOD_NAME_TEAM: 3,
    METHOD_NAME_ONLY: 4,
}

CONFIDENCE_HIGH = "High"
CONFIDENCE_MEDIUM = "Medium"
CONFIDENCE_LOW = "Low"
CONFIDENCE_NONE = "None"
CONFIDENCE_RANK = {CONFIDENCE_HIGH: 3, CONFIDENCE_MEDIUM: 2, CONFIDENCE_LOW: 1, CONFIDENCE_NONE: 0}

NO_MATCH = "No match"


class Match(NamedTuple):
    """One roster/projection pairing."""
    roster: RosterRecord
    projection: ProjectionRecord
    method: str
    confidence: str
    score: float


# =============================================================================
# NAME NORMALIZATION & SIMILARITY
# =============================================================================

def canonical_normalize(name, aliases: Optional[Dict[str, str]] = None) -> str:
    """
    Single source of truth for name normalization.

    Converts player names to a canonical form for matching:
    - Trim, fold accents (ø, æ, ð ... and NFKD), lowercase
    - Punctuation becomes whitespace, whitespace is collapsed
    - Whole-token nickname aliases are expanded ("mo" -> "mohamed")

    Examples:
        "Raúl Jiménez" -> "raul jimenez"
        "Heung-Min Son" -> "heung min son"
        "Mo Salah" -> "mohamed salah"

    Never raises; returns "" for missing input. An explicit alias table goes
    through build_alias_table first, so the result is always idempotent.

    Args:
        name: Player name to normalize
        aliases: token -> expansion table (validated); defaults to the loaded settings

    Returns:
        Canonical normalized name string
    """
    if aliases is None:
        table = get_settings()["aliases"]
    else:
        table = _validated_aliases(frozenset(aliases.items()))
    return apply_aliases(base_normalize(name), table)


@lru_cache(maxsize=32)
def _validated_aliases(items: frozenset) -> Dict[str, str]:
    return build_alias_table(dict(items))


def levenshtein_similarity(a: str, b: str) -> float:
    """(maxLen - editDistance) / maxLen, 0.0 when both strings are empty."""
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 0.0
    return (max_len - Levenshtein.distance(a, b)) / max_len


def _token_score(ta: str, tb: str) -> float:
    shortest = min(len(ta), len(tb))
    if ta == tb and len(ta) > 2:
        return config.EXACT_TOKEN_SCORE
    if shortest > 2 and (ta in tb or tb in ta):
        return config.SUBSTRING_TOKEN_SCORE
    if shortest > 2:
        sim = levenshtein_similarity(ta, tb)
        if sim > config.LEVENSHTEIN_MIN_SIMILARITY:
            return sim * config.LEVENSHTEIN_WEIGHT
    return 0.0


def name_similarity(a: str, b: str) -> float:
    """
    Similarity in [0, 1] between two normalized names.

    Best score over all token pairs (tokens longer than one character),
    so a shared surname dominates noise from extra middle names.
    """
    tokens_a = [t for t in (a or "").split() if len(t) > 1]
    tokens_b = [t for t in (b or "").split() if len(t) > 1]
    best = 0.0
    for ta in tokens_a:
        for tb in tokens_b:
            best = max(best, _token_score(ta, tb))
    return best


def confidence_from_score(score: float) -> str:
    """High >= 0.85, Medium >= 0.65, otherwise Low."""
    if score >= config.HIGH_CONFIDENCE_SCORE:
        return CONFIDENCE_HIGH
    if score >= config.MEDIUM_CONFIDENCE_SCORE:
        return CONFIDENCE_MEDIUM
    return CONFIDENCE_LOW


def rank_match(match: Match) -> Tuple[int, int, float]:
    """Sort key for trust: confidence first, then method tier, then score."""
    return (
        CONFIDENCE_RANK.get(match.confidence, 0),
        -METHOD_TIERS.get(match.method, len(METHOD_TIERS)),
        match.score,
    )


# =============================================================================
# MATCH SET & VALIDATION
# =============================================================================

def duplicate_check(matches: Iterable[Match]) -> str:
    """'PASS' when no projection record is used twice, else 'FAIL(<extra uses>)'."""
    ids = [m.projection.record_id for m in matches]
    extra = len(ids) - len(set(ids))
    return "PASS" if extra == 0 else f"FAIL({extra})"


def assert_exclusive(matches: Iterable[Match]) -> None:
    """Raise MatchInvariantError if any projection record appears in more than one match."""
    matches = list(matches)
    status = duplicate_check(matches)
    if status != "PASS":
        counts = Counter(m.projection.record_id for m in matches)
        dupes = sorted(rid for rid, n in counts.items() if n > 1)
        _logger.error("Exclusivity violated: %s, duplicated projection ids %s", status, dupes)
        raise MatchInvariantError(f"Projection records used more than once: {dupes}")


class MatchSet:
    """
    Result of one resolve() call.

    Attributes:
        matches: Match list, in roster input order
        diagnostics: one dict per roster record (matched or not)
        summary: counts, histograms and the duplicate check
        unmatched: roster records with no match
        unused: projection records nobody claimed
    """

    def __init__(self, matches, diagnostics, unmatched, unused, total_b):
        self.matches: List[Match] = list(matches)
        self.diagnostics: List[dict] = list(diagnostics)
        self.unmatched: List[RosterRecord] = list(unmatched)
        self.unused: List[ProjectionRecord] = list(unused)
        self.summary: dict = summarize(self.matches, self.diagnostics, total_b)

    def __iter__(self):
        return iter(self.matches)

    def __len__(self) -> int:
        return len(self.matches)

    def joined_players(self):
        """Matched pairs as JoinedPlayer records, ready for scoring."""
        return join_matches(self.matches)

    def to_dataframe(self) -> pd.DataFrame:
        rows = [
            {
                "roster_id": m.roster.record_id,
                "roster_name": m.roster.name,
                "roster_team": m.roster.team,
                "projection_id": m.projection.record_id,
                "projection_name": m.projection.name,
                "projection_team": m.projection.team,
                "method": m.method,
                "confidence": m.confidence,
                "score": m.score,
            }
            for m in self.matches
        ]
        return pd.DataFrame(rows, columns=[
            "roster_id", "roster_name", "roster_team", "projection_id",
            "projection_name", "projection_team", "method", "confidence", "score",
        ])

    def diagnostics_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.diagnostics, columns=["a_descriptor", "b_descriptor", "method", "confidence", "score"])


def _tier_label(method: str) -> str:
    tier = METHOD_TIERS.get(method)
    return "Unmatched" if tier is None else f"Tier {tier}"


def summarize(matches: List[Match], diagnostics: List[dict], total_b: int) -> dict:
    """Summary statistics for a resolution pass."""
    total = len(diagnostics)
    matched = len(matches)
    confidences = [d["confidence"] for d in diagnostics]
    # Averaged over every roster record; unmatched records count as 0
    avg_conf = (
        sum(config.CONFIDENCE_VALUES.get(c, 0.0) for c in confidences) / total
        if total else 0.0
    )
    return {
        "total": total,
        "matched": matched,
        "match_rate_percent": round(matched / total * 100, 1) if total else 0.0,
        "by_method": dict(Counter(d["method"] for d in diagnostics)),
        "by_confidence": dict(Counter(confidences)),
        "tier_breakdown": dict(Counter(_tier_label(d["method"]) for d in diagnostics)),
        "unique_b_used": len({m.projection.record_id for m in matches}),
        "total_b": total_b,
        "average_confidence": int(round(avg_conf * 100)),
        "duplicate_check": duplicate_check(matches),
    }


# =============================================================================
# IDENTITY RESOLVER
# =============================================================================

class IdentityResolver:
    """
    Tiered, greedy roster -> projection matcher.

    Usage:
        resolver = IdentityResolver()
        match_set = resolver.resolve(sleeper_players, ffh_players)
        players = match_set.joined_players()

    Args:
        overrides: "<name>|<TEAM>" -> projection name; keys are normalized on
            construction. Defaults to the overrides in matching_settings.json.
        aliases: nickname table, validated with build_alias_table; defaults to
            the loaded settings.
        scorer: similarity function over two normalized names.
    """

    def __init__(
        self,
        overrides: Optional[Dict[str, str]] = None,
        aliases: Optional[Dict[str, str]] = None,
        scorer: Optional[Callable[[str, str], float]] = None,
    ):
        settings = get_settings()
        if aliases is None:
            self.aliases = settings["aliases"]
        else:
            self.aliases = build_alias_table(aliases)
        if overrides is None and aliases is None:
            self.overrides = settings["overrides"]
        else:
            # Override keys are normalized with the same alias table the resolver uses
            raw = settings["raw_overrides"] if overrides is None else overrides
            self.overrides = build_override_table(raw, self.aliases)
        self.scorer = scorer or name_similarity

    def normalize(self, name) -> str:
        return apply_aliases(base_normalize(name), self.aliases)

    def resolve(self, a_records: Iterable, b_records: Iterable) -> MatchSet:
        """
        Match every roster record against the projection pool.

        Records may be raw dicts or already-built RosterRecord / ProjectionRecord.
        The used set lives only for this call.

        Raises:
            MatchInvariantError: if the final match list uses a projection twice
        """
        roster = [r if isinstance(r, RosterRecord) else build_roster_record(r) for r in a_records]
        pool = [
            (b, self.normalize(b.name))
            for b in (r if isinstance(r, ProjectionRecord) else build_projection_record(r) for r in b_records)
        ]

        used = set()
        matches, diagnostics, unmatched = [], [], []
        for a in roster:
            match = self._match_one(a, pool, used)
            if match is None:
                unmatched.append(a)
                diagnostics.append({
                    "a_descriptor": display_name(a.name, a.team),
                    "b_descriptor": NO_MATCH,
                    "method": METHOD_NONE,
                    "confidence": CONFIDENCE_NONE,
                    "score": 0.0,
                })
                _logger.debug("No match for %s", display_name(a.name, a.team))
                continue

            used.add(match.projection.record_id)
            matches.append(match)
            diagnostics.append({
                "a_descriptor": display_name(a.name, a.team),
                "b_descriptor": display_name(match.projection.name, match.projection.team),
                "method": match.method,
                "confidence": match.confidence,
                "score": round(match.score, 3),
            })
            _logger.debug(
                "%s -> %s via %s (%s, %.3f)",
                display_name(a.name, a.team),
                display_name(match.projection.name, match.projection.team),
                match.method, match.confidence, match.score,
            )

        assert_exclusive(matches)
        unused = [b for b, _ in pool if b.record_id not in used]
        match_set = MatchSet(matches, diagnostics, unmatched, unused, total_b=len(pool))
        s = match_set.summary
        _logger.info(
            "Matched %d/%d roster players (%.1f%%), duplicate check %s",
            s["matched"], s["total"], s["match_rate_percent"], s["duplicate_check"],
        )
        return match_set

    def _match_one(self, a: RosterRecord, pool, used) -> Optional[Match]:
        available = [(b, norm) for b, norm in pool if b.record_id not in used]
        a_norm = self.normalize(a.name)

        if a_norm:
            target = self.overrides.get(f"{a_norm}|{a.team}")
            if target:
                for b, b_norm in available:
                    if b_norm == target:
                        return Match(a, b, METHOD_OVERRIDE, CONFIDENCE_HIGH, 1.0)

        if a.strong_id1:
            for b, _ in available:
                if b.strong_id1 == a.strong_id1:
                    return Match(a, b, METHOD_STRONG_ID1, CONFIDENCE_HIGH, 1.0)

        if a.strong_id2:
            for b, _ in available:
                if b.strong_id2 == a.strong_id2:
                    return Match(a, b, METHOD_STRONG_ID2, CONFIDENCE_HIGH, 1.0)

        if not a_norm:
            return None

        if a.team:
            same_team = [(b, norm) for b, norm in available if b.team == a.team]
            best, score = self._best_candidate(a_norm, same_team)
            if best is not None and score >= config.NAME_TEAM_THRESHOLD:
                return Match(a, best, METHOD_NAME_TEAM, confidence_from_score(score), score)

        best, score = self._best_candidate(a_norm, available)
        if best is not None and score >= config.NAME_ONLY_THRESHOLD:
            return Match(a, best, METHOD_NAME_ONLY, CONFIDENCE_MEDIUM, score)
        return None

    def _best_candidate(self, a_norm: str, candidates) -> Tuple[Optional[ProjectionRecord], float]:
        # Strictly greater wins, so the earliest candidate keeps ties
        best, best_score = None, 0.0
        for b, b_norm in candidates:
            if not b_norm:
                continue
            score = self.scorer(a_norm, b_norm)
            if score > best_score:
                best, best_score = b, score
        return best, best_score


# =============================================================================
# UNMATCHED DIAGNOSTICS
# =============================================================================

def unmatched_report(match_set: MatchSet, limit: int = config.UNMATCHED_SUGGESTIONS) -> pd.DataFrame:
    """
    One row per unmatched roster player with the closest unused projection
    names (fuzzy token-sort score), to help write new overrides.
    """
    choices = {i: canonical_normalize(b.name) for i, b in enumerate(match_set.unused)}
    rows = []
    for a in match_set.unmatched:
        a_norm = canonical_normalize(a.name)
        suggestions = []
        if a_norm and choices:
            for _, score, idx in process.extract(a_norm, choices, scorer=fuzz.token_sort_ratio, limit=limit):
                b = match_set.unused[idx]
                suggestions.append(f"{display_name(b.name, b.team)} {score}")
        rows.append({
            "player": a.name,
            "team": a.team,
            "position": a.position,
            "normalized": a_norm,
            "suggestions": "; ".join(suggestions),
        })
    return pd.DataFrame(rows, columns=["player", "team", "position", "normalized", "suggestions"])


def unmatched_breakdown(match_set: MatchSet) -> dict:
    """Unmatched roster counts by position and by team."""
    return {
        "by_position": dict(Counter(a.position or "Unknown" for a in match_set.unmatched)),
        "by_team": dict(Counter(a.team or "Unknown" for a in match_set.unmatched)),
    }
