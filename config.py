# Configuration settings for FPL -> Sleeper identity matching and scoring conversion

# =============================================================================
# IDENTITY MATCHING
# =============================================================================

# Minimum similarity for a same-team name match
NAME_TEAM_THRESHOLD = 0.6
# Stricter threshold once team scoping is gone
NAME_ONLY_THRESHOLD = 0.85

# Score -> confidence bands for name + team matches
HIGH_CONFIDENCE_SCORE = 0.85
MEDIUM_CONFIDENCE_SCORE = 0.65

# Token similarity weights
EXACT_TOKEN_SCORE = 0.9
SUBSTRING_TOKEN_SCORE = 0.8
LEVENSHTEIN_MIN_SIMILARITY = 0.7
LEVENSHTEIN_WEIGHT = 0.7

# Weights used for the summary "average confidence" figure
CONFIDENCE_VALUES = {"High": 1.0, "Medium": 0.7, "Low": 0.4, "None": 0.0}

# How many nearest candidates to list for each unmatched player
UNMATCHED_SUGGESTIONS = 3

# =============================================================================
# SCORING CONVERSION (FPL points -> Sleeper points)
# =============================================================================

# Fallback position ratios, used when no archetype or calibration applies
FALLBACK_CONVERSION_RATIOS = {
    "GKP": 0.90,  # loses appearance points, gains save bonuses
    "DEF": 1.15,  # tackles, interceptions and blocks are rewarded
    "MID": 1.05,  # versatility bonus
    "FWD": 0.97,  # dispossession penalties
}

# Archetype ratios by position. Player lists are usually supplied through
# matching_settings.json; this is the shipped default.
ARCHETYPES = {
    "DEF": {
        "attacking_fullback": {
            "ratio": 1.22,
            "description": "Overlapping full-back with chance creation",
            "players": ["Trent Alexander-Arnold", "Pedro Porro", "Destiny Udogie"],
        },
        "ball_winning_cb": {
            "ratio": 1.18,
            "description": "High-volume tackles, blocks and clearances",
            "players": ["Virgil van Dijk", "William Saliba"],
        },
    },
    "MID": {
        "defensive_midfielder": {
            "ratio": 1.12,
            "description": "Tackles and interceptions outweigh attacking returns",
            "players": ["Declan Rice", "Moises Caicedo"],
        },
        "creative_playmaker": {
            "ratio": 1.00,
            "description": "Output already priced into FPL bonus",
            "players": ["Bruno Fernandes", "Martin Odegaard"],
        },
    },
    "FWD": {
        "target_man": {
            "ratio": 1.02,
            "description": "Aerial duels and hold-up play",
            "players": ["Chris Wood"],
        },
    },
}

# Form momentum: recent window vs season average
FORM_LOOKBACK_PERIODS = 3
FORM_MIN_PERIODS = 2
FORM_CAP = (0.8, 1.2)

# Fixture run: upcoming window vs season average
FIXTURE_LOOKAHEAD_PERIODS = 6
FIXTURE_MIN_PERIODS = 3
FIXTURE_CAP = (0.92, 1.08)

# Trend / rating bands around 1.0
TREND_BAND = 0.05

# Injury return
INJURY_KEYWORDS = ["injured", "injury", "out", "suspended", "banned"]
RETURN_KEYWORDS = ["returned", "back", "fit", "available", "recovered"]
INJURY_LOOKBACK_PERIODS = 3
LOW_MINUTES_THRESHOLD = 30
RECOVERY_MULTIPLIERS = [0.70, 0.85, 0.95, 1.00]
INJURED_MULTIPLIER = 0.5

# Playing time bands: (minimum minutes, multiplier), checked top-down
DEFAULT_EXPECTED_MINUTES = 90
NO_MINUTES_MULTIPLIER = 0.7
MINUTES_BANDS = [
    (75, 1.0),
    (60, 0.90),
    (30, 0.75),
    (0, 0.4),
]

# Blend of chain-adjusted current period vs an independent expectation
CHAIN_BLEND_WEIGHT = 0.65
SECONDARY_BLEND_WEIGHT = 0.35

# Prediction confidence by number of per-period data points
PREDICTION_CONFIDENCE_HIGH = 15
PREDICTION_CONFIDENCE_MEDIUM = 10

# Next-N helpers
NEXT_N_PERIODS = 5

# =============================================================================
# MATCHUP & START/SIT
# =============================================================================

NEUTRAL_DIFFICULTY = 3
HOME_DIFFICULTY_SHIFT = -0.5
AWAY_DIFFICULTY_SHIFT = 0.3

# (upper bound on adjusted difficulty, quality, label)
MATCHUP_TIERS = [
    (2.0, "smash_spot", "SMASH SPOT"),
    (2.8, "favorable", "GOOD MATCHUP"),
    (3.5, "neutral", "NEUTRAL"),
    (4.2, "difficult", "TOUGH MATCHUP"),
    (5.0, "avoid", "AVOID"),
]

# (must start, safe start, flex) thresholds in converted points
START_THRESHOLDS = {
    "GKP": (4.5, 3.0, 2.0),
    "DEF": (5.0, 3.5, 2.5),
    "MID": (6.0, 4.0, 3.0),
    "FWD": (6.5, 4.5, 3.5),
}

# =============================================================================
# CALIBRATION
# =============================================================================

CALIBRATION_MIN_TOTAL_SAMPLES = 10
CALIBRATION_MIN_POSITION_SAMPLES = 3
CALIBRATION_MIN_PLAYER_SAMPLES = 5
CALIBRATION_FULL_TRUST_SAMPLES = 15
CALIBRATION_RATIO_BOUNDS = (0.15, 6.0)
CALIBRATION_TRIM = 0.1
