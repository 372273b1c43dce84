"""
Text & String Normalization, Constants, and Position/Team Mapping.

Shared text-processing utilities, nickname aliases, team code mappings, and
position converters used by both the matcher and the scoring converter.
"""

import re
import unicodedata
from typing import Any

import pandas as pd


# =============================================================================
# CONSTANTS & CONFIGURATION
# =============================================================================

# Characters that don't decompose cleanly under NFKD
SPECIAL_CHARS = {
    'ø': 'o', 'Ø': 'O',
    'æ': 'ae', 'Æ': 'AE',
    'œ': 'oe', 'Œ': 'OE',
    'ð': 'd', 'Ð': 'D',
    'þ': 'th', 'Þ': 'Th',
    'ł': 'l', 'Ł': 'L',
    'đ': 'd', 'Đ': 'D',
    'ß': 'ss',
    'ı': 'i',
}

# Nickname -> formal first name (whole tokens only)
# Add new mappings here (or in matching_settings.json) when a short form
# keeps failing to converge with the formal name used by the other source.
NAME_ALIASES = {
    "mo": "mohamed",
    "will": "william",
    "bill": "william",
    "tom": "thomas",
    "nick": "nicholas",
    "alex": "alexander",
    "matt": "matthew",
    "matty": "matthew",
    "joe": "joseph",
    "leo": "leonardo",
    "eddie": "edward",
    "phil": "philip",
    "mikey": "michael",
    "ben": "benjamin",
    "kev": "kevin",
    "ronnie": "ronald",
    "cris": "cristiano",
    "charly": "carlos",
}

# Full / display names -> short codes
TEAM_FULL_TO_SHORT = {
    "Arsenal": "ARS", "Aston Villa": "AVL", "Bournemouth": "BOU",
    "Brentford": "BRE", "Brighton": "BHA", "Burnley": "BUR", "Chelsea": "CHE",
    "Crystal Palace": "CRY", "Everton": "EVE", "Fulham": "FUL",
    "Ipswich": "IPS", "Leeds": "LEE", "Leicester": "LEI", "Liverpool": "LIV",
    "Luton": "LUT", "Man City": "MCI", "Man Utd": "MUN", "Newcastle": "NEW",
    "Nott'm Forest": "NFO", "Sheffield Utd": "SHU", "Southampton": "SOU",
    "Sunderland": "SUN", "Spurs": "TOT", "West Ham": "WHU", "Wolves": "WOL",
    # Common variations
    "AFC Bournemouth": "BOU", "Brighton & Hove Albion": "BHA",
    "Leeds United": "LEE", "Leicester City": "LEI",
    "Manchester City": "MCI", "Manchester United": "MUN",
    "Manchester Utd": "MUN", "Newcastle United": "NEW",
    "Nottingham Forest": "NFO", "Tottenham": "TOT",
    "Tottenham Hotspur": "TOT", "West Ham United": "WHU",
    "Wolverhampton Wanderers": "WOL",
}

# Position mappings (various formats -> GKP/DEF/MID/FWD)
POSITIONS = ("GKP", "DEF", "MID", "FWD")
DEFAULT_POSITION = "MID"
POS_MAP = {
    "G": "GKP", "GK": "GKP", "GKP": "GKP", "GOALKEEPER": "GKP", "KEEPER": "GKP",
    "D": "DEF", "DEF": "DEF", "DEFENDER": "DEF",
    "M": "MID", "MID": "MID", "MIDFIELDER": "MID",
    "F": "FWD", "FW": "FWD", "FWD": "FWD", "FORWARD": "FWD",
    "1": "GKP", "2": "DEF", "3": "MID", "4": "FWD",
}


# =============================================================================
# TEXT & STRING NORMALIZATION
# =============================================================================

def is_missing(value: Any) -> bool:
    """True for None, NaN/NA and blank strings."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def fold_accents(s: str) -> str:
    """Replace accented Latin characters with their base letters."""
    for char, replacement in SPECIAL_CHARS.items():
        s = s.replace(char, replacement)
    s = unicodedata.normalize("NFKD", s)
    return s.encode("ascii", "ignore").decode("ascii")


def clean_text(s: Any) -> str:
    """Clean and normalize text by collapsing whitespace."""
    if is_missing(s):
        return ""
    if not isinstance(s, str):
        s = str(s)
    return re.sub(r"\s+", " ", s).strip()


def display_name(name: Any, team: Any = None) -> str:
    """'Name (TEAM)' descriptor used in diagnostics."""
    base = clean_text(name) or "Unknown"
    team_code = clean_text(team)
    return f"{base} ({team_code})" if team_code else base


# =============================================================================
# POSITION & TEAM MAPPING
# =============================================================================

def map_position(pos_val: Any) -> str:
    """Map any reasonable position variant to one of GKP/DEF/MID/FWD.

    Unknown or missing values fall back to MID.
    """
    if is_missing(pos_val):
        return DEFAULT_POSITION
    if isinstance(pos_val, float) and pos_val.is_integer():
        pos_val = int(pos_val)
    p = str(pos_val).strip().upper()
    if p in POS_MAP:
        return POS_MAP[p]

    # Heuristics for longer strings ("Goalkeepers", "DEF/MID" ...)
    for key in ("GOALKEEPER", "KEEPER", "DEF", "MID", "FORWARD", "FWD"):
        if key in p:
            return POS_MAP[key]
    return DEFAULT_POSITION


def normalize_team(team_val: Any) -> str:
    """
    Convert a team value to an upper-case short code.
    - Already a 3-letter code: upper-cased and kept.
    - Full / display names are mapped via TEAM_FULL_TO_SHORT.
    - Anything else is upper-cased as-is so equality checks stay consistent.
    """
    if is_missing(team_val):
        return ""
    s = clean_text(team_val)

    if re.fullmatch(r"[A-Za-z]{3}", s):
        return s.upper()

    if s in TEAM_FULL_TO_SHORT:
        return TEAM_FULL_TO_SHORT[s]

    return s.upper()


# =============================================================================
# NAME KEYS
# =============================================================================

def base_normalize(name: Any) -> str:
    """
    Lowercase, accent-folded, punctuation-free form of a name (no aliases).

    Examples:
        "Raúl Jiménez" -> "raul jimenez"
        "Heung-Min Son" -> "heung min son"
        "N'Golo Kanté" -> "n golo kante"
    """
    if is_missing(name):
        return ""
    s = fold_accents(str(name).strip()).lower()
    s = re.sub(r"[^a-z0-9]+", " ", s)
    return re.sub(r"\s+", " ", s).strip()


def apply_aliases(normalized: str, aliases: dict) -> str:
    """Replace whole tokens found in `aliases` (single pass, word boundaries only)."""
    if not normalized or not aliases:
        return normalized
    return " ".join(aliases.get(tok, tok) for tok in normalized.split())
