# fplsleeper/common/matching_settings.py
#
# Read-only JSON config for the static matching tables: manual overrides,
# extra nickname aliases and archetype player lists.
# Loaded once per process; nothing in matching or scoring writes to it.

import json
import os
from functools import lru_cache
from pathlib import Path

import config
from fplsleeper.common.error_helpers import get_logger
from fplsleeper.common.text_helpers import (
    NAME_ALIASES,
    POSITIONS,
    apply_aliases,
    base_normalize,
    normalize_team,
)

_logger = get_logger("fpl_sleeper.settings")

SETTINGS_ENV_VAR = "FPLSLEEPER_SETTINGS_PATH"
SETTINGS_FILENAME = "matching_settings.json"

DEFAULT_SETTINGS = {
    "version": 1,
    # "<name>|<TEAM>" -> canonical projection-side name
    "overrides": {
        "mo salah|LIV": "mohamed salah",
        "son heung min|TOT": "heung-min son",
        "luis diaz|LIV": "luis díaz",
        "martin zubimendi|ARS": "martín zubimendi",
    },
    # nickname -> formal name, merged over text_helpers.NAME_ALIASES
    "aliases": {},
    # {position: {archetype: {ratio, description, players}}}, merged over config.ARCHETYPES
    "archetypes": {},
}


def _find_config_path() -> Path:
    """Locate matching_settings.json (env var first, then the repo root)."""
    env_path = os.environ.get(SETTINGS_ENV_VAR)
    if env_path:
        return Path(env_path)
    # Walk up from this file (fplsleeper/common/) to find project root
    here = Path(__file__).resolve().parent
    for ancestor in [here.parent.parent, here.parent, here]:
        candidate = ancestor / SETTINGS_FILENAME
        if candidate.exists():
            return candidate
    return here.parent.parent / SETTINGS_FILENAME


def _deep_merge(defaults: dict, overrides: dict) -> dict:
    """Deep-merge overrides into defaults, filling missing keys from defaults."""
    merged = dict(defaults)
    for key, val in overrides.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(val, dict):
            merged[key] = _deep_merge(merged[key], val)
        else:
            merged[key] = val
    return merged


def load_settings(path: Path = None) -> dict:
    """Read JSON config, deep-merge with defaults for missing keys."""
    path = Path(path) if path else _find_config_path()
    if not path.exists():
        return _deep_merge(DEFAULT_SETTINGS, {})
    try:
        with open(path, "r") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError):
        _logger.warning("Could not read %s, using default matching settings", path, exc_info=True)
        return _deep_merge(DEFAULT_SETTINGS, {})
    if not isinstance(data, dict):
        _logger.warning("%s does not hold a JSON object, using default matching settings", path)
        return _deep_merge(DEFAULT_SETTINGS, {})
    return _deep_merge(DEFAULT_SETTINGS, data)


def build_alias_table(*tables: dict) -> dict:
    """
    Merge alias tables (later tables win) into a token -> expansion map.

    Keys and expansions are base-normalized. Entries that would break
    idempotent normalization are dropped with a warning:
    - multi-token keys (aliases apply to whole single tokens)
    - expansions containing a token that is itself an alias for something else
    """
    merged = {}
    for table in tables:
        for key, target in (table or {}).items():
            k, t = base_normalize(key), base_normalize(target)
            if not k or not t:
                continue
            if " " in k:
                _logger.warning("Ignoring multi-word alias key %r", key)
                continue
            merged[k] = t

    valid = {}
    for key, target in merged.items():
        clashes = [tok for tok in target.split() if tok in merged and merged[tok] != tok]
        if clashes:
            _logger.warning("Ignoring alias %r -> %r: expansion uses alias key(s) %s", key, target, clashes)
            continue
        valid[key] = target
    return valid


def build_override_table(overrides: dict, aliases: dict) -> dict:
    """Normalize override keys to '<normalized name>|<TEAM>' and targets to normalized names."""
    table = {}
    for key, target in (overrides or {}).items():
        name, sep, team = str(key).rpartition("|")
        if not sep:
            _logger.warning("Ignoring override %r: expected '<name>|<team>'", key)
            continue
        norm_key = f"{apply_aliases(base_normalize(name), aliases)}|{normalize_team(team)}"
        table[norm_key] = apply_aliases(base_normalize(target), aliases)
    return table


def build_archetype_table(*tables: dict) -> dict:
    """Merge archetype tables by position; players are stored base-normalized."""
    merged = {pos: {} for pos in POSITIONS}
    for table in tables:
        for pos, archetypes in (table or {}).items():
            if pos not in merged or not isinstance(archetypes, dict):
                continue
            for name, info in archetypes.items():
                try:
                    ratio = float(info["ratio"])
                except (KeyError, TypeError, ValueError):
                    _logger.warning("Ignoring archetype %s/%s without a numeric ratio", pos, name)
                    continue
                merged[pos][name] = {
                    "ratio": ratio,
                    "description": info.get("description", ""),
                    "players": [base_normalize(p) for p in info.get("players", []) if base_normalize(p)],
                }
    return merged


@lru_cache(maxsize=1)
def get_settings() -> dict:
    """
    Cached, fully-built matching tables for this process.

    Returns a dict with 'aliases', 'overrides' and 'archetypes', ready to use, plus
    'raw_overrides' as read from the settings file.
    """
    raw = load_settings()
    aliases = build_alias_table(NAME_ALIASES, raw.get("aliases"))
    return {
        "aliases": aliases,
        "overrides": build_override_table(raw.get("overrides"), aliases),
        "archetypes": build_archetype_table(config.ARCHETYPES, raw.get("archetypes")),
        "raw_overrides": dict(raw.get("overrides") or {}),
    }
