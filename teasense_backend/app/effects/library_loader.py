# teasense_backend/app/effects/library_loader.py
from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List

import yaml

from teasense_backend.app.config.manifest import LOG_LEVEL, RULES_OPTIONAL, RULES_REQUIRED
from teasense_backend.app.config.paths import get_rules_dir, resolve_rules_file

log = logging.getLogger("teasense.library_loader")

# one handler on the package logger; child loggers propagate to it
_pkg_log = logging.getLogger("teasense")
if not _pkg_log.handlers:
    _handler = logging.StreamHandler()
    _handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    _pkg_log.addHandler(_handler)
    _pkg_log.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))

# What it does:
# Read the reference rulebooks (effects/rules or EFFECT_RULES_DIR) once per
# process. Parse problems surface as ValueError naming the file; a missing
# required rulebook is FileNotFoundError.

# suffix -> (parser, error type it raises)
_PARSERS: Dict[str, tuple] = {
    ".json": (json.loads, json.JSONDecodeError),
    ".yaml": (yaml.safe_load, yaml.YAMLError),
    ".yml": (yaml.safe_load, yaml.YAMLError),
}


def load_rules_path(path: Path) -> Any:
    """Parse a JSON or YAML rulebook at an explicit path; the suffix picks the parser (YAML otherwise)."""
    if not path.exists():
        raise FileNotFoundError(f"Rules file not found: {path}")
    parse, error = _PARSERS.get(path.suffix.lower(), _PARSERS[".yaml"])
    try:
        return parse(path.read_text(encoding="utf-8"))
    except error as e:
        raise ValueError(f"Malformed rulebook {path.name}: {e}") from e


@lru_cache(maxsize=32)
def load_rules(filename: str) -> Any:
    path = resolve_rules_file(filename)
    data = load_rules_path(path)
    log.info(f"[rules] {filename} <- {path}")
    return data


def has_rules_file(filename: str) -> bool:
    return resolve_rules_file(filename).exists()


# ---- Named rulebooks (see config.manifest for required/optional) ----------
_EFFECTS = "effects.yaml"
_TEA_TYPES = "tea_types.yaml"
_FLAVORS = "flavor_influences.yaml"
_PROCESSING = "processing_influences.yaml"
_INTERACTIONS = "effect_interactions.json"
_GEOGRAPHY = "geography.yaml"
_BALANCING = "balancing_rules.yaml"
_REFERENCE_TEAS = "reference_teas.yaml"


def get_effect_catalog() -> Dict[str, Any]:
    """Closed effect vocabulary with names, aliases and families."""
    return load_rules(_EFFECTS)

def get_tea_type_effects() -> Dict[str, Any]:
    return load_rules(_TEA_TYPES)

def get_flavor_influences() -> Dict[str, Any]:
    """category -> subcategory -> {flavors, effects, intensity}"""
    return load_rules(_FLAVORS)

def get_processing_influences() -> Dict[str, Any]:
    return load_rules(_PROCESSING)

def get_effect_interactions() -> Dict[str, Any]:
    """Pair rules keyed "a+b"."""
    return load_rules(_INTERACTIONS)

def get_geography_influences() -> Dict[str, Any]:
    return load_rules(_GEOGRAPHY)

def get_balancing_rules() -> List[Dict[str, Any]]:
    """Ordered balancing battery (the `rules` list)."""
    return list((load_rules(_BALANCING) or {}).get("rules", []))

def get_reference_teas() -> List[Dict[str, Any]]:
    # optional: calibration runs work off whatever is present
    if not has_rules_file(_REFERENCE_TEAS):
        log.info(f"[rules] {_REFERENCE_TEAS} not present; no reference teas")
        return []
    return list((load_rules(_REFERENCE_TEAS) or {}).get("teas", []))


def clear_caches() -> None:
    # after EFFECT_RULES_DIR or file contents change
    load_rules.cache_clear()


def inventory() -> Dict[str, Any]:
    """Which rulebooks exist under the active rules dir (cheap; safe for health checks)."""
    return {
        "rules_dir": str(get_rules_dir()),
        "rules": {Path(n).stem: has_rules_file(n) for n in RULES_REQUIRED + RULES_OPTIONAL},
    }
