# teasense_backend/app/config/effect_config.py
from __future__ import annotations

import copy
import logging
from pathlib import Path
from threading import RLock
from typing import Any, Dict, Optional

import yaml

from teasense_backend.app.schemas import ComponentWeights

from .paths import CONFIG_OVERRIDE_FILE

log = logging.getLogger("teasense.config")

# Purpose:
# Tunable weights and thresholds for the effect pipeline. Keys are read with
# dotted paths, e.g. "component_weights.compounds".
DEFAULT_CONFIG: Dict[str, Any] = {
    "normalize_scores": True,
    "interaction_strength_factor": 0.8,
    "component_weights": {
        "tea_type": 0.25,
        "compounds": 0.30,
        "processing": 0.15,
        "geography": 0.15,
        "flavors": 0.15,
    },
    "thresholds": {
        "dominant_effect_threshold": 7.0,
        "supporting_effect_threshold": 3.5,
        "additional_effect_threshold": 4.0,
        "compound_ratios": {
            "balanced_range": [1.2, 1.8],
            "extreme_ratio": 3.0,
            "very_low_ratio": 0.5,
            "low_ratio": 0.8,
        },
    },
    "defaults": {
        "tea_type": "green",
        "caffeine_level": 5.0,
        "l_theanine_level": 5.0,
    },
    "normalization": {
        "strategy": "max",  # "max" | "sigmoid"
        "dominant_gap": 0.3,
        "dominant_boost": 0.25,
        "sigmoid": {
            "midpoint": 5.0,
            "steepness": 0.5,
            "stretch_exponent": 0.9,
            "max_score": 9.8,
        },
    },
    "calibration": {
        "expected_dominant_score": 9.5,
        "expected_supporting_score": 7.5,
        "dominant_margin": 0.5,
        "match_tolerance": 2.0,
    },
}

_MISSING = object()


def _deep_merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for k, v in (overrides or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = copy.deepcopy(v)
    return out


class EffectSystemConfig:
    # Purpose:
    # Mutable holder for pipeline settings with dotted-path get/set.
    # Writers are serialised; engines take a snapshot() so later set() calls
    # never reach a running analysis.
    def __init__(self, overrides: Optional[Dict[str, Any]] = None):
        self._lock = RLock()
        self._data: Dict[str, Any] = _deep_merge(DEFAULT_CONFIG, overrides or {})

    @classmethod
    def from_yaml(cls, path: Path) -> "EffectSystemConfig":
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config override in {path} must be a mapping")
        log.info(f"[config] loaded overrides from {path}")
        return cls(data)

    def get(self, path: str, default: Any = None) -> Any:
        """Return the value at a dotted path, or `default` when any segment is missing."""
        node: Any = self._data
        for part in path.split("."):
            if not isinstance(node, dict):
                return default
            node = node.get(part, _MISSING)
            if node is _MISSING:
                return default
        return node

    def set(self, path: str, value: Any) -> None:
        """Set the value at a dotted path, creating intermediate mappings as needed."""
        parts = path.split(".")
        with self._lock:
            node = self._data
            for part in parts[:-1]:
                nxt = node.get(part)
                if not isinstance(nxt, dict):
                    nxt = {}
                    node[part] = nxt
                node = nxt
            node[parts[-1]] = value

    def update(self, overrides: Dict[str, Any]) -> None:
        with self._lock:
            self._data = _deep_merge(self._data, overrides)

    def get_all(self) -> Dict[str, Any]:
        with self._lock:
            return copy.deepcopy(self._data)

    def snapshot(self) -> "EffectSystemConfig":
        with self._lock:
            return EffectSystemConfig(self._data)

    def component_weights(self) -> ComponentWeights:
        weights = ComponentWeights(**self.get("component_weights", {}))
        total = weights.total()
        if abs(total - 1.0) > 0.01:
            log.warning(f"[config] component weights sum to {total:.3f}, expected ~1.0")
        return weights


def load_config(path: Optional[Path] = None) -> EffectSystemConfig:
    # Purpose:
    # Build a config from defaults, applying the YAML override file when one is
    # given or set through TEASENSE_CONFIG_FILE.
    target = path or CONFIG_OVERRIDE_FILE
    if target is None:
        return EffectSystemConfig()
    if not Path(target).exists():
        raise FileNotFoundError(f"Config override file not found: {target}")
    return EffectSystemConfig.from_yaml(target)
