# teasense_backend/app/effects/engine/compounds.py
from __future__ import annotations

from typing import Dict, Optional

from teasense_backend.app.config.effect_config import EffectSystemConfig
from teasense_backend.app.schemas import TeaSample
from .scoring import ComponentResult, add_into, clip

# What it does:
# Score the L-theanine : caffeine balance. The ratio picks a band (for the
# description) and, past strict cut-offs, boosts the calm or stimulating
# family; absolute levels add a smaller direct contribution.

# Ratio cut-offs (strict): above CALM_RATIO -> calm boosts, below STIM_RATIO -> stimulating boosts
CALM_RATIO = 1.5
STIM_RATIO = 1.0

# boost = min(10, factor * level)
CALM_BOOSTS = {"peaceful": 0.8, "soothing": 0.7}          # x theanine
STIM_BOOSTS = {"revitalizing": 0.9, "awakening": 0.7}     # x caffeine

# direct = level / 10 * DIRECT_SCALE
DIRECT_SCALE = 1.8
THEANINE_DIRECT = ("soothing", "peaceful", "clarifying")
CAFFEINE_DIRECT = ("revitalizing", "awakening", "nurturing")

# balance bonus when both compounds are present in earnest
BALANCE_MIN_THEANINE = 4.0
BALANCE_MIN_CAFFEINE = 3.0
BALANCE_CLOSE_DIFF = 1.5
BALANCE_SCALE = 1.5
BALANCE_FLOOR_BONUS = 0.3

# extreme / very-low ratios dampen the harmony effects
DISHARMONY_PENALTY = {"balancing": 0.7, "clarifying": 0.7}

# (high, moderate) lower bounds per compound
LEVEL_BANDS = {"theanine": (7.0, 4.0), "caffeine": (5.0, 3.0)}


def _level_band(value: float, compound: str) -> str:
    high, moderate = LEVEL_BANDS[compound]
    if value >= high:
        return "high"
    if value >= moderate:
        return "moderate"
    return "low"


class CompoundCalculator:
    def __init__(self, config: EffectSystemConfig):
        self.balanced_range = tuple(config.get("thresholds.compound_ratios.balanced_range", [1.2, 1.8]))
        self.extreme_ratio = float(config.get("thresholds.compound_ratios.extreme_ratio", 3.0))
        self.very_low_ratio = float(config.get("thresholds.compound_ratios.very_low_ratio", 0.5))
        self.low_ratio = float(config.get("thresholds.compound_ratios.low_ratio", 0.8))
        self.default_caffeine = float(config.get("defaults.caffeine_level", 5.0))
        self.default_theanine = float(config.get("defaults.l_theanine_level", 5.0))

    # Purpose:
    # theanine / caffeine, or None when either side is zero (no ratio signal).
    @staticmethod
    def ratio(theanine: float, caffeine: float) -> Optional[float]:
        if caffeine <= 0 or theanine <= 0:
            return None
        return theanine / caffeine

    def ratio_band(self, ratio: Optional[float]) -> str:
        if ratio is None:
            return "none"
        lo, hi = self.balanced_range
        if lo <= ratio <= hi:
            return "balanced"
        if ratio > self.extreme_ratio:
            return "extreme"
        if ratio < self.very_low_ratio:
            return "very_low"
        if ratio < self.low_ratio:
            return "low"
        return "theanine_forward" if ratio > hi else "moderate"

    @staticmethod
    def describe_ratio(ratio: Optional[float], band: str) -> str:
        if ratio is None:
            return "No ratio signal (caffeine or L-theanine is zero)"
        r = f"{ratio:.1f}:1"
        return {
            "balanced": f"Balanced L-theanine to caffeine ratio of {r}, calm focus",
            "extreme": f"Very high L-theanine to caffeine ratio of {r}, strongly calming",
            "theanine_forward": f"L-theanine-forward ratio of {r}, relaxed alertness",
            "moderate": f"Moderate L-theanine to caffeine ratio of {r}",
            "low": f"Caffeine-forward ratio of {r}, more stimulating",
            "very_low": f"Strongly caffeine-dominant ratio of {r}, sharp stimulation",
        }[band]

    def calculate(self, tea: TeaSample) -> ComponentResult:
        theanine = clip(self.default_theanine if tea.l_theanine_level is None else float(tea.l_theanine_level))
        caffeine = clip(self.default_caffeine if tea.caffeine_level is None else float(tea.caffeine_level))
        ratio = self.ratio(theanine, caffeine)
        band = self.ratio_band(ratio)

        scores: Dict[str, float] = {}
        if ratio is not None and ratio > CALM_RATIO:
            add_into(scores, {e: min(10.0, f * theanine) for e, f in CALM_BOOSTS.items()})
        if ratio is not None and ratio < STIM_RATIO:
            add_into(scores, {e: min(10.0, f * caffeine) for e, f in STIM_BOOSTS.items()})

        add_into(scores, {e: theanine / 10.0 * DIRECT_SCALE for e in THEANINE_DIRECT})
        add_into(scores, {e: caffeine / 10.0 * DIRECT_SCALE for e in CAFFEINE_DIRECT})

        if theanine >= BALANCE_MIN_THEANINE and caffeine >= BALANCE_MIN_CAFFEINE:
            diff = abs(theanine - caffeine)
            bonus = (10.0 - 2.0 * diff) / 10.0 * BALANCE_SCALE if diff <= BALANCE_CLOSE_DIFF else BALANCE_FLOOR_BONUS
            add_into(scores, {"balancing": bonus})

        if band in ("extreme", "very_low"):
            for eid, factor in DISHARMONY_PENALTY.items():
                if eid in scores:
                    scores[eid] *= factor

        return ComponentResult(
            scores=scores,
            details={
                "l_theanine_level": theanine,
                "caffeine_level": caffeine,
                "ratio": ratio,
                "ratio_band": band,
                "theanine_band": _level_band(theanine, "theanine"),
                "caffeine_band": _level_band(caffeine, "caffeine"),
                "description": self.describe_ratio(ratio, band),
            },
        )
