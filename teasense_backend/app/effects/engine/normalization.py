# teasense_backend/app/effects/engine/normalization.py
from __future__ import annotations

import math
from typing import Dict

from .scoring import SCORE_MAX, SCORE_MIN, clip, rank_effects

# What it does:
# Rescale post-interaction scores into [0, 10] and make sure one effect
# clearly leads.


def normalize_scores(scores: Dict[str, float]) -> Dict[str, float]:
    # Purpose:
    # Max-normalisation: every score / max * 10. Negative values (from negative
    # interaction modifiers) are floored at 0 so the range holds. A zero (or
    # negative) maximum leaves the map as is, apart from that floor.
    if not scores:
        return {}
    top = max(scores.values())
    if top <= 0:
        return {eid: max(SCORE_MIN, v) for eid, v in scores.items()}
    return {eid: clip(v / top * SCORE_MAX) for eid, v in scores.items()}


class SigmoidNormalizer:
    # Purpose:
    # Secondary strategy: logistic squash around `midpoint`, a gentle stretch of
    # the 2..8 band so mid scores spread out, then a hard cap.
    def __init__(self, midpoint: float = 5.0, steepness: float = 0.5, stretch_exponent: float = 0.9, max_score: float = 9.8):
        self.midpoint = midpoint
        self.steepness = steepness
        self.stretch_exponent = stretch_exponent
        self.max_score = max_score

    def normalize_value(self, raw: float) -> float:
        s = SCORE_MAX / (1.0 + math.exp(-self.steepness * (raw - self.midpoint)))
        if 2.0 < s < 8.0:
            pos = (s - 2.0) / 6.0
            s = 2.0 + pos ** self.stretch_exponent * 6.0
        return clip(min(self.max_score, s))

    def __call__(self, scores: Dict[str, float]) -> Dict[str, float]:
        return {eid: self.normalize_value(v) for eid, v in scores.items()}


def enhance_dominant_effect(scores: Dict[str, float], min_gap: float = 0.3, boost: float = 0.25) -> Dict[str, float]:
    # Purpose:
    # If the top two are closer than `min_gap`, lift the leader by `boost`
    # (capped at 10). Never lowers anything.
    out = dict(scores)
    ranked = rank_effects(out)
    if len(ranked) < 2:
        return out
    (top_id, top), (_, second) = ranked[0], ranked[1]
    if top - second < min_gap:
        out[top_id] = min(SCORE_MAX, top + boost)
    return out
