# teasense_backend/app/effects/engine/scoring.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

# Purpose:
# Small helpers shared by the calculators and pipeline stages: the per-component
# result record, the stable ranking every stage uses, and score-map arithmetic.

SCORE_MIN = 0.0
SCORE_MAX = 10.0


@dataclass
class ComponentResult:
    scores: Dict[str, float] = field(default_factory=dict)
    details: Dict[str, Any] = field(default_factory=dict)


def clip(x: float, lo: float = SCORE_MIN, hi: float = SCORE_MAX) -> float:
    return max(lo, min(hi, x))


def rank_effects(scores: Dict[str, float]) -> List[Tuple[str, float]]:
    # Purpose:
    # Highest score first; equal scores fall back to effect id ascending so the
    # result never depends on dict insertion order.
    return sorted(scores.items(), key=lambda kv: (-kv[1], kv[0]))


def add_into(target: Dict[str, float], deltas: Dict[str, float], scale: float = 1.0) -> None:
    for eid, v in deltas.items():
        target[eid] = target.get(eid, 0.0) + v * scale
