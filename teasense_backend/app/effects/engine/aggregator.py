# teasense_backend/app/effects/engine/aggregator.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from teasense_backend.app.schemas import ComponentWeights, ScoreProgression
from .scoring import clip

# What it does:
# Weighted fold of the five raw component maps into one combined map, keeping
# a snapshot after each component for the explainability trace.

# (component, progression snapshot) in fold order; reporting expects exactly this order
FOLD_ORDER: List[Tuple[str, str]] = [
    ("tea_type", "with_base_scores"),
    ("processing", "with_processing_scores"),
    ("geography", "with_geography_scores"),
    ("flavors", "with_flavor_scores"),
    ("compounds", "with_compound_scores"),
]


@dataclass
class AggregateResult:
    combined: Dict[str, float] = field(default_factory=dict)
    progression: ScoreProgression = field(default_factory=ScoreProgression)


# Purpose:
# running[e] += weight[component] * raw[component][e] over the union of ids.
# Snapshots are unclamped running sums; only the combined map handed to the
# interaction stage is clamped to [0, 10], once, after the compound fold.
def aggregate(raw: Dict[str, Dict[str, float]], weights: ComponentWeights) -> AggregateResult:
    ids = sorted({eid for m in raw.values() for eid in m})
    running: Dict[str, float] = {eid: 0.0 for eid in ids}
    snapshots: Dict[str, Dict[str, float]] = {}

    for component, snapshot_name in FOLD_ORDER:
        w = float(getattr(weights, component))
        contrib = raw.get(component, {})
        for eid in ids:
            running[eid] += w * contrib.get(eid, 0.0)
        snapshots[snapshot_name] = dict(running)

    return AggregateResult(
        combined={eid: clip(v) for eid, v in running.items()},
        progression=ScoreProgression(**snapshots),
    )
