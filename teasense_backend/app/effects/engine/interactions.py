# teasense_backend/app/effects/engine/interactions.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from teasense_backend.app.schemas import BalancingAdjustment, InteractionSummary, TeaSample
from .balancing import SampleFacts, apply_balancing_rules
from .scoring import rank_effects
from .tables import ReferenceTables

log = logging.getLogger("teasense.interactions")

# rules without explicit modifiers reinforce both participants by strength * this
REINFORCEMENT_FACTOR = 0.2
SIGNIFICANT_TOP_N = 3


@dataclass
class AppliedInteraction:
    effects: List[str]
    name: str
    strength: float


@dataclass
class InteractionOutcome:
    scores: Dict[str, float] = field(default_factory=dict)
    applied: List[AppliedInteraction] = field(default_factory=list)
    adjustments: List[BalancingAdjustment] = field(default_factory=list)


class InteractionEngine:
    # Purpose:
    # Pairwise synergy/antagonism rules followed by the balancing battery.
    # New effect ids can only appear as a rule's `modifies` target.
    def __init__(self, tables: ReferenceTables, strength_factor: float = 0.8, supporting_threshold: float = 3.5):
        self.tables = tables
        self.strength_factor = strength_factor
        self.supporting_threshold = supporting_threshold

    def apply_pairwise(self, scores: Dict[str, float]) -> InteractionOutcome:
        # Purpose:
        # Visit every pair (i<j) of the initial ranking. Strength reads the live
        # (already modified) scores, so earlier pairs feed later ones.
        modified = dict(scores)
        applied: List[AppliedInteraction] = []
        ranked = [eid for eid, _ in rank_effects(scores)]
        for i, a in enumerate(ranked):
            for b in ranked[i + 1:]:
                rule = self.tables.interaction_for(a, b)
                if rule is None:
                    continue
                strength = min(modified[a], modified[b]) * self.strength_factor
                if rule.modifies:
                    for m in rule.modifies:
                        modified[m.target] = modified.get(m.target, 0.0) + strength * m.modifier
                else:
                    modified[a] += strength * REINFORCEMENT_FACTOR
                    modified[b] += strength * REINFORCEMENT_FACTOR
                applied.append(AppliedInteraction(effects=[a, b], name=rule.name, strength=strength))
        return InteractionOutcome(scores=modified, applied=applied)

    def apply(self, scores: Dict[str, float], tea: TeaSample) -> InteractionOutcome:
        outcome = self.apply_pairwise(scores)
        balanced, adjustments = apply_balancing_rules(
            outcome.scores, self.tables.balancing_rules, SampleFacts.from_sample(tea)
        )
        log.debug(f"[interactions] {len(outcome.applied)} pair rules, {len(adjustments)} balancing adjustments")
        return InteractionOutcome(scores=balanced, applied=outcome.applied, adjustments=adjustments)

    def significant_interactions(self, scores: Dict[str, float]) -> List[InteractionSummary]:
        # Purpose:
        # Reporting only: among the top three effects at or above the supporting
        # threshold, list every pair that has a rule. Never mutates scores.
        top = [eid for eid, s in rank_effects(scores) if s >= self.supporting_threshold][:SIGNIFICANT_TOP_N]
        out: List[InteractionSummary] = []
        for i, a in enumerate(top):
            for b in top[i + 1:]:
                rule = self.tables.interaction_for(a, b)
                if rule is None:
                    continue
                out.append(InteractionSummary(
                    name=rule.name,
                    effects=[a, b],
                    strength=min(scores[a], scores[b]) * self.strength_factor,
                    description=rule.description,
                    modifies=list(rule.modifies),
                ))
        return sorted(out, key=lambda x: (-x.strength, x.effects))
