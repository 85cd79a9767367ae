# teasense_backend/app/effects/engine/selector.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from teasense_backend.app.schemas import EffectLevel
from .scoring import rank_effects
from .vocabulary import EffectVocabulary

# Canonical answer for empty or malformed input
BALANCED_DEFAULT = EffectLevel(
    id="balanced",
    name="Balanced",
    description="A balanced state of mind and body",
    level=5.0,
)

SUPPORTING_RANKS = 2   # ranks 2..3


@dataclass
class EffectSelection:
    dominant: EffectLevel
    supporting: List[EffectLevel] = field(default_factory=list)
    additional: List[EffectLevel] = field(default_factory=list)


class EffectSelector:
    # Purpose:
    # Pure tiering over the final map: rank 1 dominant, ranks 2-3 supporting
    # (>= supporting threshold), ranks 4+ additional (>= additional threshold).
    def __init__(self, vocabulary: EffectVocabulary, supporting_threshold: float = 3.5, additional_threshold: float = 4.0):
        self.vocabulary = vocabulary
        self.supporting_threshold = supporting_threshold
        self.additional_threshold = additional_threshold

    def level(self, effect_id: str, score: float) -> EffectLevel:
        return EffectLevel(
            id=effect_id,
            name=self.vocabulary.display_name(effect_id),
            description=self.vocabulary.description(effect_id),
            level=round(score, 1),
        )

    def select(self, scores: Dict[str, float]) -> EffectSelection:
        ranked = rank_effects(scores)
        if not ranked:
            return EffectSelection(dominant=BALANCED_DEFAULT.model_copy())
        dominant = self.level(*ranked[0])
        supporting = [
            self.level(eid, s) for eid, s in ranked[1:1 + SUPPORTING_RANKS]
            if s >= self.supporting_threshold
        ]
        additional = [
            self.level(eid, s) for eid, s in ranked[1 + SUPPORTING_RANKS:]
            if s >= self.additional_threshold
        ]
        return EffectSelection(dominant=dominant, supporting=supporting, additional=additional)
