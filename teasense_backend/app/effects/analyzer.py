# teasense_backend/app/effects/analyzer.py
from __future__ import annotations

import logging
from collections.abc import Mapping
from functools import lru_cache
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from teasense_backend.app.config.effect_config import EffectSystemConfig, load_config
from teasense_backend.app.schemas import ComponentScores, EffectProfile, TeaSample
from teasense_backend.app.effects.engine.aggregator import aggregate
from teasense_backend.app.effects.engine.compounds import CompoundCalculator
from teasense_backend.app.effects.engine.flavors import FlavorCalculator
from teasense_backend.app.effects.engine.geography import GeographyCalculator
from teasense_backend.app.effects.engine.interactions import InteractionEngine
from teasense_backend.app.effects.engine.normalization import (
    SigmoidNormalizer,
    enhance_dominant_effect,
    normalize_scores,
)
from teasense_backend.app.effects.engine.processing import ProcessingCalculator
from teasense_backend.app.effects.engine.scoring import ComponentResult, clip, rank_effects
from teasense_backend.app.effects.engine.selector import BALANCED_DEFAULT, EffectSelector
from teasense_backend.app.effects.engine.tables import ReferenceTables, default_reference_tables
from teasense_backend.app.effects.engine.tea_type import TeaTypeCalculator

log = logging.getLogger("teasense.analyzer")

# What it does:
# One immutable engine per (config snapshot, reference tables). calculate()
# runs: calculators -> weighted fold -> interactions + balancing ->
# normalisation -> dominant separation -> tiering.


def degenerate_profile() -> EffectProfile:
    return EffectProfile(dominant_effect=BALANCED_DEFAULT.model_copy())


class TeaEffectEngine:
    # Purpose:
    # Holds its own config snapshot, so set() on the caller's config after
    # construction never reaches this engine. Safe to share across threads.
    #
    # calibration=True turns on expected-effect injection for tuning runs:
    # a sample's expectedEffects are written into the tea-type component and
    # the expected dominant is re-boosted after normalisation. That makes the
    # output circular, so it is never on by default.
    def __init__(
        self,
        config: Optional[EffectSystemConfig] = None,
        tables: Optional[ReferenceTables] = None,
        *,
        calibration: bool = False,
    ):
        self.config = (config or EffectSystemConfig()).snapshot()
        self.tables = tables or default_reference_tables()
        self.calibration = calibration

        cfg = self.config
        self.weights = cfg.component_weights()
        self.supporting_threshold = float(cfg.get("thresholds.supporting_effect_threshold", 3.5))
        self.dominant_threshold = float(cfg.get("thresholds.dominant_effect_threshold", 7.0))
        self.dominant_gap = float(cfg.get("normalization.dominant_gap", 0.3))
        self.dominant_boost = float(cfg.get("normalization.dominant_boost", 0.25))

        self.calculators = {
            "tea_type": TeaTypeCalculator(self.tables),
            "compounds": CompoundCalculator(cfg),
            "flavors": FlavorCalculator(self.tables),
            "processing": ProcessingCalculator(self.tables),
            "geography": GeographyCalculator(self.tables),
        }
        self.interactions = InteractionEngine(
            self.tables,
            strength_factor=float(cfg.get("interaction_strength_factor", 0.8)),
            supporting_threshold=self.supporting_threshold,
        )
        self.selector = EffectSelector(
            self.tables.vocabulary,
            supporting_threshold=self.supporting_threshold,
            additional_threshold=float(cfg.get("thresholds.additional_effect_threshold", 4.0)),
        )
        self._normalize = self._pick_normalizer(cfg)

    @staticmethod
    def _pick_normalizer(cfg: EffectSystemConfig) -> Callable[[Dict[str, float]], Dict[str, float]]:
        if not cfg.get("normalize_scores", True):
            return lambda scores: {eid: clip(v) for eid, v in scores.items()}
        strategy = cfg.get("normalization.strategy", "max")
        if strategy == "max":
            return normalize_scores
        if strategy == "sigmoid":
            return SigmoidNormalizer(**(cfg.get("normalization.sigmoid") or {}))
        raise ValueError(f"Unknown normalization strategy: {strategy}")

    # -------------------------------------------------------------------------
    # Input
    # -------------------------------------------------------------------------
    @staticmethod
    def coerce_sample(tea: Any) -> Optional[TeaSample]:
        # Purpose:
        # Accept a TeaSample or a mapping; anything else (or a mapping that
        # fails validation) is malformed and yields None.
        if isinstance(tea, TeaSample):
            return tea
        if not isinstance(tea, Mapping):
            log.warning(f"[engine] malformed tea sample of type {type(tea).__name__}; using balanced default")
            return None
        try:
            return TeaSample.model_validate(dict(tea))
        except ValidationError as e:
            log.warning(f"[engine] invalid tea sample ({e.error_count()} errors); using balanced default")
            return None

    # -------------------------------------------------------------------------
    # Calibration-only hooks
    # -------------------------------------------------------------------------
    def _inject_expected(self, base: Dict[str, float], tea: TeaSample) -> Dict[str, float]:
        exp = tea.expected_effects
        if exp is None:
            return base
        vocab = self.tables.vocabulary
        out = dict(base)
        for s in exp.supporting:
            eid = vocab.canonical(s)
            if eid:
                out[eid] = float(self.config.get("calibration.expected_supporting_score", 7.5))
        eid = vocab.canonical(exp.dominant) if exp.dominant else None
        if eid:
            out[eid] = float(self.config.get("calibration.expected_dominant_score", 9.5))
        return out

    def _reboost_expected(self, scores: Dict[str, float], tea: TeaSample) -> Dict[str, float]:
        exp = tea.expected_effects
        eid = self.tables.vocabulary.canonical(exp.dominant) if exp and exp.dominant else None
        ranked = rank_effects(scores)
        if not eid or eid not in scores or not ranked or ranked[0][0] == eid:
            return scores
        out = dict(scores)
        margin = float(self.config.get("calibration.dominant_margin", 0.5))
        target = clip(ranked[0][1] + margin)
        out[eid] = target
        # the 10 cap can swallow the margin; leaders at the cap drop below it instead
        for other, v in ranked:
            if other != eid and v >= target:
                out[other] = clip(target - margin)
        return out

    # -------------------------------------------------------------------------
    # Pipeline
    # -------------------------------------------------------------------------
    def component_results(self, tea: TeaSample) -> Dict[str, ComponentResult]:
        return {name: calc.calculate(tea) for name, calc in self.calculators.items()}

    def calculate(self, tea: Any) -> EffectProfile:
        sample = self.coerce_sample(tea)
        if sample is None:
            return degenerate_profile()

        components = self.component_results(sample)
        raw = {name: r.scores for name, r in components.items()}
        if self.calibration:
            raw["tea_type"] = self._inject_expected(raw["tea_type"], sample)

        agg = aggregate(raw, self.weights)
        outcome = self.interactions.apply(agg.combined, sample)
        final = enhance_dominant_effect(self._normalize(outcome.scores), self.dominant_gap, self.dominant_boost)
        if self.calibration:
            final = self._reboost_expected(final, sample)

        selection = self.selector.select(final)
        if sample.name:
            log.debug(f"[engine] {sample.name}: dominant {selection.dominant.id} ({selection.dominant.level})")

        return EffectProfile(
            dominant_effect=selection.dominant,
            supporting_effects=selection.supporting,
            additional_effects=selection.additional,
            interactions=self.interactions.significant_interactions(final),
            component_scores=ComponentScores(**raw),
            score_progression=agg.progression,
            final_scores=final,
            balancing_adjustments=outcome.adjustments,
            details={name: r.details for name, r in components.items()},
            clear_dominant=selection.dominant.level >= self.dominant_threshold,
            calibration=self.calibration,
        )


@lru_cache(maxsize=1)
def default_engine() -> TeaEffectEngine:
    # Purpose:
    # Shared production engine (defaults + TEASENSE_CONFIG_FILE, shipped tables).
    return TeaEffectEngine(load_config())


def calculate_effects(tea: Any, engine: Optional[TeaEffectEngine] = None) -> EffectProfile:
    return (engine or default_engine()).calculate(tea)
