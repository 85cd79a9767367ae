# teasense_backend/app/services/calibration.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from teasense_backend.app.config.effect_config import EffectSystemConfig
from teasense_backend.app.effects.analyzer import TeaEffectEngine
from teasense_backend.app.effects.engine.tables import default_reference_tables
from teasense_backend.app.effects.engine.vocabulary import EffectVocabulary
from teasense_backend.app.effects.library_loader import get_reference_teas
from teasense_backend.app.schemas import (
    CalibrationEntry,
    CalibrationReport,
    EffectMatch,
    EffectProfile,
    ExpectedComparison,
    ExpectedEffects,
    TeaSample,
)

log = logging.getLogger("teasense.calibration")

# What it does:
# Tuning helpers. Compare a computed profile with a tea's expert-assigned
# effects and summarise how well the engine reproduces a reference set.


# Purpose:
# Expected dominant/supporting effects carry target levels from the calibration
# config (9.5 / 7.5 by default); an effect matches when its final score is
# within `match_tolerance` of that level.
def compare_with_expected(
    profile: EffectProfile,
    expected: ExpectedEffects,
    vocabulary: Optional[EffectVocabulary] = None,
    config: Optional[EffectSystemConfig] = None,
) -> ExpectedComparison:
    vocabulary = vocabulary or default_reference_tables().vocabulary
    cfg = config or EffectSystemConfig()
    tolerance = float(cfg.get("calibration.match_tolerance", 2.0))
    targets: List[tuple] = []
    if expected.dominant:
        targets.append((expected.dominant, "dominant", float(cfg.get("calibration.expected_dominant_score", 9.5))))
    for s in expected.supporting:
        targets.append((s, "supporting", float(cfg.get("calibration.expected_supporting_score", 7.5))))

    matches: List[EffectMatch] = []
    for tag, role, level in targets:
        eid = vocabulary.canonical(tag) or tag
        actual = float(profile.final_scores.get(eid, 0.0))
        diff = actual - level
        matches.append(EffectMatch(
            effect=eid, role=role, expected=level, actual=actual,
            difference=diff, matched=abs(diff) <= tolerance,
        ))

    hit_count = sum(1 for m in matches if m.matched)
    dominant_id = vocabulary.canonical(expected.dominant) if expected.dominant else None
    return ExpectedComparison(
        matches=matches,
        dominant_hit=dominant_id is not None and profile.dominant_effect.id == dominant_id,
        match_count=hit_count,
        total=len(matches),
        match_percentage=(hit_count / len(matches) * 100.0) if matches else 0.0,
    )


def calibration_report(
    engine: TeaEffectEngine,
    reference_teas: Optional[List[Dict[str, Any]]] = None,
) -> CalibrationReport:
    # Purpose:
    # Run reference teas (bundled reference_teas.yaml by default) through
    # `engine` and summarise match rate and dominant hit rate. Teas without
    # expectedEffects are skipped.
    entries: List[CalibrationEntry] = []
    for raw in reference_teas if reference_teas is not None else get_reference_teas():
        sample = TeaEffectEngine.coerce_sample(raw)
        if sample is None or sample.expected_effects is None:
            continue
        profile = engine.calculate(sample)
        comparison = compare_with_expected(profile, sample.expected_effects, engine.tables.vocabulary, engine.config)
        entries.append(CalibrationEntry(
            name=sample.name or "unnamed",
            expected_dominant=sample.expected_effects.dominant,
            predicted_dominant=profile.dominant_effect.id,
            comparison=comparison,
        ))

    n = len(entries)
    report = CalibrationReport(
        calibration_mode=engine.calibration,
        entries=entries,
        mean_match_percentage=sum(e.comparison.match_percentage for e in entries) / n if n else 0.0,
        dominant_hit_rate=sum(1 for e in entries if e.comparison.dominant_hit) / n if n else 0.0,
    )
    log.info(
        f"[calibration] {n} teas, mean match {report.mean_match_percentage:.1f}%, "
        f"dominant hit rate {report.dominant_hit_rate:.2f} (calibration mode: {engine.calibration})"
    )
    return report
