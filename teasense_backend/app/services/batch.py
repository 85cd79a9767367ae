# teasense_backend/app/services/batch.py
from __future__ import annotations

import concurrent.futures as cf
import logging
from typing import Any, Iterable, List, Optional

from teasense_backend.app.effects.analyzer import TeaEffectEngine, default_engine
from teasense_backend.app.schemas import EffectProfile

log = logging.getLogger("teasense.batch")

# Purpose:
# Analyse many independent samples with one shared (immutable) engine.
# Results keep input order; a malformed sample yields the balanced default
# like a single calculate() call would.
def analyze_batch(
    samples: Iterable[Any],
    engine: Optional[TeaEffectEngine] = None,
    max_workers: int = 4,
) -> List[EffectProfile]:
    eng = engine or default_engine()
    items = list(samples)
    if not items:
        return []
    if max_workers <= 1 or len(items) == 1:
        return [eng.calculate(s) for s in items]
    with cf.ThreadPoolExecutor(max_workers=max_workers) as ex:
        results = list(ex.map(eng.calculate, items))
    log.info(f"[batch] analysed {len(results)} samples with {max_workers} workers")
    return results
