# teasense_backend/app/effects/engine/balancing.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from teasense_backend.app.schemas import BalancingAdjustment, TeaSample
from .models import BalancingRule
from .processing import normalise_method

log = logging.getLogger("teasense.balancing")

# Purpose:
# Evaluate the declarative balancing battery (balancing_rules.yaml) against a
# score map and the sample it came from. Rules run in table order on live
# scores; each only touches effect ids already present in the map.


@dataclass(frozen=True)
class SampleFacts:
    flavors: FrozenSet[str]
    methods: Tuple[str, ...]
    caffeine: Optional[float]     # as supplied; None when the sample omits it
    theanine: Optional[float]

    @classmethod
    def from_sample(cls, tea: TeaSample) -> "SampleFacts":
        return cls(
            flavors=frozenset((f or "").strip().lower() for f in tea.flavor_profile),
            methods=tuple(normalise_method(m) for m in tea.processing_methods if (m or "").strip()),
            caffeine=tea.caffeine_level,
            theanine=tea.l_theanine_level,
        )


def _above(value: Optional[float], bound: float) -> bool:
    return value is not None and value > bound

def _below(value: Optional[float], bound: float) -> bool:
    return value is not None and value < bound


def condition_holds(cond: Dict[str, Any], scores: Dict[str, float], facts: SampleFacts) -> bool:
    if not cond:
        return False
    (key, arg), = cond.items()
    if key == "score_above":
        return _above(scores.get(arg["effect"]), arg["value"])
    if key == "score_below":
        return _below(scores.get(arg["effect"]), arg["value"])
    if key == "caffeine_above":
        return _above(facts.caffeine, arg)
    if key == "caffeine_below":
        return _below(facts.caffeine, arg)
    if key == "theanine_above":
        return _above(facts.theanine, arg)
    if key == "theanine_below":
        return _below(facts.theanine, arg)
    if key == "flavor_any":
        return any(f in facts.flavors for f in arg)
    if key == "processing_includes_any":
        return any(m in facts.methods for m in arg)
    if key == "processing_contains_any":
        return any(frag in m for m in facts.methods for frag in arg)
    if key == "any":
        return any(condition_holds(c, scores, facts) for c in arg)
    if key == "all":
        return all(condition_holds(c, scores, facts) for c in arg)
    if key == "not":
        return not condition_holds(arg, scores, facts)
    raise ValueError(f"Unknown balancing condition: {key}")


def _targets_and_values(rule: BalancingRule, scores: Dict[str, float], facts: SampleFacts) -> List[Tuple[str, float]]:
    # Purpose:
    # Resolve the rule's action into (effect, new value) pairs. Empty when the
    # action has nothing to act on.
    t = rule.target
    if rule.multiply is not None:
        return [(t, scores[t] * rule.multiply)] if t in scores else []
    if rule.add is not None:
        return [(t, scores[t] + rule.add)] if t in scores else []
    if rule.multiply_per_match is not None:
        if t not in scores:
            return []
        pm = rule.multiply_per_match
        count = sum(1 for m in facts.methods if any(marker in m for marker in pm.markers))
        return [(t, scores[t] * (1.0 + pm.step * count))]
    if rule.boost_lower is not None:
        a, b = rule.boost_lower.effects[:2]
        if a not in scores or b not in scores:
            return []
        lower = b if scores[a] > scores[b] else a
        return [(lower, scores[lower] * rule.boost_lower.factor)]
    if rule.dampen_strong is not None:
        ds = rule.dampen_strong
        strong = [e for e, v in scores.items() if v > ds.above]
        if len(strong) <= ds.count:
            return []
        weakest = sorted((c for c in ds.candidates if c in strong), key=lambda e: (scores[e], e))[:ds.pick]
        return [(e, scores[e] * ds.factor) for e in weakest]
    if rule.cap_relative is not None:
        if t not in scores:
            return []
        others = [v for e, v in scores.items() if e != t]
        if not others:
            return []
        top = max(others)
        cr = rule.cap_relative
        if scores[t] > top * cr.trigger:
            return [(t, top * cr.ratio)]
        return []
    return []


def apply_balancing_rules(
    scores: Dict[str, float],
    rules: List[BalancingRule],
    facts: SampleFacts,
) -> Tuple[Dict[str, float], List[BalancingAdjustment]]:
    out = dict(scores)
    adjustments: List[BalancingAdjustment] = []
    for rule in rules:
        if not all(condition_holds(c, out, facts) for c in rule.when):
            continue
        for eid, value in _targets_and_values(rule, out, facts):
            if rule.cap is not None:
                value = min(value, rule.cap)
            if value != out[eid]:
                adjustments.append(BalancingAdjustment(rule=rule.name, target=eid, before=out[eid], after=value))
                out[eid] = value
    if adjustments:
        log.debug(f"[balancing] {len(adjustments)} adjustments: {[a.rule for a in adjustments]}")
    return out, adjustments
