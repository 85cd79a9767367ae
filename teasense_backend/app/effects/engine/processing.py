# teasense_backend/app/effects/engine/processing.py
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from teasense_backend.app.schemas import TeaSample
from .models import ProcessingEntry
from .scoring import ComponentResult, add_into
from .tables import ReferenceTables

log = logging.getLogger("teasense.processing")

# What it does:
# Turn processing tags such as "heavy-roast" or "lightly processed" into
# (base method, intensity qualifier) pairs, then accumulate the default rule
# for the base method and any richer dataset entry, scaled by the qualifier.

QUALIFIED_RE = re.compile(r"^(light|medium|heavy|deep|full|charcoal|short|vintage|post)-(.+)$")
PROCESSED_RE = re.compile(r"^(light|medium|heavy|deep|full)(?:ly)?[ -]processed$")

# keyword -> canonical base name, checked in this order by the fallbacks
_KEYWORD_BASES: List[Tuple[str, str]] = [
    ("roast", "roasted"),
    ("steam", "steamed"),
    ("ferment", "fermented"),
    ("oxid", "oxidation"),
]

# qualifier used by the heavy/deep fallback, per base
_HEAVY_FALLBACK = {"roasted": "heavy", "steamed": "deep", "fermented": "heavy", "oxidation": "heavy"}

BASE_ALIASES = {
    "roast": "roasted",
    "steam": "steamed",
    "ferment": "fermented",
    "fermentation": "fermented",
    "oxidised": "oxidation",
    "oxidized": "oxidation",
    "oxidation": "oxidation",
}

# Method-specific intensity modifiers; anything not listed uses GENERIC_MODIFIERS
METHOD_MODIFIERS: Dict[str, Dict[str, float]] = {
    "steamed":   {"light": 0.7, "standard": 1.0, "deep": 1.3},
    "roasted":   {"light": 0.7, "medium": 1.0, "heavy": 1.5, "charcoal": 1.8},
    "oxidation": {"light": 0.7, "medium": 1.0, "heavy": 1.3, "full": 1.5},
    "fermented": {"light": 0.7, "medium": 1.0, "heavy": 1.4, "post": 1.6},
    "aged":      {"short": 0.7, "medium": 1.0, "long": 1.3, "vintage": 1.6},
}

GENERIC_MODIFIERS: Dict[str, float] = {
    "light": 0.7,
    "medium": 1.0,
    "heavy": 1.3,
    "deep": 1.3,
    "full": 1.5,
    "charcoal": 1.8,
    "post": 1.6,
    "short": 0.7,
    "vintage": 1.6,
}


@dataclass(frozen=True)
class ParsedMethod:
    method: str                 # normalised tag, e.g. "heavy-roast"
    base: str                   # canonical base, e.g. "roasted"
    qualifier: Optional[str]    # e.g. "heavy"


def normalise_method(method: str) -> str:
    return "-".join((method or "").strip().lower().split())


# Purpose:
# Parse one processing tag. Patterns are tried in order:
#   "qualifier-method", "qualifier[ly] processed", light/heavy keyword
#   fallbacks, then the tag itself with no qualifier.
def parse_method(method: str) -> ParsedMethod:
    m = normalise_method(method)
    base: str = m
    qualifier: Optional[str] = None

    hit = QUALIFIED_RE.match(m)
    if hit:
        qualifier, base = hit.group(1), hit.group(2)
    else:
        hit = PROCESSED_RE.match(m)
        if hit:
            qualifier, base = hit.group(1), "processed"
        elif "light" in m:
            for kw, canon in _KEYWORD_BASES:
                if kw in m:
                    base, qualifier = canon, "light"
                    break
        elif "heavy" in m or "deep" in m:
            for kw, canon in _KEYWORD_BASES:
                if kw in m:
                    base, qualifier = canon, _HEAVY_FALLBACK[canon]
                    break

    return ParsedMethod(method=m, base=BASE_ALIASES.get(base, base), qualifier=qualifier)


def intensity_modifier(base: str, qualifier: Optional[str]) -> float:
    if qualifier is None:
        return 1.0
    specific = METHOD_MODIFIERS.get(base, {})
    if qualifier in specific:
        return specific[qualifier]
    return GENERIC_MODIFIERS.get(qualifier, 1.0)


class ProcessingCalculator:
    def __init__(self, tables: ReferenceTables):
        self.tables = tables

    def _dataset_entry(self, parsed: ParsedMethod) -> Tuple[Optional[ProcessingEntry], bool]:
        # (entry, matched_on_base); a full-tag entry already encodes its intensity
        methods = self.tables.processing_methods
        if parsed.method in methods:
            return methods[parsed.method], False
        if parsed.base in methods:
            return methods[parsed.base], True
        return None, False

    def _score_method(self, parsed: ParsedMethod, scores: Dict[str, float]) -> Dict[str, object]:
        modifier = intensity_modifier(parsed.base, parsed.qualifier)
        matched = False

        rule = self.tables.processing_defaults.get(parsed.base)
        if rule is not None:
            matched = True
            contrib = dict(rule.effects)
            em = rule.emphasis
            if em is not None and em.effect in contrib:
                strong = any(marker in parsed.method for marker in em.strong_markers)
                contrib[em.effect] *= em.strong if strong else em.otherwise
            add_into(scores, contrib, modifier)

        entry, on_base = self._dataset_entry(parsed)
        if entry is not None:
            matched = True
            add_into(scores, entry.effects, entry.intensity * (modifier if on_base else 1.0))

        if not matched:
            log.debug(f"[processing] unrecognised method {parsed.method!r}")

        return {
            "method": parsed.method,
            "base": parsed.base,
            "qualifier": parsed.qualifier,
            "modifier": modifier,
            "recognized": matched,
            "category": entry.category if entry else None,
            "description": entry.description if entry else "",
        }

    def calculate(self, tea: TeaSample) -> ComponentResult:
        scores: Dict[str, float] = {}
        parsed = [parse_method(m) for m in tea.processing_methods if (m or "").strip()]
        method_details = [self._score_method(p, scores) for p in parsed]

        present = {p.method for p in parsed} | {p.base for p in parsed}
        fired: List[str] = []
        for combo in self.tables.processing_combinations:
            if all(r in present for r in combo.requires):
                add_into(scores, combo.effects)
                fired.append(combo.name)

        damp = self.tables.complexity_dampening
        if len(parsed) > damp.max_methods:
            for eid in scores:
                scores[eid] *= damp.factor

        category_counts: Dict[str, int] = {}
        for d in method_details:
            if d["category"]:
                category_counts[d["category"]] = category_counts.get(d["category"], 0) + 1

        return ComponentResult(
            scores=scores,
            details={
                "methods": method_details,
                "combinations": fired,
                "category_counts": category_counts,
                "description": self.describe(parsed, category_counts),
            },
        )

    @staticmethod
    def describe(parsed: List[ParsedMethod], category_counts: Dict[str, int]) -> str:
        if not parsed:
            return "No processing information"
        steps = ", ".join(p.method for p in parsed)
        if not category_counts:
            return f"Processed by {steps}"
        top = sorted(category_counts.items(), key=lambda kv: (-kv[1], kv[0]))[0][0]
        return f"Processed by {steps}; mainly {top} processing"
