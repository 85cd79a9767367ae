# teasense_backend/app/effects/engine/flavors.py
from __future__ import annotations

import logging
from typing import Dict, List

from teasense_backend.app.schemas import TeaSample
from .scoring import ComponentResult, add_into
from .tables import ReferenceTables

log = logging.getLogger("teasense.flavors")

DOMINANT_FLAVOR_COUNT = 3


def _label(category: str) -> str:
    return category.replace("_", " ")


class FlavorCalculator:
    # Purpose:
    # Each recognised flavor tag adds its subcategory intensity to every effect
    # that subcategory lists. Unknown tags contribute nothing. Tag order only
    # breaks ties (dominant flavors, primary category), it never weights scores.
    def __init__(self, tables: ReferenceTables):
        self.tables = tables

    def calculate(self, tea: TeaSample) -> ComponentResult:
        scores: Dict[str, float] = {}
        flavor_weight: Dict[str, float] = {}      # insertion order == first appearance
        category_counts: Dict[str, int] = {}
        unknown: List[str] = []

        for raw in tea.flavor_profile:
            tag = (raw or "").strip().lower()
            hit = self.tables.flavor_subcategory(tag)
            if hit is None:
                if tag:
                    unknown.append(tag)
                continue
            category, _sub, entry = hit
            add_into(scores, {eid: entry.intensity for eid in entry.effects})
            flavor_weight[tag] = flavor_weight.get(tag, 0.0) + entry.intensity
            category_counts[category] = category_counts.get(category, 0) + 1

        if unknown:
            log.debug(f"[flavors] ignored unrecognised tags: {unknown}")

        order = {tag: i for i, tag in enumerate(flavor_weight)}
        dominant = sorted(flavor_weight, key=lambda t: (-flavor_weight[t], order[t]))[:DOMINANT_FLAVOR_COUNT]
        cat_order = {c: i for i, c in enumerate(category_counts)}
        categories = sorted(category_counts, key=lambda c: (-category_counts[c], cat_order[c]))

        return ComponentResult(
            scores=scores,
            details={
                "dominant_flavors": dominant,
                "category_counts": category_counts,
                "primary_category": categories[0] if categories else None,
                "unrecognized": unknown,
                "description": self.describe(categories),
            },
        )

    @staticmethod
    def describe(categories: List[str]) -> str:
        if not categories:
            return "No recognised flavor profile"
        if len(categories) == 1:
            return f"Predominantly {_label(categories[0])}"
        return f"{_label(categories[0]).capitalize()} profile with {_label(categories[1])} notes"
