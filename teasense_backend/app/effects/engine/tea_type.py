# teasense_backend/app/effects/engine/tea_type.py
from __future__ import annotations

import logging

from teasense_backend.app.schemas import TeaSample
from .scoring import ComponentResult
from .tables import ReferenceTables

log = logging.getLogger("teasense.tea_type")


class TeaTypeCalculator:
    # Purpose:
    # Fixed base effect map per tea type. Aliases resolve first ("puerh" ->
    # "puerh-shou"); unknown or missing types use the table's default type.
    def __init__(self, tables: ReferenceTables):
        self.tables = tables

    def resolve_type(self, tea_type: str | None) -> str:
        t = (tea_type or "").strip().lower()
        t = self.tables.tea_type_aliases.get(t, t)
        if t in self.tables.tea_types:
            return t
        if t:
            log.debug(f"[tea_type] unknown type {tea_type!r}; using {self.tables.default_tea_type}")
        return self.tables.default_tea_type

    def calculate(self, tea: TeaSample) -> ComponentResult:
        resolved = self.resolve_type(tea.tea_type)
        return ComponentResult(
            scores=dict(self.tables.tea_types.get(resolved, {})),
            details={"requested_type": tea.tea_type, "resolved_type": resolved},
        )
