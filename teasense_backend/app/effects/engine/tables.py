# teasense_backend/app/effects/engine/tables.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple

from teasense_backend.app.config.manifest import validate_manifest
from teasense_backend.app.effects import library_loader as L
from teasense_backend.app.schemas import EffectModifier
from .models import (
    CONDITION_KEYS,
    BalancingRule,
    ComplexityDampening,
    FlavorSubcategory,
    GeographyTables,
    InteractionRule,
    ProcessingCombination,
    ProcessingDefaultRule,
    ProcessingEntry,
)
from .vocabulary import EffectVocabulary, vocabulary_from_dict

log = logging.getLogger("teasense.tables")

# Purpose:
# Build the immutable **reference tables** the engine runs on. Every effect id
# in every table is folded onto the vocabulary's canonical id; anything that
# cannot be resolved is reported as an error string (same contract as the
# other validate_* helpers: empty list == clean).


@dataclass(frozen=True)
class ReferenceTables:
    vocabulary: EffectVocabulary
    tea_types: Dict[str, Dict[str, float]]
    tea_type_aliases: Dict[str, str]
    default_tea_type: str
    flavors: Dict[str, Dict[str, FlavorSubcategory]]
    flavor_index: Dict[str, Tuple[str, str]]          # tag -> (category, subcategory)
    processing_defaults: Dict[str, ProcessingDefaultRule]
    processing_methods: Dict[str, ProcessingEntry]
    processing_combinations: List[ProcessingCombination]
    complexity_dampening: ComplexityDampening
    interactions: Dict[str, InteractionRule]           # canonical "a+b" keys
    geography: GeographyTables
    balancing_rules: List[BalancingRule]

    def interaction_for(self, a: str, b: str) -> Optional[InteractionRule]:
        return self.interactions.get(f"{a}+{b}") or self.interactions.get(f"{b}+{a}")

    def flavor_subcategory(self, tag: str) -> Optional[Tuple[str, str, FlavorSubcategory]]:
        hit = self.flavor_index.get((tag or "").strip().lower())
        if hit is None:
            return None
        cat, sub = hit
        return cat, sub, self.flavors[cat][sub]


# -----------------------------------------------------------------------------
# Canonicalisation helpers
# -----------------------------------------------------------------------------
def _canon(tag: str, vocab: EffectVocabulary, where: str, errors: List[str]) -> Optional[str]:
    cid = vocab.canonical(tag)
    if cid is None:
        errors.append(f"[{where}] unknown effect: {tag}")
    return cid

def _canon_map(m: Dict[str, Any], vocab: EffectVocabulary, where: str, errors: List[str]) -> Dict[str, float]:
    # aliases that collapse onto one id are summed
    out: Dict[str, float] = {}
    for k, v in (m or {}).items():
        cid = _canon(k, vocab, where, errors)
        if cid is not None:
            out[cid] = out.get(cid, 0.0) + float(v)
    return out

def _canon_list(xs: List[str], vocab: EffectVocabulary, where: str, errors: List[str]) -> List[str]:
    out: List[str] = []
    for x in xs or []:
        cid = _canon(x, vocab, where, errors)
        if cid is not None and cid not in out:
            out.append(cid)
    return out


# -----------------------------------------------------------------------------
# Per-table builders (each returns the canonical table; errors accumulate)
# -----------------------------------------------------------------------------
def build_tea_types(raw: Dict[str, Any], vocab: EffectVocabulary, errors: List[str]):
    types = {str(t).lower(): _canon_map(m, vocab, f"tea_type {t}", errors)
             for t, m in (raw.get("types") or {}).items()}
    aliases = {str(a).lower(): str(t).lower() for a, t in (raw.get("aliases") or {}).items()}
    for a, t in aliases.items():
        if t not in types:
            errors.append(f"[tea_type alias {a}] unknown target type: {t}")
    default = str(raw.get("default_type", "green")).lower()
    if default not in types:
        errors.append(f"[tea_types] default_type {default} has no base map")
    return types, aliases, default

def build_flavors(raw: Dict[str, Any], vocab: EffectVocabulary, errors: List[str]):
    table: Dict[str, Dict[str, FlavorSubcategory]] = {}
    index: Dict[str, Tuple[str, str]] = {}
    for cat, subs in (raw or {}).items():
        table[cat] = {}
        for sub, spec in (subs or {}).items():
            entry = FlavorSubcategory(**spec)
            entry = entry.model_copy(update={
                "flavors": [f.strip().lower() for f in entry.flavors],
                "effects": _canon_list(entry.effects, vocab, f"flavor {cat}/{sub}", errors),
            })
            table[cat][sub] = entry
            for f in entry.flavors:
                index.setdefault(f, (cat, sub))
    return table, index

def build_processing(raw: Dict[str, Any], vocab: EffectVocabulary, errors: List[str]):
    defaults: Dict[str, ProcessingDefaultRule] = {}
    for method, spec in (raw.get("default_rules") or {}).items():
        rule = ProcessingDefaultRule(**spec)
        emphasis = rule.emphasis
        if emphasis is not None:
            eid = _canon(emphasis.effect, vocab, f"processing default {method}", errors)
            emphasis = emphasis.model_copy(update={"effect": eid or emphasis.effect})
        defaults[method.lower()] = rule.model_copy(update={
            "effects": _canon_map(rule.effects, vocab, f"processing default {method}", errors),
            "emphasis": emphasis,
        })

    methods: Dict[str, ProcessingEntry] = {}
    for method, spec in (raw.get("methods") or {}).items():
        entry = ProcessingEntry(**spec)
        methods[method.lower()] = entry.model_copy(update={
            "effects": _canon_map(entry.effects, vocab, f"processing method {method}", errors),
        })

    combos: List[ProcessingCombination] = []
    for spec in raw.get("combinations") or []:
        c = ProcessingCombination(**spec)
        combos.append(c.model_copy(update={
            "requires": [r.lower() for r in c.requires],
            "effects": _canon_map(c.effects, vocab, f"processing combination {c.name}", errors),
        }))

    dampening = ComplexityDampening(**(raw.get("complexity_dampening") or {}))
    return defaults, methods, combos, dampening

def build_interactions(raw: Dict[str, Any], vocab: EffectVocabulary, errors: List[str]) -> Dict[str, InteractionRule]:
    out: Dict[str, InteractionRule] = {}
    for key, spec in (raw or {}).items():
        parts = [p.strip() for p in str(key).split("+")]
        if len(parts) != 2:
            errors.append(f"[interaction {key}] key must be 'a+b'")
            continue
        a = _canon(parts[0], vocab, f"interaction {key}", errors)
        b = _canon(parts[1], vocab, f"interaction {key}", errors)
        if a is None or b is None:
            continue
        rule = InteractionRule(**spec)
        modifies: List[EffectModifier] = []
        for m in rule.modifies:
            t = _canon(m.target, vocab, f"interaction {key}", errors)
            if t is not None:
                modifies.append(EffectModifier(target=t, modifier=m.modifier))
        if f"{a}+{b}" in out or f"{b}+{a}" in out:
            errors.append(f"[interaction {key}] duplicate pair {a}+{b}")
            continue
        out[f"{a}+{b}"] = rule.model_copy(update={"modifies": modifies})
    return out

def build_geography(raw: Dict[str, Any], vocab: EffectVocabulary, errors: List[str]) -> GeographyTables:
    geo = GeographyTables(**(raw or {}))

    def fix(items, where):
        return [
            i.model_copy(update={"effects": _canon_map(i.effects, vocab, f"geography {where} {i.name}", errors)})
            for i in items
        ]

    seasons = {
        k: s.model_copy(update={"effects": _canon_map(s.effects, vocab, f"geography season {k}", errors)})
        for k, s in geo.seasons.items()
    }
    return geo.model_copy(update={
        "altitude_bands": fix(geo.altitude_bands, "altitude"),
        "humidity_bands": fix(geo.humidity_bands, "humidity"),
        "climate_zones": fix(geo.climate_zones, "climate"),
        "seasons": seasons,
    })

def _canon_condition(cond: Any, vocab: EffectVocabulary, where: str, errors: List[str]) -> Any:
    if not isinstance(cond, dict) or len(cond) != 1:
        errors.append(f"[{where}] condition must be a single-key mapping: {cond!r}")
        return {}
    (key, arg), = cond.items()
    if key not in CONDITION_KEYS:
        errors.append(f"[{where}] unknown condition: {key}")
        return {}
    if key in ("score_above", "score_below"):
        if not isinstance(arg, dict) or "effect" not in arg or "value" not in arg:
            errors.append(f"[{where}] {key} needs {{effect, value}}")
            return {}
        eid = _canon(arg["effect"], vocab, where, errors)
        return {key: {"effect": eid or arg["effect"], "value": float(arg["value"])}}
    if key in ("any", "all"):
        return {key: [_canon_condition(c, vocab, where, errors) for c in (arg or [])]}
    if key == "not":
        return {key: _canon_condition(arg, vocab, where, errors)}
    if key in ("flavor_any", "processing_includes_any", "processing_contains_any"):
        return {key: [str(x).strip().lower() for x in (arg or [])]}
    return {key: float(arg)}

def build_balancing_rules(raw: List[Dict[str, Any]], vocab: EffectVocabulary, errors: List[str]) -> List[BalancingRule]:
    out: List[BalancingRule] = []
    for spec in raw or []:
        rule = BalancingRule(**spec)
        where = f"balancing {rule.name}"
        actions = rule.actions()
        if len(actions) != 1:
            errors.append(f"[{where}] needs exactly one action, found {actions or 'none'}")
            continue
        needs_target = actions[0] in ("multiply", "add", "multiply_per_match", "cap_relative")
        target = rule.target
        if target is not None:
            target = _canon(target, vocab, where, errors)
        elif needs_target:
            errors.append(f"[{where}] action {actions[0]} needs a target")
            continue
        update: Dict[str, Any] = {
            "target": target,
            "when": [_canon_condition(c, vocab, where, errors) for c in rule.when],
        }
        if rule.boost_lower is not None:
            update["boost_lower"] = rule.boost_lower.model_copy(
                update={"effects": _canon_list(rule.boost_lower.effects, vocab, where, errors)})
        if rule.dampen_strong is not None:
            update["dampen_strong"] = rule.dampen_strong.model_copy(
                update={"candidates": _canon_list(rule.dampen_strong.candidates, vocab, where, errors)})
        out.append(rule.model_copy(update=update))
    return out


# -----------------------------------------------------------------------------
# Assembly
# -----------------------------------------------------------------------------
def build_reference_tables(
    *,
    effects: Dict[str, Any],
    tea_types: Dict[str, Any],
    flavors: Dict[str, Any],
    processing: Dict[str, Any],
    interactions: Dict[str, Any],
    geography: Dict[str, Any],
    balancing: List[Dict[str, Any]],
) -> Tuple[ReferenceTables, List[str]]:
    # Purpose:
    # Canonicalise raw rulebooks into a ReferenceTables value. Returns the
    # tables and every problem found; callers decide whether errors are fatal.
    errors: List[str] = []
    vocab = vocabulary_from_dict(effects or {})
    types, type_aliases, default_type = build_tea_types(tea_types or {}, vocab, errors)
    flavor_table, flavor_index = build_flavors(flavors or {}, vocab, errors)
    defaults, methods, combos, dampening = build_processing(processing or {}, vocab, errors)
    tables = ReferenceTables(
        vocabulary=vocab,
        tea_types=types,
        tea_type_aliases=type_aliases,
        default_tea_type=default_type,
        flavors=flavor_table,
        flavor_index=flavor_index,
        processing_defaults=defaults,
        processing_methods=methods,
        processing_combinations=combos,
        complexity_dampening=dampening,
        interactions=build_interactions(interactions or {}, vocab, errors),
        geography=build_geography(geography or {}, vocab, errors),
        balancing_rules=build_balancing_rules(balancing or [], vocab, errors),
    )
    return tables, errors


def _build_from_rules() -> Tuple[ReferenceTables, List[str]]:
    return build_reference_tables(
        effects=L.get_effect_catalog(),
        tea_types=L.get_tea_type_effects(),
        flavors=L.get_flavor_influences(),
        processing=L.get_processing_influences(),
        interactions=L.get_effect_interactions(),
        geography=L.get_geography_influences(),
        balancing=L.get_balancing_rules(),
    )


def validate_reference_tables() -> List[str]:
    # Purpose:
    # Same checks as a strict load, reported instead of raised. Missing
    # required rulebooks are reported on their own; nothing is built then.
    missing = validate_manifest()["missing_required"]
    if missing:
        return [f"[rules] missing required file: {name}" for name in missing]
    _, errors = _build_from_rules()
    return errors


def load_reference_tables(strict: bool = True) -> ReferenceTables:
    # Purpose:
    # Read the shipped (or EFFECT_RULES_DIR) rulebooks and build tables.
    # strict=True turns any validation error into ValueError.
    tables, errors = _build_from_rules()
    if errors:
        if strict:
            raise ValueError("Invalid reference tables:\n" + "\n".join(errors))
        for e in errors:
            log.warning(f"[tables] {e}")
    log.info(
        f"[tables] {len(tables.tea_types)} tea types, {len(tables.flavor_index)} flavor tags, "
        f"{len(tables.processing_methods)} processing entries, {len(tables.interactions)} interactions, "
        f"{len(tables.balancing_rules)} balancing rules"
    )
    return tables


@lru_cache(maxsize=1)
def default_reference_tables() -> ReferenceTables:
    return load_reference_tables(strict=True)
