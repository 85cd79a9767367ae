# teasense_backend/app/effects/engine/models.py
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from teasense_backend.app.schemas import EffectModifier

# Purpose:
# Typed models for the read-only reference tables:
# - flavor subcategories and processing entries/default rules
# - pairwise interaction rules
# - geography bands/zones/seasons
# - the declarative balancing battery

EffectId = str


class EffectDefinition(BaseModel):
    # Purpose: one entry of the closed effect vocabulary.
    name: str
    description: str = ""
    aliases: List[str] = []


class FlavorSubcategory(BaseModel):
    # Purpose: flavor tags sharing one effect list; each tag adds `intensity` per effect.
    flavors: List[str] = []
    effects: List[EffectId] = []
    intensity: float = Field(1.0, ge=0.0)


class ProcessingEmphasis(BaseModel):
    # Purpose: extra factor on one effect depending on markers in the raw method string.
    effect: EffectId
    strong_markers: List[str] = []
    strong: float = 1.0
    otherwise: float = 1.0


class ProcessingDefaultRule(BaseModel):
    # Purpose: baseline contribution of a parsed base method.
    effects: Dict[EffectId, float] = {}
    emphasis: Optional[ProcessingEmphasis] = None


class ProcessingEntry(BaseModel):
    # Purpose: richer dataset entry; contribution = effects x intensity.
    effects: Dict[EffectId, float] = {}
    intensity: float = Field(1.0, ge=0.0)
    category: str = "special"
    description: str = ""


class ProcessingCombination(BaseModel):
    name: str
    requires: List[str]
    effects: Dict[EffectId, float] = {}


class ComplexityDampening(BaseModel):
    max_methods: int = 2
    factor: float = 0.9


class InteractionRule(BaseModel):
    # Purpose: unordered pair rule; empty `modifies` means mutual reinforcement.
    name: str
    description: str = ""
    modifies: List[EffectModifier] = []


class GeoBand(BaseModel):
    # Purpose: altitude/humidity band; `above=None` marks the fallback band.
    name: str
    above: Optional[float] = None
    effects: Dict[EffectId, float] = {}


class ClimateZone(BaseModel):
    # Purpose: latitude zone; `below=None` marks the fallback zone.
    name: str
    below: Optional[float] = None
    effects: Dict[EffectId, float] = {}


class Season(BaseModel):
    label: str
    months: List[int]
    effects: Dict[EffectId, float] = {}


class GeographyTables(BaseModel):
    factor_weights: Dict[str, float] = {}
    altitude_bands: List[GeoBand] = []
    humidity_bands: List[GeoBand] = []
    climate_zones: List[ClimateZone] = []
    seasons: Dict[str, Season] = {}


class PerMatchMultiplier(BaseModel):
    markers: List[str]
    step: float


class BoostLower(BaseModel):
    effects: List[EffectId]
    factor: float


class DampenStrong(BaseModel):
    above: float
    count: int
    candidates: List[EffectId]
    pick: int
    factor: float


class CapRelative(BaseModel):
    trigger: float
    ratio: float


BALANCING_ACTIONS = ("multiply", "add", "multiply_per_match", "boost_lower", "dampen_strong", "cap_relative")


class BalancingRule(BaseModel):
    # Purpose: “when all conditions hold then adjust target” entry of the balancing battery.
    name: str
    description: str = ""
    when: List[Dict[str, Any]] = []
    target: Optional[EffectId] = None
    multiply: Optional[float] = None
    add: Optional[float] = None
    multiply_per_match: Optional[PerMatchMultiplier] = None
    boost_lower: Optional[BoostLower] = None
    dampen_strong: Optional[DampenStrong] = None
    cap_relative: Optional[CapRelative] = None
    cap: Optional[float] = None

    def actions(self) -> List[str]:
        return [a for a in BALANCING_ACTIONS if getattr(self, a) is not None]


CONDITION_KEYS = (
    "score_above", "score_below",
    "caffeine_above", "caffeine_below", "theanine_above", "theanine_below",
    "flavor_any", "processing_includes_any", "processing_contains_any",
    "any", "all", "not",
)
