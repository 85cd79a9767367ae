# schemas.py  (tea sample input + effect profile output)

from __future__ import annotations
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

EffectScoreMap = Dict[str, float]


class _CamelModel(BaseModel):
    # camelCase on the wire, snake_case in Python; unknown keys are dropped
    model_config = ConfigDict(extra="ignore", populate_by_name=True, alias_generator=to_camel)


# ===================== Input =====================

_GEO_BOUNDS = {"humidity": (0.0, 100.0), "latitude": (-90.0, 90.0), "longitude": (-180.0, 180.0)}


class Geography(_CamelModel):
    altitude: Optional[float] = None              # metres
    humidity: Optional[float] = None              # percent, clamped to 0..100
    latitude: Optional[float] = None              # clamped to -90..90
    longitude: Optional[float] = None             # clamped to -180..180
    harvest_month: Optional[int] = None           # 1..12, anything else is ignored

    # out-of-range readings are clamped, not rejected
    @field_validator("humidity", "latitude", "longitude")
    @classmethod
    def _clamp(cls, v: Optional[float], info: ValidationInfo) -> Optional[float]:
        if v is None:
            return v
        lo, hi = _GEO_BOUNDS[info.field_name]
        return min(max(v, lo), hi)

    @field_validator("harvest_month", mode="before")
    @classmethod
    def _whole_month(cls, v: Any) -> Any:
        if isinstance(v, float):
            return int(v) if v.is_integer() else None
        return v


class ExpectedEffects(_CamelModel):
    dominant: Optional[str] = None
    supporting: List[str] = Field(default_factory=list)


class TeaSample(_CamelModel):
    name: Optional[str] = None
    origin: Optional[str] = None
    tea_type: Optional[str] = Field(None, alias="type")   # green/white/oolong/black/puerh/dark/...
    caffeine_level: Optional[float] = None        # 0..10
    l_theanine_level: Optional[float] = None      # 0..10
    flavor_profile: List[str] = Field(default_factory=list)       # ordered
    processing_methods: List[str] = Field(default_factory=list)   # ordered, e.g. "heavy-roast"
    geography: Optional[Geography] = None
    expected_effects: Optional[ExpectedEffects] = None            # calibration only

    @field_validator("flavor_profile", "processing_methods", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v


# ===================== Config views =====================

class ComponentWeights(_CamelModel):
    tea_type: float = 0.25
    compounds: float = 0.30
    processing: float = 0.15
    geography: float = 0.15
    flavors: float = 0.15

    def total(self) -> float:
        return self.tea_type + self.compounds + self.processing + self.geography + self.flavors


# ===================== Output =====================

class EffectLevel(_CamelModel):
    id: str
    name: str
    description: str = ""
    level: float


class EffectModifier(_CamelModel):
    target: str
    modifier: float


class InteractionSummary(_CamelModel):
    name: str
    effects: List[str]
    strength: float
    description: str = ""
    modifies: List[EffectModifier] = Field(default_factory=list)


class BalancingAdjustment(_CamelModel):
    rule: str
    target: str
    before: float
    after: float


class ComponentScores(_CamelModel):
    tea_type: EffectScoreMap = Field(default_factory=dict)
    compounds: EffectScoreMap = Field(default_factory=dict)
    processing: EffectScoreMap = Field(default_factory=dict)
    geography: EffectScoreMap = Field(default_factory=dict)
    flavors: EffectScoreMap = Field(default_factory=dict)


class ScoreProgression(_CamelModel):
    # ordered snapshots; explainability only
    with_base_scores: EffectScoreMap = Field(default_factory=dict)
    with_processing_scores: EffectScoreMap = Field(default_factory=dict)
    with_geography_scores: EffectScoreMap = Field(default_factory=dict)
    with_flavor_scores: EffectScoreMap = Field(default_factory=dict)
    with_compound_scores: EffectScoreMap = Field(default_factory=dict)


class EffectMatch(_CamelModel):
    effect: str
    role: str                # "dominant" | "supporting"
    expected: float
    actual: float
    difference: float
    matched: bool


class ExpectedComparison(_CamelModel):
    matches: List[EffectMatch] = Field(default_factory=list)
    dominant_hit: bool = False
    match_count: int = 0
    total: int = 0
    match_percentage: float = 0.0


class EffectProfile(_CamelModel):
    dominant_effect: EffectLevel
    supporting_effects: List[EffectLevel] = Field(default_factory=list)
    additional_effects: List[EffectLevel] = Field(default_factory=list)
    interactions: List[InteractionSummary] = Field(default_factory=list)
    component_scores: ComponentScores = Field(default_factory=ComponentScores)
    score_progression: ScoreProgression = Field(default_factory=ScoreProgression)
    final_scores: EffectScoreMap = Field(default_factory=dict)
    balancing_adjustments: List[BalancingAdjustment] = Field(default_factory=list)
    details: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    clear_dominant: bool = False
    calibration: bool = False


# ===================== Calibration =====================

class CalibrationEntry(_CamelModel):
    name: str
    expected_dominant: Optional[str] = None
    predicted_dominant: str
    comparison: ExpectedComparison


class CalibrationReport(_CamelModel):
    calibration_mode: bool = False
    entries: List[CalibrationEntry] = Field(default_factory=list)
    mean_match_percentage: float = 0.0
    dominant_hit_rate: float = 0.0
