# tests/test_effect_engine.py
import pytest

from teasense_backend.app.config.effect_config import EffectSystemConfig
from teasense_backend.app.effects.analyzer import TeaEffectEngine, calculate_effects
from teasense_backend.app.effects.engine.aggregator import FOLD_ORDER
from teasense_backend.app.schemas import TeaSample

# Purpose:
# End-to-end behaviour of TeaEffectEngine.calculate(): bounds, determinism,
# explainability trace, malformed input and the opt-in calibration mode.

def _all_levels(profile):
    return [profile.dominant_effect] + profile.supporting_effects + profile.additional_effects

def test_gyokuro_profile_is_calm_and_clear(engine, gyokuro):
    p = engine.calculate(gyokuro)
    assert p.dominant_effect.id in {"soothing", "clarifying"}
    assert p.clear_dominant
    assert p.details["compounds"]["ratio"] == pytest.approx(2.0)
    assert p.component_scores.compounds["peaceful"] >= 7.2
    assert p.calibration is False

@pytest.mark.parametrize("fixture_name", ["gyokuro", "roasted_oolong", "shou_puerh"])
def test_final_scores_and_levels_stay_in_range(engine, request, fixture_name):
    p = engine.calculate(request.getfixturevalue(fixture_name))
    assert all(0.0 <= v <= 10.0 for v in p.final_scores.values())
    assert all(0.0 <= e.level <= 10.0 for e in _all_levels(p))
    assert all(e.level >= 3.5 for e in p.supporting_effects)
    assert all(e.level >= 4.0 for e in p.additional_effects)
    ids = [e.id for e in _all_levels(p)]
    assert len(ids) == len(set(ids))

def test_tiers_follow_final_ranking(engine, roasted_oolong):
    p = engine.calculate(roasted_oolong)
    ranked = sorted(p.final_scores.items(), key=lambda kv: (-kv[1], kv[0]))
    assert p.dominant_effect.id == ranked[0][0]
    assert p.dominant_effect.level == round(ranked[0][1], 1)

def test_calculation_is_deterministic(tables, gyokuro):
    a = TeaEffectEngine(EffectSystemConfig(), tables).calculate(gyokuro)
    b = TeaEffectEngine(EffectSystemConfig(), tables).calculate(dict(reversed(list(gyokuro.items()))))
    assert a.model_dump() == b.model_dump()

def test_progression_matches_component_scores(engine, roasted_oolong):
    p = engine.calculate(roasted_oolong)
    comps = p.component_scores
    for eid, value in p.score_progression.with_compound_scores.items():
        expected = 0.0
        for component, _ in FOLD_ORDER:
            expected += getattr(engine.weights, component) * getattr(comps, component).get(eid, 0.0)
        assert value == expected

def test_significant_interactions_come_from_top_effects(engine, gyokuro):
    p = engine.calculate(gyokuro)
    ranked = sorted(p.final_scores.items(), key=lambda kv: (-kv[1], kv[0]))
    top = {eid for eid, s in ranked if s >= 3.5}
    top = {eid for eid, _ in ranked[:3]} & top
    for i in p.interactions:
        assert set(i.effects) <= top

def test_camel_case_output(engine, gyokuro):
    out = engine.calculate(gyokuro).model_dump(by_alias=True)
    assert {"dominantEffect", "supportingEffects", "finalScores", "scoreProgression"} <= set(out)
    assert "teaType" in out["componentScores"]
    assert "withCompoundScores" in out["scoreProgression"]

@pytest.mark.parametrize("bad", [None, 42, "sencha", ["green"], {"caffeineLevel": "lots"}])
def test_malformed_input_returns_balanced(engine, bad):
    p = engine.calculate(bad)
    assert p.dominant_effect.id == "balanced"
    assert p.dominant_effect.level == 5.0
    assert p.supporting_effects == [] and p.final_scores == {}

def test_out_of_range_geography_is_clamped_not_rejected(engine):
    p = engine.calculate({"caffeineLevel": 4.5, "lTheanineLevel": 9, "geography": {"humidity": 100.5}})
    assert p.dominant_effect.id != "balanced"
    assert p.final_scores
    assert p.details["geography"]["humidity_band"] == "very_humid"

    polar = engine.calculate({"type": "black", "geography": {"latitude": 95, "longitude": -200}})
    assert polar.details["geography"]["climate_zone"] == "subpolar"
    g = TeaSample.model_validate({"geography": {"latitude": 95, "longitude": -200, "humidity": -3}}).geography
    assert (g.latitude, g.longitude, g.humidity) == (90.0, -180.0, 0.0)

@pytest.mark.parametrize("month, season", [(4.5, None), (4.0, "Early Spring"), (13, None)])
def test_harvest_month_must_be_whole(engine, month, season):
    p = engine.calculate({"type": "green", "geography": {"harvestMonth": month}})
    assert p.final_scores
    assert p.details["geography"]["season"] == season

def test_empty_sample_uses_defaults(engine, tables):
    p = engine.calculate({})
    assert p.details["tea_type"]["resolved_type"] == "green"
    assert p.dominant_effect.id in tables.vocabulary.allowed

def test_scalar_lists_are_accepted(engine):
    p = engine.calculate({"type": "green", "flavorProfile": "umami", "processingMethods": None})
    assert p.details["flavors"]["dominant_flavors"] == ["umami"]

def test_engine_keeps_its_config_snapshot(tables, gyokuro):
    cfg = EffectSystemConfig()
    eng = TeaEffectEngine(cfg, tables)
    before = eng.calculate(gyokuro)
    cfg.set("component_weights.compounds", 0.9)
    assert eng.weights.compounds == 0.30
    assert eng.calculate(gyokuro).model_dump() == before.model_dump()

def test_normalisation_strategies(tables, gyokuro):
    raw = TeaEffectEngine(EffectSystemConfig({"normalize_scores": False}), tables).calculate(gyokuro)
    assert all(0.0 <= v <= 10.0 for v in raw.final_scores.values())
    sig = TeaEffectEngine(EffectSystemConfig({"normalization": {"strategy": "sigmoid"}}), tables).calculate(gyokuro)
    assert all(0.0 <= v <= 10.0 for v in sig.final_scores.values())
    with pytest.raises(ValueError):
        TeaEffectEngine(EffectSystemConfig({"normalization": {"strategy": "zscore"}}), tables)

def test_expected_effects_ignored_by_default(engine, gyokuro):
    plain = engine.calculate(gyokuro)
    tagged = engine.calculate({**gyokuro, "expectedEffects": {"dominant": "renewing"}})
    assert tagged.final_scores == plain.final_scores

def test_calibration_mode_reboosts_expected_dominant(tables, gyokuro):
    eng = TeaEffectEngine(EffectSystemConfig(), tables, calibration=True)
    p = eng.calculate({**gyokuro, "expectedEffects": {"dominant": "Refreshing", "supporting": ["nourishing"]}})
    assert p.calibration is True
    assert p.dominant_effect.id == "renewing"
    assert p.component_scores.tea_type["renewing"] == 9.5
    assert p.component_scores.tea_type["restorative"] == 7.5

def test_calculate_effects_accepts_models(engine, gyokuro):
    sample = TeaSample.model_validate(gyokuro)
    assert calculate_effects(sample, engine).model_dump() == engine.calculate(gyokuro).model_dump()
