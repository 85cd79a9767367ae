# tests/test_services.py
import pytest

from teasense_backend.app.config.effect_config import EffectSystemConfig
from teasense_backend.app.effects.analyzer import TeaEffectEngine
from teasense_backend.app.schemas import EffectLevel, EffectProfile, ExpectedEffects
from teasense_backend.app.services import analyze_batch, calibration_report, compare_with_expected

# Purpose:
# Batch analysis over a shared engine and the calibration helpers.

def test_batch_keeps_order_and_isolates_bad_samples(engine, gyokuro, roasted_oolong, shou_puerh):
    samples = [gyokuro, "not a tea", roasted_oolong, shou_puerh] * 3
    results = analyze_batch(samples, engine, max_workers=4)
    assert len(results) == len(samples)
    for sample, profile in zip(samples, results):
        assert profile.model_dump() == engine.calculate(sample).model_dump()
    assert results[1].dominant_effect.id == "balanced"

def test_batch_edge_sizes(engine, gyokuro):
    assert analyze_batch([], engine) == []
    assert len(analyze_batch([gyokuro], engine, max_workers=8)) == 1
    assert len(analyze_batch(iter([gyokuro, gyokuro]), engine, max_workers=1)) == 2

def test_compare_with_expected(tables):
    profile = EffectProfile(
        dominant_effect=EffectLevel(id="soothing", name="Soothing", level=9.0),
        final_scores={"soothing": 9.0, "peaceful": 7.0, "clarifying": 2.0},
    )
    expected = ExpectedEffects(dominant="calming", supporting=["serene", "focused"])
    cmp = compare_with_expected(profile, expected, tables.vocabulary)
    assert cmp.dominant_hit
    assert [m.effect for m in cmp.matches] == ["soothing", "peaceful", "clarifying"]
    assert [m.matched for m in cmp.matches] == [True, True, False]
    assert cmp.matches[2].difference == pytest.approx(2.0 - 7.5)
    assert (cmp.match_count, cmp.total) == (2, 3)
    assert cmp.match_percentage == pytest.approx(200 / 3)

def test_compare_defaults_to_shipped_vocabulary():
    profile = EffectProfile(
        dominant_effect=EffectLevel(id="revitalizing", name="Revitalizing", level=8.0),
        final_scores={"revitalizing": 8.0},
    )
    cmp = compare_with_expected(profile, ExpectedEffects(dominant="energizing"))
    assert cmp.dominant_hit and cmp.match_count == 1

def test_compare_with_nothing_expected(tables):
    profile = EffectProfile(dominant_effect=EffectLevel(id="soothing", name="Soothing", level=9.0))
    cmp = compare_with_expected(profile, ExpectedEffects(), tables.vocabulary)
    assert cmp.total == 0 and cmp.match_percentage == 0.0 and not cmp.dominant_hit

def test_calibration_report_over_reference_teas(engine):
    report = calibration_report(engine)
    assert report.calibration_mode is False
    assert len(report.entries) == 5
    assert 0.0 <= report.dominant_hit_rate <= 1.0
    assert 0.0 <= report.mean_match_percentage <= 100.0

def test_calibration_mode_hits_every_expected_dominant(tables):
    eng = TeaEffectEngine(EffectSystemConfig(), tables, calibration=True)
    report = calibration_report(eng)
    assert report.calibration_mode is True
    assert report.dominant_hit_rate == 1.0
    assert all(e.predicted_dominant == e.expected_dominant for e in report.entries)

def test_calibration_report_skips_teas_without_expectations(engine, gyokuro):
    teas = [gyokuro, {**gyokuro, "expectedEffects": {"dominant": "soothing"}}, "junk"]
    report = calibration_report(engine, teas)
    assert len(report.entries) == 1
    assert report.entries[0].name == "Gyokuro"
