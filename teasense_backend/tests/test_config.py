# tests/test_config.py
import logging
import textwrap

import pytest

from teasense_backend.app.config import DEFAULT_CONFIG, EffectSystemConfig, load_config, validate_manifest

# Purpose:
# Dotted-path config access, snapshots, YAML overrides and the rule manifest.

def test_get_reads_defaults_and_missing_paths():
    cfg = EffectSystemConfig()
    assert cfg.get("component_weights.compounds") == 0.30
    assert cfg.get("thresholds.compound_ratios.balanced_range") == [1.2, 1.8]
    assert cfg.get("nope") is None
    assert cfg.get("component_weights.nope", 1.5) == 1.5
    # walking through a scalar is a miss, not an error
    assert cfg.get("interaction_strength_factor.deeper", "x") == "x"

def test_falsy_values_are_returned_not_defaulted():
    cfg = EffectSystemConfig({"normalize_scores": False})
    assert cfg.get("normalize_scores", True) is False

def test_set_creates_intermediate_mappings():
    cfg = EffectSystemConfig()
    cfg.set("experimental.sigmoid.midpoint", 4.0)
    assert cfg.get("experimental.sigmoid.midpoint") == 4.0
    cfg.set("component_weights.flavors", 0.2)
    assert cfg.get("component_weights.flavors") == 0.2
    # siblings survive
    assert cfg.get("component_weights.compounds") == 0.30

def test_defaults_are_not_shared_between_instances():
    a = EffectSystemConfig()
    a.set("thresholds.dominant_effect_threshold", 9.0)
    assert EffectSystemConfig().get("thresholds.dominant_effect_threshold") == 7.0
    assert DEFAULT_CONFIG["thresholds"]["dominant_effect_threshold"] == 7.0

def test_snapshot_is_isolated_from_later_writes():
    cfg = EffectSystemConfig()
    snap = cfg.snapshot()
    cfg.set("interaction_strength_factor", 0.1)
    assert snap.get("interaction_strength_factor") == 0.8
    assert cfg.get_all()["interaction_strength_factor"] == 0.1

def test_update_deep_merges():
    cfg = EffectSystemConfig()
    cfg.update({"thresholds": {"supporting_effect_threshold": 3.0}})
    assert cfg.get("thresholds.supporting_effect_threshold") == 3.0
    assert cfg.get("thresholds.dominant_effect_threshold") == 7.0

def test_component_weights_view_and_sum_warning(caplog):
    cfg = EffectSystemConfig()
    w = cfg.component_weights()
    assert w.total() == pytest.approx(1.0)

    cfg.set("component_weights.compounds", 0.9)
    with caplog.at_level(logging.WARNING, logger="teasense.config"):
        cfg.component_weights()
    assert any("component weights sum" in r.message for r in caplog.records)

def test_env_flags_reach_manifest_and_package_logger():
    import os
    from teasense_backend.app.config import manifest
    from teasense_backend.app.effects import library_loader  # noqa: F401  (attaches the package handler)

    assert manifest.APP_ENV == os.environ["APP_ENV"]
    assert manifest.LOG_LEVEL == os.environ["TEASENSE_LOG_LEVEL"].upper()
    assert logging.getLogger("teasense").level == getattr(logging, manifest.LOG_LEVEL)

def test_load_config_from_yaml(tmp_path):
    yml = textwrap.dedent("""
    interaction_strength_factor: 0.5
    normalization:
      strategy: sigmoid
    """).strip()
    p = tmp_path / "overrides.yaml"
    p.write_text(yml, encoding="utf-8")
    cfg = load_config(p)
    assert cfg.get("interaction_strength_factor") == 0.5
    assert cfg.get("normalization.strategy") == "sigmoid"
    assert cfg.get("normalization.dominant_gap") == 0.3

def test_load_config_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.yaml")

def test_load_config_rejects_non_mapping(tmp_path):
    p = tmp_path / "list.yaml"
    p.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(p)

def test_manifest_reports_all_required_rules_present():
    m = validate_manifest()
    assert m["status"] == "ok"
    assert m["missing_required"] == []
    assert "balancing_rules.yaml" in m["required"]
