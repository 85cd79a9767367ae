# teasense_backend/app/config/__init__.py
from __future__ import annotations

# Re-export config surface expected by callers across the app.

# Env flags and rule manifest live in manifest.py
from .manifest import (
    APP_ENV,
    DEBUG_MODE,
    LOG_LEVEL,
    validate_manifest,
)

# Path helpers live in paths.py
from .paths import (
    REPO_ROOT,
    APP_ROOT,
    EFFECT_RULES_DIR,
    resolve_rules_file,
)

# Pipeline weights/thresholds live in effect_config.py
from .effect_config import (
    DEFAULT_CONFIG,
    EffectSystemConfig,
    load_config,
)

__all__ = [
    # manifest
    "APP_ENV",
    "DEBUG_MODE",
    "LOG_LEVEL",
    "validate_manifest",
    # paths
    "REPO_ROOT",
    "APP_ROOT",
    "EFFECT_RULES_DIR",
    "resolve_rules_file",
    # effect config
    "DEFAULT_CONFIG",
    "EffectSystemConfig",
    "load_config",
]
