# teasense_backend/app/config/manifest.py
from __future__ import annotations

import os
from typing import Dict, List

# ---- Environment mode ----
APP_ENV: str = os.getenv("APP_ENV", "development")
DEBUG_MODE: bool = os.getenv("DEBUG", "0") not in ("", "0", "false", "False")
LOG_LEVEL: str = (os.getenv("TEASENSE_LOG_LEVEL") or ("DEBUG" if DEBUG_MODE else "INFO")).upper()

# ---- Rulebook validation manifest ----
RULES_REQUIRED: List[str] = [
    "effects.yaml",
    "tea_types.yaml",
    "flavor_influences.yaml",
    "processing_influences.yaml",
    "effect_interactions.json",
    "geography.yaml",
    "balancing_rules.yaml",
]

RULES_OPTIONAL: List[str] = [
    "reference_teas.yaml",
]

def validate_manifest() -> Dict[str, object]:
    # Purpose:
    # Report which rule files are present. Imported lazily so the config
    # package stays importable before the loader is.
    from teasense_backend.app.effects.library_loader import has_rules_file, inventory

    missing_required: List[str] = [n for n in RULES_REQUIRED if not has_rules_file(n)]
    missing_optional: List[str] = [n for n in RULES_OPTIONAL if not has_rules_file(n)]

    status = "ok" if not missing_required else "missing_required"
    return {
        "status": status,
        "inventory": inventory(),
        "required": RULES_REQUIRED,
        "optional": RULES_OPTIONAL,
        "missing_required": missing_required,
        "missing_optional": missing_optional,
    }


__all__ = ["APP_ENV", "DEBUG_MODE", "LOG_LEVEL", "RULES_REQUIRED", "RULES_OPTIONAL", "validate_manifest"]
