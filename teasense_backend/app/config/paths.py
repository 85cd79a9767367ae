# teasense_backend/app/config/paths.py
from __future__ import annotations

"""
Filesystem locations for TeaSense.

    EFFECT_RULES_DIR       rulebooks; default <repo>/teasense_backend/app/effects/rules
    TEASENSE_CONFIG_FILE   optional YAML overrides for EffectSystemConfig

Both env vars accept absolute paths or paths relative to the repo root.
"""

import os
from pathlib import Path
from typing import Optional

_HERE = Path(__file__).resolve()


def _find_repo_root(start: Path) -> Path:
    # nearest ancestor that contains teasense_backend/app
    for parent in start.parents:
        if (parent / "teasense_backend" / "app").is_dir():
            return parent
    return start.parents[3]


REPO_ROOT: Path = _find_repo_root(_HERE)
APP_ROOT: Path = REPO_ROOT / "teasense_backend" / "app"


def _path_from_env(var: str) -> Optional[Path]:
    raw = (os.getenv(var) or "").strip().strip("\"'")
    if not raw:
        return None
    p = Path(raw).expanduser()
    return (p if p.is_absolute() else REPO_ROOT / p).resolve()


EFFECT_RULES_DIR: Path = _path_from_env("EFFECT_RULES_DIR") or (APP_ROOT / "effects" / "rules").resolve()
CONFIG_OVERRIDE_FILE: Optional[Path] = _path_from_env("TEASENSE_CONFIG_FILE")


def get_rules_dir() -> Path:
    return EFFECT_RULES_DIR

def resolve_rules_file(name: str) -> Path:
    return EFFECT_RULES_DIR / name


__all__ = [
    "REPO_ROOT", "APP_ROOT", "EFFECT_RULES_DIR", "CONFIG_OVERRIDE_FILE",
    "get_rules_dir", "resolve_rules_file",
]
