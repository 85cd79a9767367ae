from __future__ import annotations
import os

# --- Environment flags (read at import time, so set before the package loads) ---
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("TEASENSE_LOG_LEVEL", "WARNING")

import pytest

from teasense_backend.app.config.effect_config import EffectSystemConfig
from teasense_backend.app.effects.analyzer import TeaEffectEngine
from teasense_backend.app.effects.engine.tables import default_reference_tables

# --- Shared, immutable reference data ---
@pytest.fixture(scope="session")
def tables():
    return default_reference_tables()

@pytest.fixture
def config():
    return EffectSystemConfig()

@pytest.fixture(scope="session")
def engine(tables):
    return TeaEffectEngine(EffectSystemConfig(), tables)

# --- Sample teas ---
@pytest.fixture
def gyokuro():
    """Shade-grown, steamed, theanine-rich green tea (ratio 2.0)."""
    return {
        "name": "Gyokuro",
        "type": "green",
        "caffeineLevel": 4.5,
        "lTheanineLevel": 9,
        "flavorProfile": ["umami", "marine"],
        "processingMethods": ["shade-grown", "steamed"],
    }

@pytest.fixture
def roasted_oolong():
    return {
        "name": "Roasted Tieguanyin",
        "type": "oolong",
        "caffeineLevel": 5.5,
        "lTheanineLevel": 4.5,
        "flavorProfile": ["roasted", "nutty", "woody"],
        "processingMethods": ["heavy-roast", "oxidation"],
        "geography": {"altitude": 900, "humidity": 72, "latitude": 24.9, "harvestMonth": 10},
    }

@pytest.fixture
def shou_puerh():
    return {
        "name": "Shou Puerh",
        "type": "puerh",
        "caffeineLevel": 3.5,
        "lTheanineLevel": 3.0,
        "flavorProfile": ["earthy", "woody", "leather"],
        "processingMethods": ["pile-fermented", "compressed", "aged"],
    }
