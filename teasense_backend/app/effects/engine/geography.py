# teasense_backend/app/effects/engine/geography.py
from __future__ import annotations

from typing import Dict, List, Optional

from teasense_backend.app.schemas import Geography, TeaSample
from .models import ClimateZone, GeoBand, Season
from .scoring import ComponentResult, add_into
from .tables import ReferenceTables

SOUTHERN_SHIFT_MONTHS = 6


def band_for(value: Optional[float], bands: List[GeoBand]) -> Optional[GeoBand]:
    # Purpose: first band whose `above` is strictly exceeded; `above=None` is the fallback.
    if value is None:
        return None
    for b in bands:
        if b.above is None or value > b.above:
            return b
    return None


def zone_for(latitude: Optional[float], zones: List[ClimateZone]) -> Optional[ClimateZone]:
    # Purpose: first zone with |latitude| strictly below its bound; `below=None` is the fallback.
    if latitude is None:
        return None
    lat = abs(latitude)
    for z in zones:
        if z.below is None or lat < z.below:
            return z
    return None


def effective_month(month: Optional[int], latitude: Optional[float]) -> Optional[int]:
    if month is None or not 1 <= month <= 12:
        return None
    if latitude is not None and latitude < 0:
        return (month - 1 + SOUTHERN_SHIFT_MONTHS) % 12 + 1
    return month


def season_for(month: Optional[int], seasons: Dict[str, Season]) -> Optional[Season]:
    if month is None:
        return None
    for s in seasons.values():
        if month in s.months:
            return s
    return None


class GeographyCalculator:
    # Purpose:
    # Provenance contribution: altitude band, humidity band, latitude climate
    # zone and harvest season each add fixed deltas scaled by a factor weight.
    # A factor with no input adds nothing; no geography at all gives {}.
    def __init__(self, tables: ReferenceTables):
        self.geo = tables.geography

    def calculate(self, tea: TeaSample) -> ComponentResult:
        g: Optional[Geography] = tea.geography
        if g is None:
            return ComponentResult(scores={}, details={"description": "No geographical information"})

        w = self.geo.factor_weights
        altitude = band_for(g.altitude, self.geo.altitude_bands)
        humidity = band_for(g.humidity, self.geo.humidity_bands)
        zone = zone_for(g.latitude, self.geo.climate_zones)
        season = season_for(effective_month(g.harvest_month, g.latitude), self.geo.seasons)

        scores: Dict[str, float] = {}
        if altitude is not None:
            add_into(scores, altitude.effects, w.get("altitude", 0.0))
        if humidity is not None:
            add_into(scores, humidity.effects, w.get("humidity", 0.0))
        if zone is not None:
            add_into(scores, zone.effects, w.get("climate", 0.0))
        if season is not None:
            add_into(scores, season.effects, w.get("season", 0.0))

        parts: List[str] = []
        if zone is not None:
            parts.append(f"{zone.name} climate")
        if altitude is not None:
            parts.append(f"{altitude.name} altitude")
        if season is not None:
            parts.append(f"{season.label.lower()} harvest")

        return ComponentResult(
            scores=scores,
            details={
                "altitude_band": altitude.name if altitude else None,
                "humidity_band": humidity.name if humidity else None,
                "climate_zone": zone.name if zone else None,
                "season": season.label if season else None,
                "description": ", ".join(parts).capitalize() if parts else "No geographical information",
            },
        )
