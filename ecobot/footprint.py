"""Travel carbon footprint estimates."""

import math
from dataclasses import dataclass, field
from typing import Dict, List

import structlog

from .chat.errors import InvalidInputError


logger = structlog.get_logger()


@dataclass(frozen=True)
class TransportMode:
    value: str
    label: str
    factor: float  # kg CO2 per km


TRANSPORT_MODES: Dict[str, TransportMode] = {
    "flight": TransportMode("flight", "Flight", 0.15),
    "train": TransportMode("train", "Train", 0.04),
    "car": TransportMode("car", "Car", 0.12),
}

ANNUAL_FOOTPRINT_KG = 4000.0

BASE_SUGGESTIONS = [
    "Offset your carbon footprint through verified carbon offset programs",
    "Choose eco-friendly accommodations with green certifications",
    "Support local businesses and communities at your destination",
]

MODE_SUGGESTIONS: Dict[str, List[str]] = {
    "flight": [
        "Consider train travel for shorter distances (under 1000km)",
        "Choose direct flights when flying is necessary",
        "Pack light to reduce fuel consumption",
        *BASE_SUGGESTIONS,
    ],
    "car": [
        "Consider carpooling or ride-sharing to reduce per-person emissions",
        "Choose electric or hybrid vehicles when available",
        "Combine multiple destinations in one trip",
        *BASE_SUGGESTIONS,
    ],
    "train": [
        "Great choice! Trains are one of the most eco-friendly travel options",
        "Look for trains powered by renewable energy",
        *BASE_SUGGESTIONS[1:],
    ],
}


@dataclass
class FootprintEstimate:
    """Emissions for one trip."""

    mode: str
    distance_km: float
    emissions_kg: float
    level: str
    annual_share_percent: float
    suggestions: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "distance_km": self.distance_km,
            "emissions_kg": self.emissions_kg,
            "level": self.level,
            "annual_share_percent": self.annual_share_percent,
            "suggestions": list(self.suggestions),
        }


def emission_level(emissions_kg: float) -> str:
    if emissions_kg < 50:
        return "Low"
    if emissions_kg < 150:
        return "Medium"
    return "High"


def estimate_footprint(mode: str, distance_km: float) -> FootprintEstimate:
    """
    Estimate trip emissions for a transport mode and distance.

    Raises:
        InvalidInputError: unknown mode, or a distance that is not a positive finite number
    """
    transport = TRANSPORT_MODES.get((mode or "").strip().lower())
    if transport is None:
        raise InvalidInputError(f"Unknown transport mode: {mode}")
    if distance_km is None or not math.isfinite(distance_km) or distance_km <= 0:
        raise InvalidInputError(f"Distance must be positive, got {distance_km}")

    emissions = round(distance_km * transport.factor, 2)
    estimate = FootprintEstimate(
        mode=transport.label,
        distance_km=distance_km,
        emissions_kg=emissions,
        level=emission_level(emissions),
        annual_share_percent=round(emissions / ANNUAL_FOOTPRINT_KG * 100, 1),
        suggestions=list(MODE_SUGGESTIONS.get(transport.value, BASE_SUGGESTIONS)),
    )
    logger.debug(
        "Estimated footprint",
        mode=transport.value,
        distance_km=distance_km,
        emissions_kg=emissions,
    )
    return estimate
