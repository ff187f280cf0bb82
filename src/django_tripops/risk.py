"""Pre-departure risk scoring.

Pure computation: environmental and readiness inputs in, a 0-100 risk
score, a categorical level and a block decision out. The caller persists
the assessment snapshot (see services.submit_risk_assessment).

Weights:
    wave height      20 points per metre
    wind speed       1 point per km/h above 20 km/h
    weather          clear 0, cloudy 5, rainy 15, stormy 30
    crew not ready   25
    equipment not complete  30

Missing wave height, wind speed or weather contribute no risk. Crew and
equipment readiness must be confirmed; an unconfirmed flag is penalized.
"""

import logging
import math
from dataclasses import asdict, dataclass, field

from django.db import models

from .conf import get_risk_block_threshold
from .exceptions import RiskInputError

logger = logging.getLogger(__name__)


class WeatherCondition(models.TextChoices):
    CLEAR = "clear", "Clear"
    CLOUDY = "cloudy", "Cloudy"
    RAINY = "rainy", "Rainy"
    STORMY = "stormy", "Stormy"


class RiskLevel(models.TextChoices):
    LOW = "low", "Low"
    MEDIUM = "medium", "Medium"
    HIGH = "high", "High"
    CRITICAL = "critical", "Critical"


WAVE_POINTS_PER_METRE = 20
WIND_SAFE_KMH = 20
WIND_POINTS_PER_KMH = 1
CREW_NOT_READY_PENALTY = 25
EQUIPMENT_INCOMPLETE_PENALTY = 30

WEATHER_SCORES = {
    WeatherCondition.CLEAR: 0,
    WeatherCondition.CLOUDY: 5,
    WeatherCondition.RAINY: 15,
    WeatherCondition.STORMY: 30,
}

# Upper bound (inclusive) of each level band
LEVEL_BANDS = [
    (20, RiskLevel.LOW),
    (50, RiskLevel.MEDIUM),
    (75, RiskLevel.HIGH),
    (100, RiskLevel.CRITICAL),
]

MAX_WAVE_HEIGHT_M = 30.0
MAX_WIND_SPEED_KMH = 400.0
MAX_ESTIMATED_WAVE_HEIGHT_M = 2.5


@dataclass(frozen=True)
class RiskInputs:
    """Inputs to the risk scorer.

    Attributes:
        wave_height: Metres, None when unknown
        wind_speed: km/h, None when unknown
        weather_condition: One of WeatherCondition values, None when unknown
        crew_ready: Guide-confirmed crew readiness; unconfirmed counts as not ready
        equipment_complete: Guide-confirmed equipment completeness; unconfirmed
            counts as incomplete
        latitude / longitude: Optional GPS fix where the assessment was made
    """

    wave_height: float | None = None
    wind_speed: float | None = None
    weather_condition: str | None = None
    crew_ready: bool = False
    equipment_complete: bool = False
    latitude: float | None = None
    longitude: float | None = None


@dataclass(frozen=True)
class RiskFactors:
    wave_score: int = 0
    wind_score: int = 0
    weather_score: int = 0
    crew_score: int = 0
    equipment_score: int = 0


@dataclass(frozen=True)
class RiskResult:
    score: int
    level: str
    blocked: bool
    threshold: int
    factors: RiskFactors = field(default_factory=RiskFactors)

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "level": str(self.level),
            "blocked": self.blocked,
            "threshold": self.threshold,
            "factors": asdict(self.factors),
        }


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def validate_risk_inputs(inputs: RiskInputs) -> list[str]:
    """
    Validate scorer inputs without clamping.

    Returns list of error messages (empty = valid).
    """
    errors = []

    if inputs.wave_height is not None:
        if not _is_number(inputs.wave_height):
            errors.append("wave_height must be a number")
        elif inputs.wave_height < 0:
            errors.append("wave_height cannot be negative")
        elif inputs.wave_height > MAX_WAVE_HEIGHT_M:
            errors.append(f"wave_height cannot exceed {MAX_WAVE_HEIGHT_M:g} m")

    if inputs.wind_speed is not None:
        if not _is_number(inputs.wind_speed):
            errors.append("wind_speed must be a number")
        elif inputs.wind_speed < 0:
            errors.append("wind_speed cannot be negative")
        elif inputs.wind_speed > MAX_WIND_SPEED_KMH:
            errors.append(f"wind_speed cannot exceed {MAX_WIND_SPEED_KMH:g} km/h")

    if inputs.weather_condition is not None and inputs.weather_condition not in WeatherCondition.values:
        errors.append(f"weather_condition '{inputs.weather_condition}' is not one of {WeatherCondition.values}")

    if not isinstance(inputs.crew_ready, bool):
        errors.append("crew_ready must be a boolean")
    if not isinstance(inputs.equipment_complete, bool):
        errors.append("equipment_complete must be a boolean")

    if inputs.latitude is not None and (not _is_number(inputs.latitude) or not -90 <= inputs.latitude <= 90):
        errors.append("latitude must be between -90 and 90")
    if inputs.longitude is not None and (not _is_number(inputs.longitude) or not -180 <= inputs.longitude <= 180):
        errors.append("longitude must be between -180 and 180")

    return errors


def get_risk_level(score: int) -> str:
    """Map a score onto its level band. Scores above 100 are critical."""
    for upper, level in LEVEL_BANDS:
        if score <= upper:
            return level
    return RiskLevel.CRITICAL


def is_blocked(score: int, threshold: int | None = None) -> bool:
    """A score strictly above the threshold blocks departure."""
    if threshold is None:
        threshold = get_risk_block_threshold()
    return score > threshold


def score_risk(inputs: RiskInputs, threshold: int | None = None) -> RiskResult:
    """
    Score pre-departure risk.

    Args:
        inputs: Environmental and readiness inputs
        threshold: Block threshold override (defaults to TRIPOPS_RISK_BLOCK_THRESHOLD)

    Returns:
        RiskResult with clamped score, level, block decision and factor breakdown

    Raises:
        RiskInputError: If any input is malformed or out of range
    """
    errors = validate_risk_inputs(inputs)
    if errors:
        raise RiskInputError(errors)

    if threshold is None:
        threshold = get_risk_block_threshold()

    wave = inputs.wave_height * WAVE_POINTS_PER_METRE if inputs.wave_height is not None else 0
    wind = 0
    if inputs.wind_speed is not None:
        wind = max(0, inputs.wind_speed - WIND_SAFE_KMH) * WIND_POINTS_PER_KMH
    weather = WEATHER_SCORES.get(inputs.weather_condition, 0) if inputs.weather_condition else 0
    crew = 0 if inputs.crew_ready else CREW_NOT_READY_PENALTY
    equipment = 0 if inputs.equipment_complete else EQUIPMENT_INCOMPLETE_PENALTY

    factors = RiskFactors(
        wave_score=_round_half_up(wave),
        wind_score=_round_half_up(wind),
        weather_score=weather,
        crew_score=crew,
        equipment_score=equipment,
    )

    raw = wave + wind + weather + crew + equipment
    score = min(100, max(0, _round_half_up(raw)))
    level = get_risk_level(score)
    blocked = is_blocked(score, threshold)

    logger.debug(
        f"Risk scored {score} ({level}), blocked={blocked}, threshold={threshold}"
    )

    return RiskResult(
        score=score,
        level=level,
        blocked=blocked,
        threshold=threshold,
        factors=factors,
    )


def estimate_wave_height(wind_speed: float) -> float:
    """Rough wave height (m) from wind speed (km/h), capped at 2.5 m."""
    if wind_speed <= 0:
        return 0.0
    return round(min(wind_speed / 20, MAX_ESTIMATED_WAVE_HEIGHT_M), 1)
