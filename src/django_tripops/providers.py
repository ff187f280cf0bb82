"""Collaborator providers for django-tripops.

Readiness and completion consult external collaborators through these
providers: crew certification lookup, admin approval lookup, logistics
handover lookup and weather/marine conditions. Swap any of them with the
TRIPOPS_*_PROVIDER settings (see conf.py).

Providers receive the per-call timeout at construction and raise
UpstreamUnavailable when the collaborator fails or times out.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx

from .exceptions import UpstreamUnavailable
from .risk import WeatherCondition, estimate_wave_height

logger = logging.getLogger(__name__)


@dataclass
class ProviderCheck:
    """Pass/fail answer from a collaborator, with a reason when failing."""

    passed: bool
    detail: str = ""


@dataclass
class HandoverRecord:
    handover_type: str
    status: str
    verified_by_both: bool


@dataclass
class WeatherConditions:
    """Suggested risk inputs from the weather provider. Manual entry always wins."""

    wind_speed: float | None
    wave_height: float | None
    weather_condition: str | None
    wave_height_estimated: bool = False
    source: str = ""

    def to_dict(self) -> dict:
        return {
            "wind_speed": self.wind_speed,
            "wave_height": self.wave_height,
            "weather_condition": self.weather_condition,
            "wave_height_estimated": self.wave_height_estimated,
            "source": self.source,
        }


class BaseProvider(ABC):
    name = "provider"

    def __init__(self, timeout: float = 5.0):
        self.timeout = timeout


class BaseCertificationProvider(BaseProvider):
    name = "certification"

    @abstractmethod
    def check_certifications(self, trip) -> ProviderCheck:
        """Are all confirmed crew certifications valid on the trip date?"""
        pass


class BaseApprovalProvider(BaseProvider):
    name = "approval"

    @abstractmethod
    def check_approval(self, trip) -> ProviderCheck:
        """Has an administrator approved the trip?"""
        pass


class BaseHandoverProvider(BaseProvider):
    name = "handover"

    @abstractmethod
    def get_handovers(self, trip) -> list[HandoverRecord]:
        """All logistics handovers for the trip, newest first."""
        pass


class BaseWeatherProvider(BaseProvider):
    name = "weather"

    @abstractmethod
    def get_conditions(self, latitude: float, longitude: float) -> WeatherConditions:
        """Current conditions at a location."""
        pass


class CrewCertificationProvider(BaseCertificationProvider):
    """Checks GuideCertification rows for every confirmed crew member."""

    def check_certifications(self, trip) -> ProviderCheck:
        from .models import CrewAssignment, GuideCertification

        guide_ids = list(
            trip.crew.filter(status=CrewAssignment.Status.CONFIRMED)
            .values_list("guide_id", flat=True)
        )
        if not guide_ids:
            return ProviderCheck(False, "No confirmed crew to verify")

        certified = {
            cert.guide_id
            for cert in GuideCertification.objects.filter(guide_id__in=guide_ids)
            if cert.is_valid_on(trip.trip_date)
        }
        missing = [guide_id for guide_id in guide_ids if guide_id not in certified]
        if missing:
            return ProviderCheck(
                False,
                f"{len(missing)} crew member(s) without a valid certification",
            )
        return ProviderCheck(True)


class TripApprovalProvider(BaseApprovalProvider):
    """Approval is recorded on the trip itself (services.approve_trip)."""

    def check_approval(self, trip) -> ProviderCheck:
        if trip.approved_at is None:
            return ProviderCheck(False, "Trip not approved by admin")
        return ProviderCheck(True)


class HandoverRecordProvider(BaseHandoverProvider):
    """Reads LogisticsHandover rows."""

    def get_handovers(self, trip) -> list[HandoverRecord]:
        return [
            HandoverRecord(
                handover_type=handover.handover_type,
                status=handover.status,
                verified_by_both=handover.verified_by_both,
            )
            for handover in trip.handovers.order_by("-created_at", "-id")
        ]


def weather_code_to_condition(code: int | None) -> str | None:
    """Collapse a WMO weather code onto WeatherCondition."""
    if code is None:
        return None
    if code <= 1:
        return WeatherCondition.CLEAR
    if code in (2, 3, 45, 48):
        return WeatherCondition.CLOUDY
    if code >= 95:
        return WeatherCondition.STORMY
    return WeatherCondition.RAINY


class OpenMeteoWeatherProvider(BaseWeatherProvider):
    """
    Open-Meteo forecast and marine APIs over httpx.

    Wind comes from the forecast API in km/h. Wave height comes from the
    marine API; when it has no value for the location (inland, or an
    error) the height is estimated from wind speed.
    """

    FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
    MARINE_URL = "https://marine-api.open-meteo.com/v1/marine"

    def __init__(self, timeout: float = 5.0, transport: httpx.BaseTransport | None = None):
        super().__init__(timeout=timeout)
        self.client = httpx.Client(timeout=timeout, transport=transport)

    def _get_json(self, url: str, params: dict) -> dict:
        try:
            response = self.client.get(url, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as e:
            raise UpstreamUnavailable(self.name, f"timed out after {self.timeout}s") from e
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamUnavailable(self.name, str(e)) from e

    def _get_wave_height(self, latitude: float, longitude: float) -> float | None:
        try:
            data = self._get_json(
                self.MARINE_URL,
                {"latitude": latitude, "longitude": longitude, "current": "wave_height"},
            )
        except UpstreamUnavailable as e:
            logger.warning(f"Marine conditions unavailable, estimating wave height: {e}")
            return None
        return data.get("current", {}).get("wave_height")

    def get_conditions(self, latitude: float, longitude: float) -> WeatherConditions:
        data = self._get_json(
            self.FORECAST_URL,
            {
                "latitude": latitude,
                "longitude": longitude,
                "current": "wind_speed_10m,weather_code",
                "wind_speed_unit": "kmh",
            },
        )
        current = data.get("current", {})
        wind_speed = current.get("wind_speed_10m")
        condition = weather_code_to_condition(current.get("weather_code"))

        wave_height = self._get_wave_height(latitude, longitude)
        estimated = False
        if wave_height is None and wind_speed is not None:
            wave_height = estimate_wave_height(wind_speed)
            estimated = True

        return WeatherConditions(
            wind_speed=wind_speed,
            wave_height=wave_height,
            weather_condition=condition,
            wave_height_estimated=estimated,
            source="open-meteo",
        )
