from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional
import math

import requests

from envoy_dashboard.config import WeatherConfig
from envoy_dashboard.models.weather import WeatherSnapshot
from envoy_dashboard.services.transport import build_weather_session
from envoy_dashboard.util.coerce import coerce_number, coerce_string


CURRENT_WEATHER_PATH = "/data/2.5/weather"

MPS_TO_MPH = 2.23694
DEFAULT_TEMPERATURE = 37
DEFAULT_DESCRIPTION = "Current conditions"
DEFAULT_ICON = "01d"


def _first_condition(payload: dict) -> dict:
    conditions = payload.get("weather")
    if isinstance(conditions, list) and conditions and isinstance(conditions[0], dict):
        return conditions[0]
    return {}


def _section(payload: dict, key: str) -> dict:
    value = payload.get(key)
    return value if isinstance(value, dict) else {}


def _wind_speed(raw: Any, units: str) -> Any:
    speed = coerce_number(raw, 0)
    if units != "imperial":
        speed = speed * MPS_TO_MPH
    if isinstance(speed, (int, float)) and math.isfinite(speed):
        return round(speed, 1)
    return speed


def normalize_weather(
    payload: Any,
    units: str,
    captured_at: datetime,
    default_temperature: float = DEFAULT_TEMPERATURE,
) -> Optional[WeatherSnapshot]:
    """Map an OpenWeatherMap current-conditions body onto a WeatherSnapshot.

    Returns None when the payload is unavailable. Individual missing fields
    fall back to fixed defaults; the upstream ``dt`` is ignored in favour of
    ``captured_at``.
    """
    if not isinstance(payload, dict):
        return None

    condition = _first_condition(payload)

    return WeatherSnapshot(
        temperature=coerce_number(_section(payload, "main").get("temp"), default_temperature),
        rain=coerce_number(_section(payload, "rain").get("1h"), 0),
        clouds=coerce_number(_section(payload, "clouds").get("all"), 0),
        wind=_wind_speed(_section(payload, "wind").get("speed"), units),
        description=coerce_string(condition.get("description"), DEFAULT_DESCRIPTION),
        icon=coerce_string(condition.get("icon"), DEFAULT_ICON),
        last_updated=captured_at,
    )


@dataclass
class WeatherClient:
    cfg: WeatherConfig
    log: Any
    session: Optional[requests.Session] = None

    def __post_init__(self):
        if self.session is None:
            self.session = build_weather_session()

    @property
    def enabled(self) -> bool:
        return bool(self.cfg.api_key and self.cfg.latitude is not None and self.cfg.longitude is not None)

    def fetch_current(self, timeout: Optional[float] = None) -> Optional[Any]:
        if not self.cfg.api_key:
            self.log.debug("Weather API key not configured; skipping weather fetch.")
            return None
        if self.cfg.latitude is None or self.cfg.longitude is None:
            self.log.warning("Weather API key set but no latitude/longitude configured; skipping weather fetch.")
            return None

        params = {
            "lat": self.cfg.latitude,
            "lon": self.cfg.longitude,
            "appid": self.cfg.api_key,
            "units": self.cfg.units,
        }
        url = f"{self.cfg.base_url.rstrip('/')}{CURRENT_WEATHER_PATH}"

        limit = self.cfg.timeout if timeout is None else min(self.cfg.timeout, timeout)
        try:
            resp = self.session.get(url, params=params, timeout=limit)
        except Exception as exc:
            self.log.warning("Weather fetch failed: %s", exc)
            return None

        if resp.status_code != 200:
            self.log.warning("Weather service returned HTTP %s", resp.status_code)
            return None

        try:
            data = resp.json()
        except ValueError:
            self.log.warning("Weather service returned non-JSON payload")
            return None

        if not isinstance(data, dict):
            self.log.warning("Weather service response was unexpected %s payload", type(data).__name__)
            return None

        return data

    def fetch(self, captured_at: datetime) -> Optional[WeatherSnapshot]:
        return normalize_weather(
            self.fetch_current(),
            self.cfg.units,
            captured_at,
            default_temperature=self.cfg.default_temperature,
        )
