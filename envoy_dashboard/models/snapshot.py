from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from envoy_dashboard.models.solar import SolarSnapshot
from envoy_dashboard.models.weather import WeatherSnapshot


@dataclass
class RawPayloads:
    """Parsed JSON bodies from one collection pass; None marks an unavailable source."""

    production: Any = None
    inverters: Any = None
    livedata: Any = None
    pdm_energy: Any = None
    weather: Any = None

    def unavailable(self) -> List[str]:
        return [
            name
            for name in ("production", "inverters", "livedata", "pdm_energy", "weather")
            if getattr(self, name) is None
        ]


@dataclass
class DashboardSnapshot:
    weather: Optional[WeatherSnapshot]
    solar: Optional[SolarSnapshot]
    last_updated: datetime

    def as_dict(self) -> Dict[str, Any]:
        return {
            "weather": self.weather.as_dict() if self.weather else None,
            "solar": self.solar.as_dict() if self.solar else None,
            "lastUpdated": self.last_updated.isoformat(),
        }
