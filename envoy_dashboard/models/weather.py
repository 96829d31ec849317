from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict


@dataclass
class WeatherSnapshot:
    temperature: float
    rain: float          # mm over the last hour
    clouds: float        # cover, percent
    wind: float
    description: str
    icon: str
    last_updated: datetime

    def as_dict(self) -> Dict[str, Any]:
        return {
            "temperature": self.temperature,
            "rain": self.rain,
            "clouds": self.clouds,
            "wind": self.wind,
            "description": self.description,
            "icon": self.icon,
            "lastUpdated": self.last_updated.isoformat(),
        }
