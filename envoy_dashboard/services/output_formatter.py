# envoy_dashboard/services/output_formatter.py

from __future__ import annotations

import json
from typing import Optional

from envoy_dashboard.models.snapshot import DashboardSnapshot
from envoy_dashboard.models.solar import SolarSnapshot
from envoy_dashboard.models.weather import WeatherSnapshot

SECTIONS = ("weather", "solar")

TEMPERATURE_UNITS = {"imperial": "F", "metric": "C", "standard": "K"}


def snapshot_payload(snapshot: DashboardSnapshot, sections=SECTIONS) -> dict:
    payload = snapshot.as_dict()
    for name in SECTIONS:
        if name not in sections:
            payload.pop(name, None)
    return payload


def emit_json(snapshot: DashboardSnapshot, sections=SECTIONS) -> None:
    print(json.dumps(snapshot_payload(snapshot, sections), indent=2))


def format_weather_human(weather: Optional[WeatherSnapshot], units: str = "imperial") -> list[str]:
    if weather is None:
        return ["Weather: unavailable"]
    temp_unit = TEMPERATURE_UNITS.get(units, "F")
    return [
        f"Weather @ {weather.last_updated.isoformat()}: {weather.description} ({weather.icon})",
        f"  temp={weather.temperature:.1f}{temp_unit}  clouds={weather.clouds:.0f}%  "
        f"rain={weather.rain:.1f}mm  wind={weather.wind:.1f}mph",
    ]


def format_solar_human(solar: Optional[SolarSnapshot]) -> list[str]:
    if solar is None:
        return ["Solar: unavailable"]
    lines = [
        f"Solar @ {solar.last_updated.isoformat()}",
        f"  producing={solar.producing:.2f}kW  consuming={solar.consuming:.2f}kW  "
        f"importing={solar.importing:.2f}kW  exporting={solar.exporting:.2f}kW",
        f"  produced={solar.produced:.2f}kWh  consumed={solar.consumed:.2f}kWh  "
        f"exported={solar.exported:.2f}kWh  peak={solar.peak:.2f}kW",
    ]
    for inv in solar.inverters:
        serial = inv.serial or "?"
        lines.append(f"  [{serial}] last={inv.last_report_watts:.0f}W  max={inv.max_report_watts:.0f}W")
    return lines


def emit_human(snapshot: DashboardSnapshot, sections=SECTIONS, units: str = "imperial") -> None:
    lines: list[str] = []
    if "weather" in sections:
        lines.extend(format_weather_human(snapshot.weather, units))
    if "solar" in sections:
        lines.extend(format_solar_human(snapshot.solar))
    for line in lines:
        print(line)
