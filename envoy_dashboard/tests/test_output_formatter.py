# envoy_dashboard/tests/test_output_formatter.py

import json
from datetime import datetime, timezone

from envoy_dashboard.models.snapshot import DashboardSnapshot
from envoy_dashboard.services.output_formatter import (
    emit_human,
    emit_json,
    format_solar_human,
    format_weather_human,
)
from envoy_dashboard.services.solar_reconciler import reconcile_solar
from envoy_dashboard.services.weather_client import normalize_weather
from envoy_dashboard.tests.payloads import INVERTERS_JSON, LIVEDATA_JSON, PDM_ENERGY_JSON, PRODUCTION_JSON, WEATHER_JSON


NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _snapshot(with_weather=True, with_solar=True):
    return DashboardSnapshot(
        weather=normalize_weather(WEATHER_JSON, "imperial", NOW) if with_weather else None,
        solar=reconcile_solar(PRODUCTION_JSON, INVERTERS_JSON, LIVEDATA_JSON, PDM_ENERGY_JSON, NOW)
        if with_solar
        else None,
        last_updated=NOW,
    )


def test_emit_json_full_snapshot(capsys):
    emit_json(_snapshot())
    payload = json.loads(capsys.readouterr().out)

    assert payload["lastUpdated"] == NOW.isoformat()
    assert payload["weather"]["icon"] == "03d"
    assert payload["solar"]["exporting"] == 1.5
    assert len(payload["solar"]["inverters"]) == 2


def test_emit_json_section_filter(capsys):
    emit_json(_snapshot(), sections=("solar",))
    payload = json.loads(capsys.readouterr().out)

    assert "weather" not in payload
    assert payload["solar"]["producing"] == 4.2


def test_emit_json_keeps_null_sections(capsys):
    emit_json(_snapshot(with_weather=False))
    payload = json.loads(capsys.readouterr().out)
    assert payload["weather"] is None


def test_human_lines():
    snap = _snapshot()
    weather_lines = format_weather_human(snap.weather, "imperial")
    solar_lines = format_solar_human(snap.solar)

    assert "scattered clouds" in weather_lines[0]
    assert "temp=71.6F" in weather_lines[1]
    assert "wind=10.0mph" in weather_lines[1]
    assert "producing=4.20kW" in solar_lines[1]
    assert "exported=5.00kWh" in solar_lines[2]
    assert solar_lines[3].startswith("  [482301001111]")


def test_human_unavailable_sections(capsys):
    emit_human(_snapshot(with_weather=False, with_solar=False))
    out = capsys.readouterr().out
    assert "Weather: unavailable" in out
    assert "Solar: unavailable" in out
