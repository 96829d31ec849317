# envoy_dashboard/tests/test_solar_reconciler.py

import copy
import itertools
import math
from datetime import datetime, timezone

import pytest

from envoy_dashboard.services import solar_reconciler as sr
from envoy_dashboard.services.solar_reconciler import SolarSources, reconcile_solar, resolve
from envoy_dashboard.tests.payloads import INVERTERS_JSON, LIVEDATA_JSON, PDM_ENERGY_JSON, PRODUCTION_JSON


NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

POWER_FIELDS = ("producing", "importing", "consuming", "exporting")
ENERGY_FIELDS = ("produced", "consumed", "exported", "peak", "imported")


def _reconcile(production=None, inverters=None, livedata=None, pdm_energy=None):
    return reconcile_solar(production, inverters, livedata, pdm_energy, NOW)


def _livedata(**meters):
    return {"meters": {name: {"agg_p_mw": value} for name, value in meters.items()}}


def test_all_sources_present_prefers_live_meter_and_pdm():
    snap = _reconcile(PRODUCTION_JSON, INVERTERS_JSON, LIVEDATA_JSON, PDM_ENERGY_JSON)

    assert snap.producing == 4.2
    assert snap.consuming == 2.7
    assert snap.exporting == 1.5
    assert snap.importing == 0
    assert snap.produced == 16.0
    assert snap.consumed == 11.0
    assert snap.exported == 5.0
    assert snap.peak == 0.33
    assert snap.imported == 0
    assert snap.last_updated == NOW


def test_all_sources_unavailable_yields_zeros():
    snap = _reconcile()

    for field in POWER_FIELDS + ENERGY_FIELDS:
        assert getattr(snap, field) == 0, field
    assert snap.inverters == []


@pytest.mark.parametrize("mask", list(itertools.product([False, True], repeat=4)))
def test_every_availability_combination_is_finite_and_non_negative(mask):
    payloads = [PRODUCTION_JSON, INVERTERS_JSON, LIVEDATA_JSON, PDM_ENERGY_JSON]
    args = [payload if keep else None for payload, keep in zip(payloads, mask)]

    snap = _reconcile(*args)

    for field in POWER_FIELDS + ENERGY_FIELDS:
        value = getattr(snap, field)
        assert math.isfinite(value), field
        assert value >= 0, field


def test_live_pv_wins_over_production_summary():
    snap = _reconcile(production=PRODUCTION_JSON, livedata=_livedata(pv=1_000_000))
    assert snap.producing == 1.0


def test_production_summary_used_without_live_meter():
    snap = _reconcile(production=PRODUCTION_JSON, inverters=INVERTERS_JSON)

    assert snap.producing == 3.2505
    assert snap.consuming == 1.2
    assert snap.exporting == 2.0505
    assert snap.importing == 0


def test_inverter_sum_is_last_resort_for_producing():
    snap = _reconcile(inverters=INVERTERS_JSON)

    assert snap.producing == 0.6
    assert snap.consuming == 0
    assert snap.importing == 0
    assert snap.exporting == 0


def test_negative_live_grid_is_export():
    snap = _reconcile(livedata=_livedata(grid=-1_500_000))
    assert snap.exporting == 1.5
    assert snap.importing == 0


def test_positive_live_grid_is_import():
    snap = _reconcile(livedata=_livedata(grid=2_250_000))
    assert snap.importing == 2.25
    assert snap.exporting == 0


def test_import_and_export_resolve_independently():
    production = copy.deepcopy(PRODUCTION_JSON)
    production["consumption"][1]["wNow"] = 2000
    snap = _reconcile(production=production, livedata=_livedata(grid=-1_500_000))

    # Live grid is exporting, so importing falls through to the positive net row.
    assert snap.exporting == 1.5
    assert snap.importing == 2.0


def test_live_grid_export_wins_over_summary_export():
    snap = _reconcile(production=PRODUCTION_JSON, livedata=_livedata(grid=-1_500_000))

    assert snap.exporting == 1.5
    assert snap.importing == 0


def test_live_grid_import_wins_over_summary_import():
    production = copy.deepcopy(PRODUCTION_JSON)
    production["consumption"][1]["wNow"] = 2000
    snap = _reconcile(production=production, livedata=_livedata(grid=750_000))

    assert snap.importing == 0.75
    assert snap.exporting == 0


def test_net_consumption_positive_is_import():
    production = copy.deepcopy(PRODUCTION_JSON)
    production["consumption"][1]["wNow"] = 800
    snap = _reconcile(production=production)

    assert snap.importing == 0.8
    assert snap.exporting == 0


def test_zero_grid_is_neither_import_nor_export():
    snap = _reconcile(livedata=_livedata(grid=0))
    assert snap.importing == 0
    assert snap.exporting == 0


def test_zero_live_grid_falls_through_to_net_consumption():
    import_row = {"consumption": [{"measurementType": "net-consumption", "wNow": 2000}]}
    export_row = {"consumption": [{"measurementType": "net-consumption", "wNow": -900}]}

    importing = _reconcile(production=import_row, livedata=_livedata(grid=0))
    exporting = _reconcile(production=export_row, livedata=_livedata(grid=0))

    assert (importing.importing, importing.exporting) == (2.0, 0)
    assert (exporting.importing, exporting.exporting) == (0, 0.9)


def test_live_meter_missing_channel_falls_back_per_metric():
    snap = _reconcile(production=PRODUCTION_JSON, livedata=_livedata(load=500_000))

    assert snap.consuming == 0.5
    assert snap.producing == 3.2505
    assert snap.exporting == 2.0505


def test_non_numeric_live_value_falls_through_to_next_candidate():
    livedata = _livedata(pv="NaN", load="bogus")
    snap = _reconcile(production=PRODUCTION_JSON, livedata=livedata)

    assert snap.producing == 3.2505
    assert snap.consuming == 1.2


def test_negative_pv_reading_is_clamped():
    snap = _reconcile(livedata=_livedata(pv=-3_000, load=-10))
    assert snap.producing == 0
    assert snap.consuming == 0


def test_energy_falls_back_to_production_summary():
    snap = _reconcile(production=PRODUCTION_JSON)

    # site whToday is reported as-is; total-consumption whToday is scaled.
    assert snap.produced == 18000.0
    assert snap.consumed == 9.0
    assert snap.exported == 17991.0


def test_energy_falls_back_to_inverter_lifetime():
    inverters = [dict(inv, whLifetime=250_000) for inv in INVERTERS_JSON]
    snap = _reconcile(inverters=inverters)

    assert snap.produced == 500.0
    assert snap.consumed == 0
    assert snap.exported == 0


def test_exported_never_negative():
    pdm = {
        "production": {"eim": {"wattHoursToday": 4000}},
        "consumption": {"eim": {"wattHoursToday": 9000}},
    }
    snap = _reconcile(pdm_energy=pdm)

    assert snap.produced == 4.0
    assert snap.consumed == 9.0
    assert snap.exported == 0


def test_exported_needs_both_pdm_figures():
    pdm = {"production": {"eim": {"wattHoursToday": 4000}}}
    snap = _reconcile(production=PRODUCTION_JSON, pdm_energy=pdm)

    assert snap.produced == 4.0
    assert snap.consumed == 9.0
    # Falls back to the summary pair rather than mixing sources.
    assert snap.exported == 17991.0


def test_pdm_accounting_key_fallback():
    pdm = {
        "production": {"pcu": {"wattHoursToday": 7000}},
        "consumption": {"rgm": {"wattHoursToday": 2000}},
    }
    snap = _reconcile(pdm_energy=pdm)

    assert snap.produced == 7.0
    assert snap.consumed == 2.0
    assert snap.exported == 5.0


def test_peak_prefers_inverter_max_then_summary():
    assert _reconcile(inverters=INVERTERS_JSON, production=PRODUCTION_JSON).peak == 0.33
    assert _reconcile(production=PRODUCTION_JSON).peak == 3.2505
    no_max = [{"serialNumber": "1", "lastReportWatts": 100}]
    assert _reconcile(inverters=no_max, production=PRODUCTION_JSON).peak == 3.2505


def test_imported_is_always_zero():
    snap = _reconcile(livedata=_livedata(grid=5_000_000))
    assert snap.importing == 5.0
    assert snap.imported == 0


def test_inverter_summaries_keep_order_and_default_fields():
    inverters = [
        {"serialNumber": "B", "lastReportWatts": "12", "maxReportWatts": 40},
        {"lastReportWatts": None},
        "garbage",
        {"serialNumber": "A", "lastReportWatts": 7, "maxReportWatts": "n/a"},
        {"serialNumber": "A", "lastReportWatts": 8, "maxReportWatts": 9},
    ]
    snap = _reconcile(inverters=inverters)

    assert [(i.serial, i.last_report_watts, i.max_report_watts) for i in snap.inverters] == [
        ("B", 12.0, 40),
        ("", 0, 0),
        ("A", 7, 0),
        ("A", 8, 9),
    ]


def test_malformed_shapes_are_treated_as_unavailable():
    snap = _reconcile(
        production=["not", "a", "dict"],
        inverters={"not": "a list"},
        livedata={"meters": "broken"},
        pdm_energy={"production": 5},
    )

    for field in POWER_FIELDS + ENERGY_FIELDS:
        assert getattr(snap, field) == 0, field
    assert snap.inverters == []


def test_production_summary_first_channel_wins():
    production = {
        "production": [
            {"type": "eim", "measurementType": "production", "wNow": 1000},
            {"type": "eim", "measurementType": "production", "wNow": 9000},
        ]
    }
    assert _reconcile(production=production).producing == 1.0


def test_resolve_walks_candidates_in_order():
    calls = []

    def missing(sources):
        calls.append("missing")
        return None

    def infinite(sources):
        calls.append("infinite")
        return float("inf")

    def found(sources):
        calls.append("found")
        return 2.5

    def never(sources):
        calls.append("never")
        return 1.0

    assert resolve((missing, infinite, found, never), SolarSources()) == 2.5
    assert calls == ["missing", "infinite", "found"]
    assert resolve((missing,), SolarSources()) == 0


def test_precedence_tables_order():
    assert sr.PRODUCING_CANDIDATES == (sr.live_pv_kw, sr.summary_site_kw, sr.inverter_output_kw)
    assert sr.CONSUMING_CANDIDATES == (sr.live_load_kw, sr.summary_total_consumption_kw)
    assert sr.IMPORTING_CANDIDATES == (sr.live_grid_import_kw, sr.summary_net_import_kw)
    assert sr.EXPORTING_CANDIDATES == (sr.live_grid_export_kw, sr.summary_net_export_kw)
    assert sr.PRODUCED_CANDIDATES == (sr.pdm_produced_kwh, sr.summary_produced_kwh, sr.inverter_lifetime_kwh)
    assert sr.CONSUMED_CANDIDATES == (sr.pdm_consumed_kwh, sr.summary_consumed_kwh)
    assert sr.EXPORTED_CANDIDATES == (sr.pdm_exported_kwh, sr.summary_exported_kwh)
    assert sr.PEAK_CANDIDATES == (sr.inverter_peak_kw, sr.summary_site_kw)


def test_as_dict_uses_display_keys():
    payload = _reconcile(inverters=INVERTERS_JSON).as_dict()

    assert payload["lastUpdated"] == NOW.isoformat()
    assert payload["inverters"][0] == {
        "serial": "482301001111",
        "lastReportWatts": 290,
        "maxReportWatts": 305,
    }
    assert set(payload) == {
        "producing", "importing", "consuming", "exporting", "produced", "consumed",
        "exported", "peak", "imported", "inverters", "lastUpdated",
    }
