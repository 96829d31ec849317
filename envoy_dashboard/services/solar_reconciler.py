"""
Reconcile the four gateway payloads into one SolarSnapshot.

Each metric is resolved from an ordered tuple of candidate functions. A
candidate receives the parsed ``SolarSources`` and returns a number, or None
when its source cannot provide the value. The first finite result wins; if
none does, the metric is 0.

Live meter power is reported in milliwatts, production.json and the inverter
list in watts, and daily energy in watt-hours.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterable, List, Optional, Sequence

from envoy_dashboard.models.solar import (
    NET_CONSUMPTION_CHANNEL,
    SITE_CHANNEL,
    TOTAL_CONSUMPTION_CHANNEL,
    InverterSummary,
    MeterChannel,
    RawDailyEnergy,
    RawInverter,
    RawLiveMeterStatus,
    RawProductionSummary,
    SolarSnapshot,
    parse_inverters,
)
from envoy_dashboard.util.coerce import coerce_number, coerce_string


MW_PER_KW = 1_000_000
W_PER_KW = 1000
WH_PER_KWH = 1000


@dataclass
class SolarSources:
    production: Optional[RawProductionSummary] = None
    inverters: Optional[List[RawInverter]] = None
    livedata: Optional[RawLiveMeterStatus] = None
    pdm_energy: Optional[RawDailyEnergy] = None

    @classmethod
    def from_payloads(
        cls,
        production: Any = None,
        inverters: Any = None,
        livedata: Any = None,
        pdm_energy: Any = None,
    ) -> "SolarSources":
        return cls(
            production=RawProductionSummary.from_payload(production),
            inverters=parse_inverters(inverters),
            livedata=RawLiveMeterStatus.from_payload(livedata),
            pdm_energy=RawDailyEnergy.from_payload(pdm_energy),
        )


Candidate = Callable[[SolarSources], Optional[float]]


def _finite(value: Optional[float]) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _divide(value: Optional[float], divisor: float) -> Optional[float]:
    if value is None:
        return None
    result = value / divisor
    return result if math.isfinite(result) else None


def _non_negative(value: float) -> float:
    return value if value > 0 else 0


def resolve(candidates: Sequence[Candidate], sources: SolarSources) -> float:
    for candidate in candidates:
        value = candidate(sources)
        if _finite(value):
            return value
    return 0


# ----------------------------------------------------------------------
# Source accessors
# ----------------------------------------------------------------------

def _meter_kw(meter: Optional[MeterChannel]) -> Optional[float]:
    if meter is None:
        return None
    return _divide(meter.agg_p_mw, MW_PER_KW)


def _channel_kw(sources: SolarSources, name: str) -> Optional[float]:
    if sources.production is None:
        return None
    row = sources.production.channel(name)
    if row is None:
        return None
    return _divide(row.w_now, W_PER_KW)


def _channel_wh_today(sources: SolarSources, name: str) -> Optional[float]:
    if sources.production is None:
        return None
    row = sources.production.channel(name)
    return row.wh_today if row is not None else None


def _sum_inverters(sources: SolarSources, attr: str) -> Optional[float]:
    if not sources.inverters:
        return None
    values = [getattr(inv, attr) for inv in sources.inverters if getattr(inv, attr) is not None]
    if not values:
        return None
    return sum(values)


# ----------------------------------------------------------------------
# Instantaneous power (kW)
# ----------------------------------------------------------------------

def live_pv_kw(sources: SolarSources) -> Optional[float]:
    return _meter_kw(sources.livedata.pv) if sources.livedata else None


def live_load_kw(sources: SolarSources) -> Optional[float]:
    return _meter_kw(sources.livedata.load) if sources.livedata else None


def live_grid_kw(sources: SolarSources) -> Optional[float]:
    return _meter_kw(sources.livedata.grid) if sources.livedata else None


def summary_site_kw(sources: SolarSources) -> Optional[float]:
    return _channel_kw(sources, SITE_CHANNEL)


def summary_total_consumption_kw(sources: SolarSources) -> Optional[float]:
    return _channel_kw(sources, TOTAL_CONSUMPTION_CHANNEL)


def summary_net_consumption_kw(sources: SolarSources) -> Optional[float]:
    return _channel_kw(sources, NET_CONSUMPTION_CHANNEL)


def inverter_output_kw(sources: SolarSources) -> Optional[float]:
    return _divide(_sum_inverters(sources, "last_report_watts"), W_PER_KW)


# Net grid flow is positive on import and negative on export. Each candidate
# below only counts as available when its reading has the matching sign.

def _importing(value: Optional[float]) -> Optional[float]:
    if not _finite(value) or value <= 0:
        return None
    return value


def _exporting(value: Optional[float]) -> Optional[float]:
    if not _finite(value) or value >= 0:
        return None
    return abs(value)


def live_grid_import_kw(sources: SolarSources) -> Optional[float]:
    return _importing(live_grid_kw(sources))


def summary_net_import_kw(sources: SolarSources) -> Optional[float]:
    return _importing(summary_net_consumption_kw(sources))


def live_grid_export_kw(sources: SolarSources) -> Optional[float]:
    return _exporting(live_grid_kw(sources))


def summary_net_export_kw(sources: SolarSources) -> Optional[float]:
    return _exporting(summary_net_consumption_kw(sources))


# ----------------------------------------------------------------------
# Energy since local midnight (kWh)
# ----------------------------------------------------------------------

def pdm_produced_kwh(sources: SolarSources) -> Optional[float]:
    if sources.pdm_energy is None:
        return None
    return _divide(sources.pdm_energy.production_wh_today, WH_PER_KWH)


def pdm_consumed_kwh(sources: SolarSources) -> Optional[float]:
    if sources.pdm_energy is None:
        return None
    return _divide(sources.pdm_energy.consumption_wh_today, WH_PER_KWH)


def summary_produced_kwh(sources: SolarSources) -> Optional[float]:
    # production.json site whToday is passed through as reported.
    return _channel_wh_today(sources, SITE_CHANNEL)


def summary_consumed_kwh(sources: SolarSources) -> Optional[float]:
    return _divide(_channel_wh_today(sources, TOTAL_CONSUMPTION_CHANNEL), WH_PER_KWH)


def inverter_lifetime_kwh(sources: SolarSources) -> Optional[float]:
    return _divide(_sum_inverters(sources, "wh_lifetime"), WH_PER_KWH)


def _surplus(produced: Optional[float], consumed: Optional[float]) -> Optional[float]:
    if not (_finite(produced) and _finite(consumed)):
        return None
    return _non_negative(produced - consumed)


def pdm_exported_kwh(sources: SolarSources) -> Optional[float]:
    return _surplus(pdm_produced_kwh(sources), pdm_consumed_kwh(sources))


def summary_exported_kwh(sources: SolarSources) -> Optional[float]:
    return _surplus(summary_produced_kwh(sources), summary_consumed_kwh(sources))


# ----------------------------------------------------------------------
# Peak (kW)
# ----------------------------------------------------------------------

def inverter_peak_kw(sources: SolarSources) -> Optional[float]:
    if not sources.inverters:
        return None
    values = [inv.max_report_watts for inv in sources.inverters if inv.max_report_watts is not None]
    if not values:
        return None
    return _divide(max(values), W_PER_KW)


# ----------------------------------------------------------------------
# Precedence tables
# ----------------------------------------------------------------------

PRODUCING_CANDIDATES: tuple[Candidate, ...] = (live_pv_kw, summary_site_kw, inverter_output_kw)
CONSUMING_CANDIDATES: tuple[Candidate, ...] = (live_load_kw, summary_total_consumption_kw)
IMPORTING_CANDIDATES: tuple[Candidate, ...] = (live_grid_import_kw, summary_net_import_kw)
EXPORTING_CANDIDATES: tuple[Candidate, ...] = (live_grid_export_kw, summary_net_export_kw)
PRODUCED_CANDIDATES: tuple[Candidate, ...] = (pdm_produced_kwh, summary_produced_kwh, inverter_lifetime_kwh)
CONSUMED_CANDIDATES: tuple[Candidate, ...] = (pdm_consumed_kwh, summary_consumed_kwh)
EXPORTED_CANDIDATES: tuple[Candidate, ...] = (pdm_exported_kwh, summary_exported_kwh)
PEAK_CANDIDATES: tuple[Candidate, ...] = (inverter_peak_kw, summary_site_kw)


def summarize_inverters(inverters: Optional[Iterable[RawInverter]]) -> List[InverterSummary]:
    return [
        InverterSummary(
            serial=coerce_string(inv.serial, ""),
            last_report_watts=coerce_number(inv.last_report_watts, 0),
            max_report_watts=coerce_number(inv.max_report_watts, 0),
        )
        for inv in (inverters or [])
    ]


def reconcile_sources(sources: SolarSources, captured_at: datetime) -> SolarSnapshot:
    return SolarSnapshot(
        producing=_non_negative(resolve(PRODUCING_CANDIDATES, sources)),
        importing=resolve(IMPORTING_CANDIDATES, sources),
        consuming=_non_negative(resolve(CONSUMING_CANDIDATES, sources)),
        exporting=resolve(EXPORTING_CANDIDATES, sources),
        produced=_non_negative(resolve(PRODUCED_CANDIDATES, sources)),
        consumed=_non_negative(resolve(CONSUMED_CANDIDATES, sources)),
        exported=resolve(EXPORTED_CANDIDATES, sources),
        peak=_non_negative(resolve(PEAK_CANDIDATES, sources)),
        # Not reported by the gateway; kept for the display contract.
        imported=0,
        inverters=summarize_inverters(sources.inverters),
        last_updated=captured_at,
    )


def reconcile_solar(
    production: Any,
    inverters: Any,
    livedata: Any,
    pdm_energy: Any,
    captured_at: datetime,
) -> SolarSnapshot:
    """Build a SolarSnapshot from raw gateway JSON; any payload may be None."""
    sources = SolarSources.from_payloads(
        production=production,
        inverters=inverters,
        livedata=livedata,
        pdm_energy=pdm_energy,
    )
    return reconcile_sources(sources, captured_at)
