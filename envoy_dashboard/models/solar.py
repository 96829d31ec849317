from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from envoy_dashboard.util.coerce import coerce_number, coerce_string


# Inner accounting keys of /ivp/pdm/energy, in order of preference.
PDM_ACCOUNTING_KEYS = ("eim", "rgm", "pcu")

SITE_CHANNEL = "site"
TOTAL_CONSUMPTION_CHANNEL = "total-consumption"
NET_CONSUMPTION_CHANNEL = "net-consumption"


@dataclass
class ProductionChannel:
    name: str
    w_now: Optional[float]
    wh_today: Optional[float]
    wh_lifetime: Optional[float]


@dataclass
class RawProductionSummary:
    """Rows of production.json keyed by measurement channel."""

    channels: List[ProductionChannel] = field(default_factory=list)

    def channel(self, name: str) -> Optional[ProductionChannel]:
        for row in self.channels:
            if row.name == name:
                return row
        return None

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["RawProductionSummary"]:
        if not isinstance(payload, dict):
            return None

        channels: List[ProductionChannel] = []
        seen: set[str] = set()
        for section in ("production", "consumption"):
            rows = payload.get(section)
            if not isinstance(rows, list):
                continue
            for entry in rows:
                if not isinstance(entry, dict):
                    continue
                name = coerce_string(entry.get("measurementType"), None) or coerce_string(entry.get("type"), None)
                if name is None:
                    continue
                # The revenue-grade meter row is the whole-site production figure.
                if section == "production" and name == "production":
                    name = SITE_CHANNEL
                if name in seen:
                    continue
                seen.add(name)
                channels.append(
                    ProductionChannel(
                        name=name,
                        w_now=coerce_number(entry.get("wNow"), None),
                        wh_today=coerce_number(entry.get("whToday"), None),
                        wh_lifetime=coerce_number(entry.get("whLifetime"), None),
                    )
                )
        return cls(channels=channels)


@dataclass
class RawInverter:
    serial: Optional[str]
    last_report_watts: Optional[float]
    last_report_date: Optional[float]
    max_report_watts: Optional[float]
    wh_lifetime: Optional[float]

    @classmethod
    def from_payload(cls, entry: Dict[str, Any]) -> "RawInverter":
        return cls(
            serial=coerce_string(entry.get("serialNumber"), None),
            last_report_watts=coerce_number(entry.get("lastReportWatts"), None),
            last_report_date=coerce_number(entry.get("lastReportDate"), None),
            max_report_watts=coerce_number(entry.get("maxReportWatts"), None),
            wh_lifetime=coerce_number(entry.get("whLifetime"), None),
        )


def parse_inverters(payload: Any) -> Optional[List[RawInverter]]:
    if not isinstance(payload, list):
        return None
    return [RawInverter.from_payload(entry) for entry in payload if isinstance(entry, dict)]


@dataclass
class MeterChannel:
    agg_p_mw: Optional[float]


@dataclass
class RawLiveMeterStatus:
    pv: Optional[MeterChannel] = None
    grid: Optional[MeterChannel] = None
    load: Optional[MeterChannel] = None
    storage: Optional[MeterChannel] = None
    generator: Optional[MeterChannel] = None

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["RawLiveMeterStatus"]:
        if not isinstance(payload, dict):
            return None
        meters = payload.get("meters")
        if not isinstance(meters, dict):
            return cls()

        def _meter(name: str) -> Optional[MeterChannel]:
            raw = meters.get(name)
            if not isinstance(raw, dict):
                return None
            return MeterChannel(agg_p_mw=coerce_number(raw.get("agg_p_mw"), None))

        return cls(
            pv=_meter("pv"),
            grid=_meter("grid"),
            load=_meter("load"),
            storage=_meter("storage"),
            generator=_meter("generator"),
        )


@dataclass
class RawDailyEnergy:
    production_wh_today: Optional[float] = None
    consumption_wh_today: Optional[float] = None

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["RawDailyEnergy"]:
        if not isinstance(payload, dict):
            return None

        def _wh_today(section: str) -> Optional[float]:
            block = payload.get(section)
            if not isinstance(block, dict):
                return None
            for key in PDM_ACCOUNTING_KEYS:
                inner = block.get(key)
                if isinstance(inner, dict) and "wattHoursToday" in inner:
                    return coerce_number(inner.get("wattHoursToday"), None)
            return None

        return cls(
            production_wh_today=_wh_today("production"),
            consumption_wh_today=_wh_today("consumption"),
        )


@dataclass
class InverterSummary:
    serial: str
    last_report_watts: float
    max_report_watts: float

    def as_dict(self) -> Dict[str, Any]:
        return {
            "serial": self.serial,
            "lastReportWatts": self.last_report_watts,
            "maxReportWatts": self.max_report_watts,
        }


@dataclass
class SolarSnapshot:
    producing: float
    importing: float
    consuming: float
    exporting: float
    produced: float
    consumed: float
    exported: float
    peak: float
    imported: float
    inverters: List[InverterSummary]
    last_updated: datetime

    def as_dict(self) -> Dict[str, Any]:
        return {
            "producing": self.producing,
            "importing": self.importing,
            "consuming": self.consuming,
            "exporting": self.exporting,
            "produced": self.produced,
            "consumed": self.consumed,
            "exported": self.exported,
            "peak": self.peak,
            "imported": self.imported,
            "inverters": [inv.as_dict() for inv in self.inverters],
            "lastUpdated": self.last_updated.isoformat(),
        }
