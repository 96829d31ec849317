# envoy_dashboard/services/snapshot_service.py

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor, wait
from datetime import datetime
from typing import Any, Callable, Dict, Optional
from zoneinfo import ZoneInfo

from envoy_dashboard.config import AppConfig
from envoy_dashboard.models.snapshot import DashboardSnapshot, RawPayloads
from envoy_dashboard.services.envoy_client import EnvoyClient
from envoy_dashboard.services.solar_reconciler import reconcile_solar
from envoy_dashboard.services.weather_client import WeatherClient, normalize_weather


Fetch = Callable[..., Optional[Any]]


class SnapshotService:
    """
    One best-effort dashboard snapshot per call.

    All enabled upstream fetches are submitted together and joined against a
    single deadline, so a run takes about as long as the slowest source. A
    source that fails or misses the deadline is simply absent from the
    RawPayloads handed to ``compose``.
    """

    def __init__(
        self,
        app_cfg: AppConfig,
        log,
        envoy_client: Optional[EnvoyClient] = None,
        weather_client: Optional[WeatherClient] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.app_cfg = app_cfg
        self.log = log
        self.envoy = envoy_client or EnvoyClient(app_cfg.envoy, log)
        self.weather = weather_client or WeatherClient(app_cfg.weather, log)
        self.clock = clock or self._now

    # ------------------------------------------------------------------
    def _now(self) -> datetime:
        try:
            tz = ZoneInfo(self.app_cfg.general.timezone)
        except Exception:
            self.log.warning("Unknown timezone '%s'; using UTC.", self.app_cfg.general.timezone)
            tz = ZoneInfo("UTC")
        return datetime.now(tz=tz)

    def _fetches(self) -> Dict[str, Fetch]:
        fetches: Dict[str, Fetch] = {}
        if self.envoy.enabled:
            fetches["production"] = self.envoy.fetch_production
            fetches["inverters"] = self.envoy.fetch_inverters
            fetches["livedata"] = self.envoy.fetch_livedata
            fetches["pdm_energy"] = self.envoy.fetch_pdm_energy
        else:
            self.log.info("Envoy token not configured; solar data omitted.")
        if self.weather.enabled:
            fetches["weather"] = self.weather.fetch_current
        else:
            self.log.info("Weather API key or coordinates not configured; weather omitted.")
        return fetches

    # ------------------------------------------------------------------
    def collect(self) -> RawPayloads:
        fetches = self._fetches()
        raw = RawPayloads()
        if not fetches:
            return raw

        fetch_cfg = self.app_cfg.fetch
        ends_at = time.monotonic() + fetch_cfg.deadline

        def bounded(name: str, fn: Fetch):
            remaining = ends_at - time.monotonic()
            if remaining <= 0:
                self.log.debug("Skipping fetch '%s'; deadline already passed.", name)
                return None
            return fn(timeout=remaining)

        executor = ThreadPoolExecutor(
            max_workers=max(1, min(fetch_cfg.max_workers, len(fetches))),
            thread_name_prefix="envoy-fetch",
        )
        try:
            futures = {executor.submit(bounded, name, fn): name for name, fn in fetches.items()}
            done, pending = wait(futures, timeout=fetch_cfg.deadline)

            for future in pending:
                future.cancel()
                self.log.warning(
                    "Fetch '%s' did not finish within %.1fs; treating as unavailable.",
                    futures[future],
                    fetch_cfg.deadline,
                )

            for future in done:
                name = futures[future]
                try:
                    setattr(raw, name, future.result())
                except Exception as exc:
                    self.log.warning("Fetch '%s' failed: %s", name, exc)
        finally:
            # Running fetches are bounded by the remaining deadline, so the
            # join returns shortly after it.
            executor.shutdown(wait=True, cancel_futures=True)

        unavailable = [name for name in raw.unavailable() if name in fetches]
        if unavailable:
            self.log.info("Unavailable sources this run: %s", ", ".join(sorted(unavailable)))
        return raw

    # ------------------------------------------------------------------
    def compose(self, raw: RawPayloads, captured_at: datetime) -> DashboardSnapshot:
        weather = None
        if self.weather.enabled:
            weather = normalize_weather(
                raw.weather,
                self.app_cfg.weather.units,
                captured_at,
                default_temperature=self.app_cfg.weather.default_temperature,
            )

        solar = None
        if self.envoy.enabled:
            solar = reconcile_solar(
                raw.production,
                raw.inverters,
                raw.livedata,
                raw.pdm_energy,
                captured_at,
            )

        return DashboardSnapshot(weather=weather, solar=solar, last_updated=captured_at)

    def snapshot(self) -> DashboardSnapshot:
        captured_at = self.clock()
        raw = self.collect()
        return self.compose(raw, captured_at)
