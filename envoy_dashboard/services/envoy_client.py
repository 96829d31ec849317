from __future__ import annotations

from typing import Any, Dict, Optional

import requests

from envoy_dashboard.config import EnvoyConfig
from envoy_dashboard.services.transport import build_gateway_session, gateway_request_scope


PRODUCTION_PATH = "/production.json"
INVERTERS_PATH = "/api/v1/production/inverters"
LIVEDATA_PATH = "/ivp/livedata/status"
PDM_ENERGY_PATH = "/ivp/pdm/energy"


class EnvoyClient:
    """Read-only client for the local gateway's JSON endpoints.

    Every fetch returns the parsed body, or None when the resource could not
    be obtained. Nothing here raises to the caller.

    Without an explicit ``session`` each request gets its own gateway session,
    closed once the body is read, so concurrent fetches share no connection
    state.
    """

    BASE_URL_DEFAULT = "https://envoy.local"

    def __init__(self, cfg: EnvoyConfig, log, session: Optional[requests.Session] = None):
        self.cfg = cfg
        self.log = log
        self.session = session
        self.base_url = (cfg.base_url or self.BASE_URL_DEFAULT).strip().rstrip("/")

    # ------------------------------------------------------------------
    @property
    def enabled(self) -> bool:
        return bool(self.cfg.token)

    # ------------------------------------------------------------------
    def _build_url(self, path: str) -> str:
        if not path.startswith("/"):
            path = "/" + path
        return f"{self.base_url}{path}"

    def _headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/json",
            "Authorization": f"Bearer {self.cfg.token}",
        }

    def _timeout(self, limit: Optional[float]) -> float:
        if limit is None:
            return self.cfg.timeout
        return min(self.cfg.timeout, limit)

    def _get(self, path: str, timeout: Optional[float] = None) -> Optional[Any]:
        if not self.enabled:
            self.log.debug("Envoy token not configured; skipping %s", path)
            return None

        url = self._build_url(path)
        session = self.session if self.session is not None else build_gateway_session(self.cfg)

        try:
            with gateway_request_scope(session, self.base_url):
                resp = session.get(url, headers=self._headers(), timeout=self._timeout(timeout))
        except Exception as exc:
            self.log.warning("Envoy request failed for %s: %s", path, exc)
            return None
        finally:
            if session is not self.session:
                session.close()

        if resp.status_code != 200:
            self.log.warning("Envoy %s returned HTTP %s", path, resp.status_code)
            return None

        try:
            data = resp.json()
        except ValueError:
            self.log.warning("Envoy %s returned non-JSON payload", path)
            return None

        if data is None or isinstance(data, (str, int, float, bool)):
            self.log.warning("Envoy %s response was unexpected %s payload", path, type(data).__name__)
            return None

        return data

    # ------------------------------------------------------------------
    def fetch_production(self, timeout: Optional[float] = None) -> Optional[Any]:
        return self._get(PRODUCTION_PATH, timeout)

    def fetch_inverters(self, timeout: Optional[float] = None) -> Optional[Any]:
        return self._get(INVERTERS_PATH, timeout)

    def fetch_livedata(self, timeout: Optional[float] = None) -> Optional[Any]:
        return self._get(LIVEDATA_PATH, timeout)

    def fetch_pdm_energy(self, timeout: Optional[float] = None) -> Optional[Any]:
        return self._get(PDM_ENERGY_PATH, timeout)
