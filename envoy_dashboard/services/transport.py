# envoy_dashboard/services/transport.py

from __future__ import annotations

import re
import threading
import warnings
from contextlib import contextmanager, nullcontext
from urllib.parse import urlparse

import requests
from urllib3.exceptions import InsecureRequestWarning

from envoy_dashboard.config import EnvoyConfig


USER_AGENT = "envoy-dashboard"

# host -> (requests in flight, installed filter entry)
_quiet_hosts: dict = {}
_quiet_lock = threading.Lock()


def gateway_verify(cfg: EnvoyConfig) -> bool | str:
    """Value for ``Session.verify`` on the gateway session."""
    if cfg.ca_bundle:
        return cfg.ca_bundle
    return bool(cfg.verify_tls)


def build_gateway_session(cfg: EnvoyConfig) -> requests.Session:
    """
    Session for the local gateway only.

    The gateway ships a self-signed certificate, so trust is relaxed on this
    session alone. Other sessions in the process keep full verification.
    """
    session = requests.Session()
    session.verify = gateway_verify(cfg)
    session.headers.update({"Accept": "application/json", "User-Agent": USER_AGENT})
    return session


def build_weather_session() -> requests.Session:
    session = requests.Session()
    session.headers.update({"Accept": "application/json", "User-Agent": USER_AGENT})
    return session


@contextmanager
def unverified_warnings_silenced(host: str):
    """
    Ignore urllib3's unverified-HTTPS warning for ``host`` while the block runs.

    Overlapping blocks for the same host share one filter, which is removed
    when the last of them exits. Warnings for other hosts are untouched.
    """
    with _quiet_lock:
        depth, entry = _quiet_hosts.get(host, (0, None))
        if depth == 0:
            warnings.filterwarnings(
                "ignore",
                message=f"Unverified HTTPS request is being made to host '{re.escape(host)}'",
                category=InsecureRequestWarning,
            )
            entry = warnings.filters[0]
        _quiet_hosts[host] = (depth + 1, entry)
    try:
        yield
    finally:
        with _quiet_lock:
            depth, entry = _quiet_hosts.pop(host)
            if depth > 1:
                _quiet_hosts[host] = (depth - 1, entry)
            elif entry in warnings.filters:
                warnings.filters.remove(entry)


def gateway_request_scope(session, base_url: str):
    """Context for one gateway request made on ``session``."""
    if getattr(session, "verify", True) is False:
        return unverified_warnings_silenced(urlparse(base_url).hostname or "")
    return nullcontext()
