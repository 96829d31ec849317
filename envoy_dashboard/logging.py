from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Iterable


APP_LOGGER = "envoy"


class ConsoleLog:
    """Configure console logging for the dashboard run."""

    def __init__(self, level: str = "INFO", quiet: bool = False, debug_modules: Iterable[str] | None = None):
        self.level = level.upper()
        self.quiet = quiet
        self.debug_modules = list(debug_modules or [])

    def setup(self) -> logging.Logger:
        root = logging.getLogger()
        root.handlers.clear()
        root.setLevel(logging.DEBUG)

        # --quiet only silences logs; the snapshot itself goes to stdout via print.
        if not self.quiet:
            handler = logging.StreamHandler(sys.stderr)
            handler.setLevel(getattr(logging, self.level, logging.INFO))
            fmt = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
            handler.setFormatter(logging.Formatter(fmt, datefmt="%Y-%m-%d %H:%M:%S"))
            root.addHandler(handler)

        for name in self.debug_modules:
            logging.getLogger(name).setLevel(logging.DEBUG)

        # Keep per-connection chatter out of debug runs.
        logging.getLogger("urllib3").setLevel(logging.INFO)

        return logging.getLogger(APP_LOGGER)


@dataclass
class RunLogEntry:
    """One line of the run log: what was shown and which sources were missing."""

    timestamp: str
    snapshot: dict[str, Any] | None
    unavailable_sources: list[str] | None
    command: str | None = None
    elapsed_s: float | None = None


def _json_default(obj: Any) -> Any:
    if hasattr(obj, "isoformat"):
        return obj.isoformat()
    return str(obj)


class StructuredLog:
    """Append-only JSONL record of each snapshot run."""

    def __init__(self, path: str | None, enabled: bool = False):
        self.enabled = enabled and bool(path)
        self.path = Path(path).expanduser() if path else None
        if self.enabled and self.path:
            self.path.parent.mkdir(parents=True, exist_ok=True)

    def write(self, entry: RunLogEntry) -> None:
        if not self.enabled or not self.path:
            return
        line = json.dumps(asdict(entry), default=_json_default)
        try:
            with self.path.open("a", encoding="utf-8") as fh:
                fh.write(line + "\n")
        except OSError as exc:
            logging.getLogger(APP_LOGGER).warning("Run log write to %s failed: %s", self.path, exc)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
