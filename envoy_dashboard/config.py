# envoy_dashboard/config.py
from dataclasses import dataclass, field
from pathlib import Path
import configparser


UNIT_SYSTEMS = ("imperial", "metric", "standard")


@dataclass
class GeneralConfig:
    timezone: str = "UTC"


@dataclass
class EnvoyConfig:
    base_url: str = "https://envoy.local"
    token: str | None = None
    timeout: float = 10.0
    verify_tls: bool = False
    ca_bundle: str | None = None


@dataclass
class WeatherConfig:
    api_key: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    units: str = "imperial"
    base_url: str = "https://api.openweathermap.org"
    timeout: float = 10.0
    default_temperature: float = 37.0


@dataclass
class FetchConfig:
    max_workers: int = 5
    deadline: float = 15.0


@dataclass
class LoggingConfig:
    console_level: str = "INFO"
    console_quiet: bool = False
    debug_modules: list[str] = field(default_factory=list)
    structured_enabled: bool = False
    structured_path: str | None = None


@dataclass
class AppConfig:
    general: GeneralConfig = field(default_factory=GeneralConfig)
    envoy: EnvoyConfig = field(default_factory=EnvoyConfig)
    weather: WeatherConfig = field(default_factory=WeatherConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


class Config:
    def __init__(self, path: str):
        self.path = Path(path)
        self.parser = configparser.ConfigParser(inline_comment_prefixes=("#",), interpolation=None)
        read = self.parser.read(self.path)
        if not read:
            raise FileNotFoundError(f"Config file not found: {self.path}")

    @classmethod
    def load(cls, path: str) -> AppConfig:
        cfg = cls(path)

        p = cfg.parser

        def _as_bool(value: str) -> bool:
            return value.strip().lower() == "true"

        def _maybe_str(raw: str | None) -> str | None:
            if raw is None:
                return None
            raw = raw.strip()
            return raw or None

        def _maybe_float(raw: str | None) -> float | None:
            raw = _maybe_str(raw)
            if raw is None:
                return None
            return float(raw)

        # --- General ---
        general_kwargs = {}
        if "general" in p:
            general_sec = p["general"]
            if (tz := _maybe_str(general_sec.get("timezone"))) is not None:
                general_kwargs["timezone"] = tz
        general_cfg = GeneralConfig(**general_kwargs)

        # --- Envoy gateway ---
        envoy_kwargs = {}
        if "envoy" in p:
            envoy_sec = p["envoy"]
            if (base_url := _maybe_str(envoy_sec.get("base_url"))) is not None:
                envoy_kwargs["base_url"] = base_url
            token = _maybe_str(envoy_sec.get("token")) or _maybe_str(envoy_sec.get("envoy_token"))
            if token is not None:
                envoy_kwargs["token"] = token
            if (timeout := _maybe_float(envoy_sec.get("timeout"))) is not None:
                envoy_kwargs["timeout"] = timeout
            if "verify_tls" in envoy_sec:
                envoy_kwargs["verify_tls"] = _as_bool(envoy_sec["verify_tls"])
            if (ca_bundle := _maybe_str(envoy_sec.get("ca_bundle"))) is not None:
                envoy_kwargs["ca_bundle"] = ca_bundle
        envoy_cfg = EnvoyConfig(**envoy_kwargs)

        # --- Weather ---
        weather_kwargs = {}
        if "weather" in p:
            weather_sec = p["weather"]
            api_key = _maybe_str(weather_sec.get("api_key")) or _maybe_str(weather_sec.get("openweather_api_key"))
            if api_key is not None:
                weather_kwargs["api_key"] = api_key
            if (latitude := _maybe_float(weather_sec.get("latitude"))) is not None:
                weather_kwargs["latitude"] = latitude
            if (longitude := _maybe_float(weather_sec.get("longitude"))) is not None:
                weather_kwargs["longitude"] = longitude
            if (units := _maybe_str(weather_sec.get("units"))) is not None:
                units = units.lower()
                if units not in UNIT_SYSTEMS:
                    raise ValueError(f"Unsupported [weather] units '{units}' (expected one of {', '.join(UNIT_SYSTEMS)})")
                weather_kwargs["units"] = units
            if (base_url := _maybe_str(weather_sec.get("base_url"))) is not None:
                weather_kwargs["base_url"] = base_url
            if (timeout := _maybe_float(weather_sec.get("timeout"))) is not None:
                weather_kwargs["timeout"] = timeout
            if (default_temp := _maybe_float(weather_sec.get("default_temperature"))) is not None:
                weather_kwargs["default_temperature"] = default_temp
        weather_cfg = WeatherConfig(**weather_kwargs)

        # --- Fetch fan-out ---
        fetch_kwargs = {}
        if "fetch" in p:
            fetch_sec = p["fetch"]
            if "max_workers" in fetch_sec:
                fetch_kwargs["max_workers"] = max(1, int(fetch_sec["max_workers"]))
            if (deadline := _maybe_float(fetch_sec.get("deadline"))) is not None:
                fetch_kwargs["deadline"] = deadline
        fetch_cfg = FetchConfig(**fetch_kwargs)

        logging_kwargs = {}
        if "logging" in p:
            logging_sec = p["logging"]
            if "console_level" in logging_sec:
                logging_kwargs["console_level"] = logging_sec["console_level"]
            if "console_quiet" in logging_sec:
                logging_kwargs["console_quiet"] = _as_bool(logging_sec["console_quiet"])
            if "debug_modules" in logging_sec:
                raw = logging_sec["debug_modules"]
                logging_kwargs["debug_modules"] = [x.strip() for x in raw.split(",") if x.strip()]
            if "structured_enabled" in logging_sec:
                logging_kwargs["structured_enabled"] = _as_bool(logging_sec["structured_enabled"])
            if "structured_path" in logging_sec:
                logging_kwargs["structured_path"] = _maybe_str(logging_sec["structured_path"])
        logging_cfg = LoggingConfig(**logging_kwargs)

        return AppConfig(
            general=general_cfg,
            envoy=envoy_cfg,
            weather=weather_cfg,
            fetch=fetch_cfg,
            logging=logging_cfg,
        )
