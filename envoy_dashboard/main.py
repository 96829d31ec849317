# envoy_dashboard/main.py

import time

from .cli import build_parser
from .config import Config
from .logging import ConsoleLog, StructuredLog, RunLogEntry

from .services.output_formatter import emit_json, emit_human, snapshot_payload
from .services.snapshot_service import SnapshotService


COMMAND_SECTIONS = {
    "snapshot": ("weather", "solar"),
    "solar": ("solar",),
    "weather": ("weather",),
}


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    app_cfg = Config.load(args.config)
    console_logger = ConsoleLog(
        level="DEBUG" if args.debug else app_cfg.logging.console_level,
        quiet=args.quiet or app_cfg.logging.console_quiet,
        debug_modules=app_cfg.logging.debug_modules,
    )
    log = console_logger.setup()
    structured_logger = StructuredLog(
        app_cfg.logging.structured_path,
        app_cfg.logging.structured_enabled,
    )

    sections = COMMAND_SECTIONS.get(args.command)
    if sections is None:
        raise ValueError(f"Unsupported command: {args.command}")

    service = SnapshotService(app_cfg, log)
    captured_at = service.clock()
    started = time.monotonic()
    raw = service.collect()
    elapsed = time.monotonic() - started
    snapshot = service.compose(raw, captured_at)

    if args.json:
        emit_json(snapshot, sections)
    else:
        emit_human(snapshot, sections, units=app_cfg.weather.units)

    if structured_logger.enabled:
        structured_logger.write(
            RunLogEntry(
                timestamp=captured_at.isoformat(),
                snapshot=snapshot_payload(snapshot),
                unavailable_sources=raw.unavailable() or None,
                command=args.command,
                elapsed_s=round(elapsed, 3),
            )
        )


if __name__ == "__main__":
    main()
