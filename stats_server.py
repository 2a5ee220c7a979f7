"""Statistics service entrypoint launching the FastAPI app."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional, Sequence

import uvicorn

from gradestats.data_source import ScoreRecordStore
from gradestats.engine import StatsEngine
from gradestats.errors import StatsError
from gradestats.server import DEFAULT_RECORDS_PATH, create_app
from gradestats.settings import DEFAULT_CONFIG_PATH, load_settings
from gradestats.utils import dumps_json
from utils.logger_setup import setup_logging_from_config


def report_target(value: str) -> str:
    if value != "global" and not value.lstrip("-").isdigit():
        raise argparse.ArgumentTypeError(f"expected 'global' or an integer class id, got {value!r}")
    return value


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the score statistics server")
    parser.add_argument("--config", default=str(DEFAULT_CONFIG_PATH), help="Path to config.yaml")
    parser.add_argument("--records", default=None, help="Score record file (overrides records_path)")
    parser.add_argument("--host", default="127.0.0.1", help="Host interface to bind")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload (development only)")
    parser.add_argument(
        "--report",
        default=None,
        type=report_target,
        metavar="CLASS_ID|global",
        help="Print one statistics result as JSON and exit instead of serving",
    )
    return parser.parse_args(argv)


def run_report(engine: StatsEngine, target: str) -> str:
    if target == "global":
        result = asyncio.run(engine.compute_global_stats())
    else:
        result = asyncio.run(engine.compute_class_stats(int(target)))
    return dumps_json(result.model_dump())


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    config_path = Path(args.config)
    setup_logging_from_config(config_path)
    settings = load_settings(config_path)
    if args.records:
        settings.records_path = args.records

    if args.report:
        engine = StatsEngine(ScoreRecordStore(settings.records_path or DEFAULT_RECORDS_PATH), settings)
        try:
            print(run_report(engine, args.report))
        except StatsError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 1
        return 0

    app = create_app(settings=settings)
    uvicorn.run(app, host=args.host, port=args.port, reload=args.reload)
    return 0


if __name__ == "__main__":
    sys.exit(main())
