"""Command line entry point: ``python -m relaytrace {entrypoint,worker,all}``."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

import uvicorn

from relaytrace.bootstrap import build_telemetry
from relaytrace.config import load_config
from relaytrace.errors import ConfigError
from relaytrace.instrumentation.app import ROLES, create_app

logger = logging.getLogger("relaytrace")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="relaytrace", description=__doc__)
    parser.add_argument("role", choices=ROLES, help="Which routes this process serves")
    parser.add_argument("--host", help="Listen address (RELAYTRACE_HOST)")
    parser.add_argument("--port", type=int, help="Listen port (RELAYTRACE_PORT)")
    parser.add_argument("--worker-url", help="Base URL of the worker (RELAYTRACE_WORKER_URL)")
    parser.add_argument("--otlp-endpoint", help="OTLP/HTTP collector URL (RELAYTRACE_OTLP_ENDPOINT)")
    parser.add_argument("--config", help="Path to a relaytrace.toml file")
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    overrides = {
        "service": {
            key: value
            for key, value in (("host", args.host), ("port", args.port), ("worker_url", args.worker_url))
            if value is not None
        },
        "telemetry": {"otlp_endpoint": args.otlp_endpoint} if args.otlp_endpoint else {},
    }
    try:
        config = load_config(args.config, overrides=overrides)
    except ConfigError as exc:
        logger.error("%s", exc)
        return 2

    telemetry = build_telemetry(config, role=args.role)
    app = create_app(config, telemetry, role=args.role)
    logger.info("Starting %s on %s:%d", args.role, config.service.host, config.service.port)
    try:
        uvicorn.run(app, host=config.service.host, port=config.service.port, log_level=args.log_level.lower())
    finally:
        telemetry.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
