#!/usr/bin/env python3
"""SitePilot static site deployment server."""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path

import uvicorn

from . import config
from .db import init_db
from .service import SitePilot


class LogFormatter(logging.Formatter):
    """``[HH:MM:SS] message`` lines, or one JSON object per line."""

    def __init__(self, json_logs: bool = False):
        super().__init__()
        self.json_logs = json_logs

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        if self.json_logs:
            return json.dumps({
                "time": datetime.fromtimestamp(record.created).isoformat(),
                "level": record.levelname.lower(),
                "logger": record.name,
                "message": message,
            })
        return f"[{datetime.fromtimestamp(record.created).strftime('%H:%M:%S')}] {message}"


def configure_logging(json_logs: bool = False, level: int = logging.INFO) -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(LogFormatter(json_logs))
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)


def bootstrap() -> SitePilot:
    """Prepare the hosting root and database, and seed initial data."""
    config.SITES_DIR.mkdir(parents=True, exist_ok=True)
    init_db()
    pilot = SitePilot.from_config()
    pilot.deployer.recover()
    pilot.settings.seed_allowed_domains(config.BASE_DOMAIN)
    if config.AUTH_ENABLED:
        pilot.ensure_default_operator(config.AUTH_DEFAULT_USER, config.AUTH_DEFAULT_PASS)
    return pilot


def create_server_app():
    """App factory for uvicorn, bootstrapping state first."""
    from .app import create_app

    configure_logging(config.JSON_LOGS)
    return create_app(bootstrap())


def main() -> None:
    parser = argparse.ArgumentParser(description="Static site deployment server")
    parser.add_argument("--port", type=int, default=int(os.environ.get("SITEPILOT_PORT", 3000)))
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind to")
    parser.add_argument("--sites-dir", help="Hosting root (env: SITEPILOT_SITES_DIR)")
    parser.add_argument("--dev", action="store_true", help="Dev mode: bypass operator authentication")
    parser.add_argument("--json-logs", action="store_true", help="Log one JSON object per line")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    args = parser.parse_args()

    # Args override env vars
    if args.sites_dir:
        config.SITES_DIR = Path(args.sites_dir)
        os.environ["SITEPILOT_SITES_DIR"] = args.sites_dir
    if args.dev:
        config.DEV_MODE = True
        os.environ["SITEPILOT_DEV_MODE"] = "true"
    if args.json_logs:
        config.JSON_LOGS = True
        os.environ["SITEPILOT_JSON_LOGS"] = "true"

    configure_logging(config.JSON_LOGS)
    logger = logging.getLogger("sitepilot")

    if not (config.DEV_MODE or config.ADMIN_TOKEN or config.AUTH_ENABLED):
        logger.error("No operator authentication configured")
        logger.error("Set SITEPILOT_ADMIN_TOKEN or SITEPILOT_AUTH_ENABLED=true")
        logger.error("Or use --dev flag for local development")
        sys.exit(1)

    logger.info("Server running on http://localhost:%d", args.port)
    logger.info("Serving sites from %s", config.SITES_DIR)
    if config.DEV_MODE:
        logger.warning("DEV MODE: Operator authentication bypassed")

    if args.reload:
        # The reloader re-imports the app in a fresh process, so flags travel via env
        uvicorn.run(
            "sitepilot.main:create_server_app",
            factory=True,
            host=args.host,
            port=args.port,
            reload=True,
        )
    else:
        from .app import create_app

        uvicorn.run(create_app(bootstrap()), host=args.host, port=args.port, log_config=None)


if __name__ == "__main__":
    main()
