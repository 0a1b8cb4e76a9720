#!/usr/bin/env python3
"""
Visitor Sheets: log site visitors to a Google Sheet.

Run the server (collector page at /, POST /api/track):
  visitor-sheets run

Check credentials and sheet access:
  visitor-sheets debug

Append a single test row:
  visitor-sheets track --hostname example.com --path /hello
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import List, Optional

from .app import create_app
from .config import DEFAULT_CONFIG_PATH, AppConfig, ServerConfig, load_settings
from .errors import VisitorSheetsError
from .tracker import VisitorTracker
from .visitor import VisitorRecord, iso_timestamp, parse_user_agent

logger = logging.getLogger("VisitorSheets")

CLI_USER_AGENT = "visitor-sheets-cli"


def cmd_debug(settings: AppConfig) -> int:
    try:
        details = VisitorTracker(settings).diagnose()
    except VisitorSheetsError as e:
        print(json.dumps({"status": "failed", "details": str(e)}, indent=2))
        return 1
    print(json.dumps({"status": "success", "details": details}, indent=2))
    return 0


def cmd_track(settings: AppConfig, *, hostname: str, path: str, user_agent: str) -> int:
    device, os_name, browser = parse_user_agent(user_agent)
    record = VisitorRecord(
        timestamp=iso_timestamp(),
        hostname=hostname,
        ip="unknown",
        country="unknown",
        city="unknown",
        asn="",
        device=device,
        os=os_name,
        browser=browser,
        user_agent=user_agent,
        path=path,
    )
    try:
        VisitorTracker(settings).track(record)
    except VisitorSheetsError as e:
        print(f"Failed to track visitor: {e}", file=sys.stderr)
        return 1
    print("Appended: " + json.dumps(record.as_row()))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Visitor Sheets: visitor analytics into Google Sheets")
    ap.add_argument("--config", default=os.getenv("VISITOR_SHEETS_CONFIG", DEFAULT_CONFIG_PATH), help="Path to config.yaml")
    sub = ap.add_subparsers(dest="cmd", required=False)

    runp = sub.add_parser("run", help="Run the server")
    runp.add_argument("--host", default=None)
    runp.add_argument("--port", type=int, default=None)

    sub.add_parser("debug", help="Check credentials, token exchange and sheet access")

    trackp = sub.add_parser("track", help="Append one test row")
    trackp.add_argument("--hostname", default="localhost")
    trackp.add_argument("--path", default="/")
    trackp.add_argument("--user-agent", default=CLI_USER_AGENT)

    args = ap.parse_args(argv)
    try:
        settings = load_settings(args.config)
    except VisitorSheetsError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))

    cmd = args.cmd or "run"
    if cmd == "run":
        server = ServerConfig(
            host=args.host if getattr(args, "host", None) else settings.server.host,
            port=args.port if getattr(args, "port", None) else settings.server.port,
        )
        app = create_app(settings)
        logger.info(f"Serving on http://{server.host}:{server.port}/")
        app.run(host=server.host, port=server.port, debug=False)
        return 0
    if cmd == "debug":
        return cmd_debug(settings)
    if cmd == "track":
        return cmd_track(settings, hostname=args.hostname, path=args.path, user_agent=args.user_agent)
    ap.print_help()
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
