from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlsplit

from flask import Flask, Response, jsonify, render_template_string, request

from .config import AppConfig, load_settings
from .errors import ConfigError, VisitorSheetsError
from .page import COLLECTOR_HTML
from .tracker import VisitorTracker
from .visitor import build_visitor_record

logger = logging.getLogger("VisitorSheets")


def _request_hostname() -> str:
    return urlsplit(request.host_url).hostname or ""


def create_app(settings: Optional[AppConfig] = None, tracker: Optional[VisitorTracker] = None) -> Flask:
    settings = settings or load_settings()
    tracker = tracker or VisitorTracker(settings)

    app = Flask(__name__)

    @app.get("/health")
    def health() -> Response:
        return jsonify({"status": "ok"})

    @app.get("/")
    def collector_page() -> Response:
        html = render_template_string(
            COLLECTOR_HTML,
            endpoint=settings.collector.endpoint,
            enabled=settings.collector.enabled,
        )
        resp = Response(html, mimetype="text/html; charset=utf-8")
        resp.headers["Cache-Control"] = "no-store"
        return resp

    # -------- tracking endpoint --------
    @app.post("/track")
    @app.post("/api/track")
    def track() -> Response:
        """
        Record one visit. Body fields are all optional:
          hostname, path, referrer, device, os, browser
        Network and geo fields come from (Cloudflare) request headers.
        """
        payload = request.get_json(force=True, silent=True) or {}
        try:
            record = build_visitor_record(payload, request.headers, default_hostname=_request_hostname())
            tracker.track(record)
        except VisitorSheetsError as e:
            logger.error(f"Error tracking visitor: {e}")
            return jsonify({"error": "Failed to track visitor", "details": str(e)}), 500
        except Exception as e:
            logger.exception("Unexpected error tracking visitor")
            return jsonify({"error": "Failed to track visitor", "details": str(e) or type(e).__name__}), 500
        return jsonify({"success": True})

    if settings.collector.endpoint not in ("/track", "/api/track"):
        # The collector page posts here.
        app.add_url_rule(settings.collector.endpoint, "track_collector", track, methods=["POST"])

    # -------- diagnostics --------
    @app.get("/api/debug-sheets")
    def debug_sheets() -> Response:
        if not settings.debug_enabled:
            return jsonify({"error": "not_found"}), 404
        try:
            details = tracker.diagnose()
        except ConfigError as e:
            logger.error(f"Debug sheets: {e}")
            return jsonify({"error": str(e), "status": "failed", "details": "Configuration missing or invalid"}), 500
        except Exception as e:
            logger.exception("Debug sheets failed")
            return jsonify({"error": "Debug failed", "status": "failed", "details": str(e) or type(e).__name__}), 500
        return jsonify(
            {
                "status": "success",
                "message": "Google Sheets debug completed successfully",
                "details": details,
            }
        )

    return app
