# event_logs/__init__.py
"""
Server event log blueprint: ingestion from the game server and filtered
reads for the dashboard. Endpoints under /api/ plus the /logs page.
"""

import hmac
import logging

from flask import Blueprint, current_app, jsonify, request, send_from_directory
from sqlalchemy.exc import SQLAlchemyError

from db import get_engine
from services.event_log import clamp_limit, find, ingest

event_logs_bp = Blueprint("event_logs", __name__)
log = logging.getLogger("app")


def _api_key_ok() -> bool:
    needed = current_app.config.get("LOGGER_KEY")
    if not needed:
        return True
    given = request.headers.get("X-API-Key", "")
    return hmac.compare_digest(given.encode("utf-8"), needed.encode("utf-8"))


@event_logs_bp.get("/logs")
def logs_page():
    return send_from_directory(current_app.config["PUBLIC_DIR"], "logs.html")


@event_logs_bp.get("/api/logs")
def get_logs():
    """Newest events first.  Query: ?type=&limit="""
    event_type = request.args.get("type") or None
    limit = clamp_limit(request.args.get("limit"))
    try:
        with get_engine().connect() as conn:
            docs = find(conn, event_type=event_type, limit=limit)
        log.info("[DB] fetched %d logs", len(docs))
        return jsonify(docs), 200
    except SQLAlchemyError:
        log.exception("logs fetch: db error")
        return jsonify(error="Failed to load logs"), 500


@event_logs_bp.post("/api/ingest")
def ingest_log():
    if not _api_key_ok():
        return jsonify(error="invalid api key"), 403

    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return jsonify(error="JSON object body required"), 400

    try:
        with get_engine().begin() as conn:
            doc = ingest(conn, body)
        log.info("[INGEST] type=%s id=%s", doc.get("type"), doc["_id"])
        return jsonify(ok=True), 200
    except SQLAlchemyError:
        log.exception("Failed to insert log")
        return jsonify(error="insert failed"), 500
