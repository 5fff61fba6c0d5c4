# jobs/__init__.py
import logging

from flask import Blueprint, jsonify
from sqlalchemy.exc import SQLAlchemyError

from db import get_engine
from services.job_catalog import list_jobs

jobs_bp = Blueprint("jobs", __name__)
log = logging.getLogger("app")


@jobs_bp.get("/jobs")
def get_jobs():
    """Return every job with its grade ladder, sorted by label then level."""
    try:
        with get_engine().connect() as conn:
            jobs = list_jobs(conn)
        return jsonify(jobs), 200
    except SQLAlchemyError:
        log.exception("jobs list: db error")
        return jsonify(error="Failed to load jobs"), 500
