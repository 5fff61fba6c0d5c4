# players/__init__.py
"""
Player blueprint: account search, account/character lookup and job
assignment. All endpoints under /api/.
"""

import logging

from flask import Blueprint, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from db import get_engine
from services.errors import ServiceError
from services.job_assignment import assign_job, parse_assignment
from services.player_directory import get_account, get_character, search

players_bp = Blueprint("players", __name__)
log = logging.getLogger("app")


@players_bp.get("/players")
def search_players():
    """Search accounts by userId or character name.  Query: ?q="""
    q = request.args.get("q", "")
    if not q.strip():
        return jsonify([]), 200
    try:
        with get_engine().connect() as conn:
            results = search(conn, q)
        return jsonify(results), 200
    except SQLAlchemyError:
        log.exception("players search: db error")
        return jsonify(error="Search failed"), 500


@players_bp.get("/account/<string:user_id>")
def account_characters(user_id: str):
    """All characters owned by one account."""
    try:
        with get_engine().connect() as conn:
            account = get_account(conn, user_id)
        return jsonify(account), 200
    except ServiceError as e:
        return jsonify(error=e.message), e.status
    except SQLAlchemyError:
        log.exception("account lookup: db error")
        return jsonify(error="Lookup failed"), 500


@players_bp.get("/player/<string:citizenid>")
def player_details(citizenid: str):
    try:
        with get_engine().connect() as conn:
            character = get_character(conn, citizenid)
        return jsonify(character), 200
    except ServiceError as e:
        return jsonify(error=e.message), e.status
    except SQLAlchemyError:
        log.exception("player lookup: db error")
        return jsonify(error="Lookup failed"), 500


@players_bp.post("/player/<string:citizenid>/job")
def change_job(citizenid: str):
    """Assign a job grade to a character.  Body: {jobName: str, gradeLevel: int}"""
    try:
        args = parse_assignment(request.get_json(silent=True))
        job = assign_job(get_engine(), citizenid, args["job_name"], args["grade_level"])
        return jsonify(ok=True, job=job), 200
    except ServiceError as e:
        return jsonify(error=e.message), e.status
    except SQLAlchemyError:
        log.exception("change job: db error")
        return jsonify(error="Failed to change job"), 500
