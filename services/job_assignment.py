"""
Job assignment: put a validated (job, grade) snapshot onto one character.

Checks run in order and stop at the first failure: character, job, grade.
Nothing is written unless all three pass. The write replaces the whole
`players.job` column (last writer wins); validation and the update are not
in one transaction, so a job or grade deleted in between is not detected.
"""

import logging
import re
from typing import Any, Dict

from sqlalchemy import select, update

from db import tables_from_conn
from services.errors import BadRequest, NotFound
from services.job_catalog import get_grade, get_job
from services.record_codec import codec

logger = logging.getLogger("app")

REQUIRED_MESSAGE = "jobName and gradeLevel are required"


def parse_assignment(body) -> Dict[str, Any]:
    """Validate the POST body; returns {"job_name", "grade_level"}."""
    if not isinstance(body, dict):
        raise BadRequest(REQUIRED_MESSAGE)

    job_name = body.get("jobName")
    grade_level = body.get("gradeLevel")

    if not isinstance(job_name, str) or not job_name.strip():
        raise BadRequest(REQUIRED_MESSAGE)

    if isinstance(grade_level, bool) or grade_level is None:
        raise BadRequest(REQUIRED_MESSAGE)
    if isinstance(grade_level, str):
        text = grade_level.strip()
        if not re.fullmatch(r"-?[0-9]+", text):
            raise BadRequest(REQUIRED_MESSAGE)
        grade_level = int(text)
    elif isinstance(grade_level, float) and grade_level.is_integer():
        grade_level = int(grade_level)
    elif not isinstance(grade_level, int):
        raise BadRequest(REQUIRED_MESSAGE)

    return {"job_name": job_name, "grade_level": grade_level}


def build_assigned_job(job: Dict[str, Any], grade: Dict[str, Any]) -> Dict[str, Any]:
    """Snapshot of a job+grade as stored on the character; always off duty."""
    return {
        "name": job["name"],
        "label": job["label"],
        "grade": {
            "level": grade["level"],
            "name": grade["name"],
        },
        "payment": grade["payment"],
        "onduty": False,
        "isboss": grade["isboss"],
    }


def _character_exists(conn, citizenid: str) -> bool:
    players = tables_from_conn(conn)["players"]
    row = conn.execute(
        select(players.c.citizenid).where(players.c.citizenid == citizenid).limit(1)
    ).first()
    return row is not None


def validate_assignment(conn, citizenid: str, job_name: str, grade_level: int) -> Dict[str, Any]:
    if not _character_exists(conn, citizenid):
        raise NotFound("Player not found")
    job = get_job(conn, job_name)
    grade = get_grade(conn, job_name, grade_level)
    return build_assigned_job(job, grade)


def write_job(conn, citizenid: str, assigned: Dict[str, Any]) -> int:
    players = tables_from_conn(conn)["players"]
    stmt = (
        update(players)
        .where(players.c.citizenid == citizenid)
        .values(job=codec.encode(assigned))
        .with_dialect_options(mysql_limit=1)
    )
    return conn.execute(stmt).rowcount


def assign_job(engine, citizenid: str, job_name: str, grade_level: int) -> Dict[str, Any]:
    """
    Validate, then overwrite the character's job.

    Returns the snapshot that was written (not re-read from the store).
    """
    with engine.connect() as conn:
        assigned = validate_assignment(conn, citizenid, job_name, grade_level)

    with engine.begin() as conn:
        write_job(conn, citizenid, assigned)

    logger.info(
        "job assigned: citizenid=%s job=%s grade=%s",
        citizenid, assigned["name"], assigned["grade"]["level"],
    )
    return assigned
