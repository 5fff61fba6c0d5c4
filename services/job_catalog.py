"""
Job catalog: jobs and their grade ladders.

Listing joins in memory (one query for jobs, one for grades) rather than
querying grades per job.
"""

from typing import Any, Dict, List

from sqlalchemy import and_, select

from db import tables_from_conn
from services.errors import InvalidGrade, InvalidJob
from services.record_codec import as_number


def _is_boss(flag) -> bool:
    return flag is not None and int(flag) == 1


def _grade_to_dict(row) -> Dict[str, Any]:
    return {
        "level": int(row["grade"]),
        "name": row["grade_name"],
        # No separate label column; the grade name doubles as its label
        "label": row["grade_name"],
        "payment": as_number(row["payment"]),
        "isboss": _is_boss(row["isboss"]),
    }


def list_jobs(conn) -> List[Dict[str, Any]]:
    """Jobs ordered by label, each with grades ordered by level.

    Grades whose job_name matches no job are dropped.
    """
    t = tables_from_conn(conn)
    jobs = t["jobs"]
    grades = t["job_grades"]

    job_rows = conn.execute(
        select(jobs.c.name, jobs.c.label).order_by(jobs.c.label.asc())
    ).mappings().all()
    grade_rows = conn.execute(
        select(
            grades.c.job_name,
            grades.c.grade,
            grades.c.name.label("grade_name"),
            grades.c.payment,
            grades.c.isboss,
        ).order_by(grades.c.job_name, grades.c.grade)
    ).mappings().all()

    by_job: Dict[str, Dict[str, Any]] = {}
    for j in job_rows:
        by_job[j["name"]] = {"name": j["name"], "label": j["label"], "grades": []}

    for g in grade_rows:
        job = by_job.get(g["job_name"])
        if job is not None:
            job["grades"].append(_grade_to_dict(g))

    return list(by_job.values())


def get_job(conn, job_name: str) -> Dict[str, Any]:
    jobs = tables_from_conn(conn)["jobs"]
    row = conn.execute(
        select(jobs.c.name, jobs.c.label).where(jobs.c.name == job_name).limit(1)
    ).mappings().first()
    if not row:
        raise InvalidJob()
    return {"name": row["name"], "label": row["label"]}


def get_grade(conn, job_name: str, level: int) -> Dict[str, Any]:
    grades = tables_from_conn(conn)["job_grades"]
    row = conn.execute(
        select(
            grades.c.grade,
            grades.c.name.label("grade_name"),
            grades.c.payment,
            grades.c.isboss,
        )
        .where(and_(grades.c.job_name == job_name, grades.c.grade == level))
        .limit(1)
    ).mappings().first()
    if not row:
        raise InvalidGrade()
    return _grade_to_dict(row)
