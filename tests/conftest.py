"""
Shared pytest fixtures for the player admin API test suite.

Every test gets its own SQLite file seeded with a small players/jobs dataset
through SQLAlchemy Core, plus a Flask app and test client pointed at it.
"""

import json
from pathlib import Path

import pytest
from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine

import db
from app import Config, create_app

TEST_LOGGER_KEY = "test-logger-key"

JOBS = [
    {"name": "police", "label": "Police"},
    {"name": "ambulance", "label": "EMS"},
    {"name": "unemployed", "label": "Civilian"},
    {"name": "mechanic", "label": "Mechanic"},
]

# Deliberately out of order; includes a grade for a job that doesn't exist
JOB_GRADES = [
    {"job_name": "police", "grade": 4, "name": "Chief", "payment": 900, "isboss": 1},
    {"job_name": "police", "grade": 3, "name": "Officer", "payment": 500, "isboss": 0},
    {"job_name": "ghostjob", "grade": 0, "name": "Phantom", "payment": 1, "isboss": 0},
    {"job_name": "police", "grade": 0, "name": "Recruit", "payment": 250, "isboss": 0},
    {"job_name": "ambulance", "grade": 1, "name": "Paramedic", "payment": 400, "isboss": 0},
    {"job_name": "unemployed", "grade": 0, "name": "Freelancer", "payment": 10, "isboss": 0},
]

PREVIOUS_POLICE_JOB = {
    "name": "police",
    "label": "Police",
    "grade": {"level": 0, "name": "Recruit"},
    "payment": 250,
    "onduty": True,
    "isboss": False,
}

PLAYERS = [
    {
        "citizenid": "ABC123",
        "userId": "license:aaa",
        "name": "John Doe",
        "money": json.dumps({"cash": 500, "bank": 1000}),
        "job": json.dumps(PREVIOUS_POLICE_JOB),
        "info": None,
        "charinfo": json.dumps({"firstname": "John", "lastname": "Doe"}),
    },
    {
        "citizenid": "DEF456",
        "userId": "license:aaa",
        "name": "Jane Doe",
        "money": "not json",
        "job": None,
        "info": json.dumps({"firstname": "Jane"}),
        "charinfo": json.dumps({"firstname": "Ignored"}),
    },
    {
        "citizenid": "GHI789",
        "userId": "license:bbb",
        "name": "Bob Smith",
        "money": "[1, 2]",
        "job": "{}",
        "info": None,
        "charinfo": None,
    },
]


def define_tables(metadata: MetaData, info_columns=("info", "charinfo")) -> None:
    Table(
        "players",
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("citizenid", String(50), unique=True, nullable=False),
        Column("userId", String(100), nullable=False),
        Column("name", String(100)),
        Column("money", Text),
        Column("job", Text),
        *[Column(name, Text) for name in info_columns],
    )
    Table(
        "jobs",
        metadata,
        Column("name", String(50), primary_key=True),
        Column("label", String(100)),
    )
    Table(
        "job_grades",
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("job_name", String(50), nullable=False),
        Column("grade", Integer, nullable=False),
        Column("name", String(50)),
        Column("payment", Integer, default=0),
        Column("isboss", Integer, default=0),
    )


def seed_database(engine, info_columns=("info", "charinfo"), players=PLAYERS) -> None:
    md = MetaData()
    define_tables(md, info_columns)
    md.create_all(engine)
    with engine.begin() as conn:
        conn.execute(md.tables["jobs"].insert(), JOBS)
        conn.execute(md.tables["job_grades"].insert(), JOB_GRADES)
        rows = [
            {k: v for k, v in p.items() if k not in ("info", "charinfo") or k in info_columns}
            for p in players
        ]
        conn.execute(md.tables["players"].insert(), rows)


@pytest.fixture(scope="function")
def db_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'players.db'}"


@pytest.fixture(scope="function")
def engine(db_url: str):
    """Seeded engine for service-level tests."""
    eng = create_engine(db_url, future=True)
    seed_database(eng)
    yield eng
    db.forget_tables(eng)
    eng.dispose()


@pytest.fixture(scope="function")
def app(engine, db_url: str):
    class TestConfig(Config):
        TESTING = True
        DATABASE_URL = db_url
        LOGGER_KEY = TEST_LOGGER_KEY
        DB_POOL_SIZE = 2
        DB_POOL_TIMEOUT_S = 5

    application = create_app(TestConfig)
    yield application
    db.forget_tables(application.engine)
    application.engine.dispose()


@pytest.fixture(scope="function")
def client(app):
    return app.test_client()


@pytest.fixture(scope="function")
def stored_job(engine):
    """Reader for the raw `players.job` text of one character."""

    def read(citizenid: str):
        md = MetaData()
        players = Table("players", md, autoload_with=engine)
        with engine.connect() as conn:
            return conn.execute(
                players.select().where(players.c.citizenid == citizenid)
            ).mappings().first()["job"]

    return read


@pytest.fixture(scope="function")
def charinfo_engine(tmp_path: Path):
    """Engine whose players table only has the legacy `charinfo` column."""
    eng = create_engine(f"sqlite:///{tmp_path / 'charinfo.db'}", future=True)
    seed_database(eng, info_columns=("charinfo",))
    yield eng
    db.forget_tables(eng)
    eng.dispose()
