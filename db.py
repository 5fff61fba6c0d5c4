# db.py
import logging
from typing import Dict

from flask import current_app
from sqlalchemy import MetaData, Table, create_engine
from sqlalchemy.engine import URL

log = logging.getLogger("app")

# Reflected tables, cached per-engine
_table_cache: Dict[int, Dict[str, Table]] = {}


def database_url_from(config) -> str:
    """
    Resolve the store URL from config.

    DATABASE_URL wins; otherwise a MySQL URL is assembled from the DB_HOST /
    DB_USER / DB_PASS / DB_NAME variables the game server already exports.
    """
    db_url = config.get("DATABASE_URL")
    if db_url:
        return db_url
    if not config.get("DB_HOST"):
        return ""
    return URL.create(
        "mysql+pymysql",
        username=config.get("DB_USER"),
        password=config.get("DB_PASS"),
        host=config.get("DB_HOST"),
        port=config.get("DB_PORT"),
        database=config.get("DB_NAME"),
    ).render_as_string(hide_password=False)


def normalize_url(db_url: str, connect_timeout_s: int) -> str:
    # SAFETY NET: force PyMySQL if someone pasted mysql://
    if db_url.startswith("mysql://"):
        db_url = "mysql+pymysql://" + db_url[len("mysql://"):]
        log.info("Normalized DATABASE_URL to PyMySQL")

    if not db_url.startswith("mysql"):
        return db_url

    if "charset=" not in db_url:
        sep = "&" if "?" in db_url else "?"
        db_url = f"{db_url}{sep}charset=utf8mb4"
    if "connect_timeout=" not in db_url:
        sep = "&" if "?" in db_url else "?"
        db_url = f"{db_url}{sep}connect_timeout={connect_timeout_s}"
    return db_url


def build_engine(config):
    """
    Build the pooled engine for the players database.

    The pool is fixed-size (no overflow by default); requests beyond capacity
    wait up to DB_POOL_TIMEOUT_S for a connection. Statements are bounded by
    MAX_EXECUTION_TIME and the driver's socket read/write timeouts.
    """
    db_url = database_url_from(config)
    if not db_url:
        log.warning("DATABASE_URL missing at runtime")
        return None

    db_url = normalize_url(db_url, config["DB_CONNECT_TIMEOUT_S"])

    connect_args = {}
    if db_url.startswith("mysql"):
        connect_args = {
            "init_command": f"SET SESSION MAX_EXECUTION_TIME={config['DB_STATEMENT_TIMEOUT_MS']}",
            "read_timeout": config["DB_READ_TIMEOUT_S"],
            "write_timeout": config["DB_WRITE_TIMEOUT_S"],
        }

    return create_engine(
        db_url,
        pool_size=config["DB_POOL_SIZE"],
        max_overflow=config["DB_MAX_OVERFLOW"],
        pool_timeout=config["DB_POOL_TIMEOUT_S"],
        pool_recycle=config["DB_POOL_RECYCLE_S"],
        pool_pre_ping=True,
        connect_args=connect_args,
        future=True,
    )


def get_engine():
    """Return the engine attached to the running app by create_app()."""
    engine = getattr(current_app, "engine", None)
    if engine is None:
        raise RuntimeError("DATABASE_URL is not set")
    return engine


def _reflect(bind) -> Dict[str, Table]:
    md = MetaData()
    return {
        "players": Table("players", md, autoload_with=bind),
        "jobs": Table("jobs", md, autoload_with=bind),
        "job_grades": Table("job_grades", md, autoload_with=bind),
    }


def get_tables(engine) -> Dict[str, Table]:
    eid = id(engine)
    if eid not in _table_cache:
        _table_cache[eid] = _reflect(engine)
    return _table_cache[eid]


def tables_from_conn(conn) -> Dict[str, Table]:
    # Reflect on the caller's connection; a second checkout can starve a fixed pool
    eid = id(conn.engine)
    if eid not in _table_cache:
        _table_cache[eid] = _reflect(conn)
    return _table_cache[eid]


def forget_tables(engine) -> None:
    """Drop the reflection cache for an engine (after dispose, or in tests)."""
    _table_cache.pop(id(engine), None)
