"""
Append-only store for server events posted by the game server.

Events are arbitrary JSON objects. The server stamps each one with `ts`
(epoch milliseconds) on ingest; `type` is copied into its own column so
reads can filter on it.
"""

import json
import logging
import time
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    BigInteger, Column, Integer, MetaData, String, Table, Text, select,
)
from sqlalchemy.exc import SQLAlchemyError

from services.record_codec import ColumnJSONEncoder, normalize

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100
MAX_LIMIT = 1000
TYPE_MAX_LEN = 100

# Table definition (will be created if it doesn't exist)
_metadata = MetaData()

event_logs = Table(
    "event_logs",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("type", String(TYPE_MAX_LEN), nullable=True, index=True),
    Column("ts", BigInteger, nullable=False, index=True),
    Column("payload_json", Text, nullable=False),
)


def ensure_table(engine) -> None:
    """Create the event_logs table if it doesn't exist."""
    try:
        _metadata.create_all(engine, tables=[event_logs], checkfirst=True)
        logger.info("event_logs table ready")
    except SQLAlchemyError as e:
        logger.error(f"Failed to create event_logs table: {e}")
        raise


def now_ms() -> int:
    return int(time.time() * 1000)


def clamp_limit(raw) -> int:
    """Query-string limit -> 1..MAX_LIMIT; junk or < 1 falls back to the default."""
    try:
        limit = int(raw)
    except (TypeError, ValueError):
        return DEFAULT_LIMIT
    if limit < 1:
        return DEFAULT_LIMIT
    return min(limit, MAX_LIMIT)


def indexed_type(value) -> Optional[str]:
    """Value for the filterable `type` column; anything unfit stays payload-only."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str) or len(value) > TYPE_MAX_LEN:
        return None
    return value


def ingest(conn, event: Dict[str, Any]) -> Dict[str, Any]:
    """Store one event with a server-assigned ts. Returns the stored document."""
    doc = {**event, "ts": now_ms()}
    event_type = indexed_type(doc.get("type"))

    result = conn.execute(
        event_logs.insert().values(
            type=event_type,
            ts=doc["ts"],
            payload_json=json.dumps(doc, separators=(",", ":"), cls=ColumnJSONEncoder),
        )
    )
    doc["_id"] = result.inserted_primary_key[0]
    return doc


def find(conn, event_type: Optional[str] = None, limit: int = DEFAULT_LIMIT) -> List[Dict[str, Any]]:
    """Newest first, optionally filtered to one type."""
    stmt = (
        select(event_logs.c.id, event_logs.c.payload_json)
        .order_by(event_logs.c.ts.desc(), event_logs.c.id.desc())
        .limit(limit)
    )
    if event_type:
        stmt = stmt.where(event_logs.c.type == event_type)

    docs = []
    for row in conn.execute(stmt).mappings():
        doc = normalize(row["payload_json"])
        doc["_id"] = row["id"]
        docs.append(doc)
    return docs
