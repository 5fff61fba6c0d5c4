"""
Read-side lookups over the players table: account search, full account
listing and single-character lookup.

Every public function takes a `conn`; callers own the connection.
"""

from typing import Any, Dict, List

from sqlalchemy import or_, select

from db import tables_from_conn
from services.errors import NotFound
from services.record_codec import character_view


SEARCH_LIMIT = 20


def search(conn, query: str) -> List[Dict[str, Any]]:
    """
    Case-insensitive substring match on account id or character name.

    Returns one entry per account, in store order, showing the first matching
    character's name. A blank query returns [] without hitting the store.
    """
    q = (query or "").strip()
    if not q:
        return []

    players = tables_from_conn(conn)["players"]
    stmt = (
        select(players.c.userId, players.c.name)
        .where(or_(
            players.c.userId.icontains(q, autoescape=True),
            players.c.name.icontains(q, autoescape=True),
        ))
        .limit(SEARCH_LIMIT)
    )
    rows = conn.execute(stmt).mappings().all()

    seen = set()
    results = []
    for row in rows:
        if row["userId"] in seen:
            continue
        seen.add(row["userId"])
        results.append({"id": row["userId"], "name": row["name"]})
    return results


def get_account(conn, user_id: str) -> Dict[str, Any]:
    players = tables_from_conn(conn)["players"]
    rows = conn.execute(
        select(players).where(players.c.userId == user_id)
    ).mappings().all()

    if not rows:
        raise NotFound("No characters found")

    return {
        "userId": user_id,
        "characters": [character_view(row) for row in rows],
    }


def get_character(conn, citizenid: str) -> Dict[str, Any]:
    players = tables_from_conn(conn)["players"]
    row = conn.execute(
        select(players).where(players.c.citizenid == citizenid).limit(1)
    ).mappings().first()

    if not row:
        raise NotFound("Player not found")
    return character_view(row)

