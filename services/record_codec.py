"""
JSON-in-column codec for the players table.

``money``, ``job`` and ``info``/``charinfo`` are stored as serialized JSON
text. Reads always come back as a dict: anything missing, malformed, or not
an object decodes to ``{}`` so callers never have to null-check.
"""

import json
import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, Mapping

logger = logging.getLogger(__name__)

# Some frameworks store personal info as `info`, others as `charinfo`
INFO_FIELDS = ("info", "charinfo")


class ColumnJSONEncoder(json.JSONEncoder):
    """Handles the numeric types MySQL hands back (DECIMAL columns)."""

    def default(self, obj):
        if isinstance(obj, Decimal):
            return int(obj) if obj == obj.to_integral_value() else float(obj)
        return super().default(obj)


class JsonColumnCodec:
    """Serialize/deserialize boundary for JSON-shaped columns."""

    def decode(self, raw: Any) -> Dict[str, Any]:
        if isinstance(raw, Mapping):
            return dict(raw)
        if isinstance(raw, (bytes, bytearray)):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError:
                return {}
        if not isinstance(raw, str):
            return {}
        try:
            value = json.loads(raw)
        except (ValueError, RecursionError):
            logger.debug("undecodable JSON column value (%d chars)", len(raw))
            return {}
        return value if isinstance(value, dict) else {}

    def encode(self, value: Mapping[str, Any]) -> str:
        return json.dumps(dict(value), separators=(",", ":"), cls=ColumnJSONEncoder)


codec = JsonColumnCodec()


def normalize(raw: Any) -> Dict[str, Any]:
    return codec.decode(raw)


def resolve_field(row: Mapping[str, Any], names: Iterable[str]) -> Any:
    """First non-null value among ``names``; columns may be absent entirely."""
    for name in names:
        value = row.get(name)
        if value is not None:
            return value
    return None


def character_view(row: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "citizenid": row.get("citizenid"),
        "name": row.get("name"),
        "money": normalize(row.get("money")),
        "job": normalize(row.get("job")),
        "info": normalize(resolve_field(row, INFO_FIELDS)),
    }


def as_number(value: Any):
    """DECIMAL/None -> int when integral, else float; None counts as 0."""
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    number = float(value)
    return int(number) if number.is_integer() else number
