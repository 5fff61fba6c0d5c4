"""Tests for the JSON-in-column codec (services/record_codec.py)."""

import json
from decimal import Decimal

import pytest

from services.record_codec import (
    INFO_FIELDS,
    as_number,
    character_view,
    codec,
    normalize,
    resolve_field,
)


@pytest.mark.parametrize(
    "raw",
    [None, "", "not json", "{broken", "[1, 2]", '"text"', "42", "null", 42, 3.5, [1], b"\xff\xfe", object(), "[" * 100000, '{"a": ' * 100000],
)
def test_normalize_degrades_to_empty_mapping(raw):
    assert normalize(raw) == {}


def test_normalize_parses_text_and_bytes():
    assert normalize('{"cash": 10}') == {"cash": 10}
    assert normalize(b'{"bank": 5}') == {"bank": 5}
    assert normalize(bytearray(b'{"a": 1}')) == {"a": 1}


def test_normalize_passes_mappings_through_as_copies():
    original = {"cash": 1}
    result = normalize(original)
    assert result == original
    result["cash"] = 2
    assert original["cash"] == 1


def test_resolve_field_prefers_first_non_null_name():
    assert resolve_field({"info": None, "charinfo": "x"}, INFO_FIELDS) == "x"
    assert resolve_field({"info": "a", "charinfo": "b"}, INFO_FIELDS) == "a"
    assert resolve_field({"charinfo": "b"}, INFO_FIELDS) == "b"
    assert resolve_field({}, INFO_FIELDS) is None


def test_character_view_shapes_every_json_field():
    row = {
        "citizenid": "C1",
        "name": "Someone",
        "money": '{"cash": 3}',
        "job": None,
        "info": "garbage",
        "charinfo": '{"firstname": "Never used"}',
        "userId": "license:x",
    }
    assert character_view(row) == {
        "citizenid": "C1",
        "name": "Someone",
        "money": {"cash": 3},
        "job": {},
        "info": {},
    }


def test_encode_is_compact_and_handles_decimals():
    text = codec.encode({"payment": Decimal("500.00"), "rate": Decimal("1.5")})
    assert " " not in text
    assert json.loads(text) == {"payment": 500, "rate": 1.5}


def test_as_number():
    assert as_number(None) == 0
    assert as_number(Decimal("500")) == 500
    assert isinstance(as_number(Decimal("500.00")), int)
    assert as_number(Decimal("12.75")) == 12.75
    assert as_number(7) == 7
