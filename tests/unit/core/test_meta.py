"""Unit tests for core/meta.py"""

import pytest

from blockgen.core import meta
from blockgen.core.errors import MalformedDataError


@pytest.mark.parametrize("value", ["1", 1, True, "true", "YES", " on "])
def test_as_bool_truthy(value):
    assert meta.as_bool(value) is True


@pytest.mark.parametrize("value", ["0", 0, 2, False, "", None, "false", [1]])
def test_as_bool_falsy(value):
    assert meta.as_bool(value) is False


def test_decode_json_passes_through_decoded_values():
    assert meta.decode_json([1, 2]) == [1, 2]
    assert meta.decode_json('{"a": 1}') == {"a": 1}


def test_decode_json_raises_malformed():
    with pytest.raises(MalformedDataError):
        meta.decode_json("not json")


@pytest.mark.parametrize("raw,expected", [
    ([3, 1, 2], [3, 1, 2]),
    ("[3, 1, 2]", [3, 1, 2]),
    (["3", "1"], [3, 1]),
    ([3, 3, 1], [3, 1]),
    ([0, -1, 4], [4]),
    ([True, 2], [2]),
    (["x", 5], [5]),
    ("not json", []),
    ('{"a": 1}', []),
    ("", []),
    (None, []),
])
def test_parse_id_list(raw, expected):
    """Ordered, de-duplicated positive ids; malformed input is an empty list."""
    assert meta.parse_id_list(raw) == expected


def test_parse_id_list_logs_malformed(caplog):
    meta.parse_id_list("not json", context="post 7")
    assert "post 7" in caplog.text


def test_parse_json_object():
    assert meta.parse_json_object('{"category": "text"}') == {"category": "text"}
    assert meta.parse_json_object("[1]") == {}
    assert meta.parse_json_object("{oops") == {}


def test_encode_value():
    assert meta.encode_value("x") == "x"
    assert meta.encode_value(True) == "1"
    assert meta.encode_value(False) == "0"
    assert meta.encode_value([3, 1]) == "[3,1]"
    assert meta.encode_value({"a": 1}) == '{"a":1}'


def test_is_empty():
    assert meta.is_empty(None)
    assert meta.is_empty("  ")
    assert meta.is_empty([])
    assert not meta.is_empty(0)
    assert not meta.is_empty("x")
