"""Tests for deterministic hashing."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from pathlib import PurePosixPath

import pytest

from tsera.engine.errors import HashError
from tsera.engine.hash import (
    deterministic_timestamp,
    hash_bytes,
    hash_text,
    hash_value,
    stable_stringify,
)


class Color(Enum):
    RED = "red"


@dataclass(frozen=True)
class Point:
    y: int
    x: int


def test_hash_text_is_sha256_hex():
    assert hash_text("") == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
    assert hash_bytes(b"abc") == hash_text("abc")


def test_stable_stringify_sorts_keys_at_every_level():
    value = {"b": {"z": 1, "a": [3, {"y": None, "x": True}]}, "a": "é"}
    assert stable_stringify(value) == '{"a":"é","b":{"a":[3,{"x":true,"y":null}],"z":1}}'


def test_hash_is_independent_of_key_insertion_order():
    first = {"name": "User", "fields": {"id": "string", "email": "string"}}
    second = {"fields": {"email": "string", "id": "string"}, "name": "User"}
    assert hash_value(first, version="1") == hash_value(second, version="1")


def test_hash_changes_with_salt_version_and_value():
    base = hash_value({"a": 1}, version="1", salt="schema")
    assert hash_value({"a": 1}, version="1", salt="doc") != base
    assert hash_value({"a": 1}, version="2", salt="schema") != base
    assert hash_value({"a": 2}, version="1", salt="schema") != base
    assert hash_value({"a": 1}, version="1", salt="schema") == base


def test_tuples_and_lists_keep_order():
    assert stable_stringify((1, 2)) == "[1,2]"
    assert hash_value([1, 2], version="1") != hash_value([2, 1], version="1")


def test_sets_are_order_independent():
    assert stable_stringify({"b", "a", "c"}) == '["a","b","c"]'
    assert stable_stringify(frozenset({3, 1})) == "[1,3]"


def test_datetimes_are_normalized_to_utc_milliseconds():
    aware = datetime(2024, 1, 2, 5, 4, 5, 123456, tzinfo=timezone(timedelta(hours=2)))
    assert stable_stringify(aware) == '"2024-01-02T03:04:05.123Z"'
    assert stable_stringify(date(2024, 1, 2)) == '"2024-01-02"'


def test_large_integers_become_strings():
    assert stable_stringify(2**53 - 1) == str(2**53 - 1)
    assert stable_stringify(2**60) == f'"{2**60}"'


def test_misc_scalar_types():
    assert stable_stringify(Decimal("1.10")) == '"1.10"'
    assert stable_stringify(Color.RED) == '"red"'
    assert stable_stringify(PurePosixPath("a/b.ts")) == '"a/b.ts"'
    assert stable_stringify(b"\x00\x01") == '{"__bytes__":"AAE="}'
    assert stable_stringify(Point(y=2, x=1)) == '{"x":1,"y":2}'


def test_circular_references_use_sentinel():
    value: dict = {"name": "loop"}
    value["self"] = value
    assert stable_stringify(value) == '{"name":"loop","self":"[Circular]"}'


def test_shared_non_circular_references_are_serialized_twice():
    shared = [1]
    assert stable_stringify({"a": shared, "b": shared}) == '{"a":[1],"b":[1]}'


@pytest.mark.parametrize("bad", [float("nan"), float("inf"), object(), lambda: None])
def test_unrepresentable_values_raise(bad):
    with pytest.raises(HashError):
        hash_value({"x": [bad]}, version="1")


def test_hash_error_names_type_and_location():
    with pytest.raises(HashError) as excinfo:
        stable_stringify({"outer": {"inner": object()}})
    assert excinfo.value.value_type == "object"
    assert excinfo.value.location == "$.outer.inner"


def test_non_string_mapping_keys_raise():
    with pytest.raises(HashError):
        stable_stringify({1: "a"})


def test_deterministic_timestamp_shape_and_stability():
    stamp = deterministic_timestamp("CREATE TABLE user ();", version="1", salt="user")
    assert re.fullmatch(r"\d{14}_\d{6}", stamp)
    assert stamp == deterministic_timestamp("CREATE TABLE user ();", version="1", salt="user")
    assert stamp != deterministic_timestamp("CREATE TABLE users ();", version="1", salt="user")

    year, month, day = int(stamp[0:4]), int(stamp[4:6]), int(stamp[6:8])
    hour, minute, second = int(stamp[8:10]), int(stamp[10:12]), int(stamp[12:14])
    assert 2000 <= year <= 2099
    assert 1 <= month <= 12
    assert 1 <= day <= 28
    assert hour < 24 and minute < 60 and second < 60


def test_deterministic_timestamp_matches_hash_slices():
    digest = hash_value("x", version="1")
    stamp = deterministic_timestamp("x", version="1")
    assert stamp[:4] == f"{2000 + int(digest[0:4], 16) % 100:04d}"
    assert stamp[-6:] == f"{int(digest[14:20], 16) % 1_000_000:06d}"
