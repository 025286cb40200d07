"""
tests/test_records.py -- Unit tests for authlane/records.py (CredentialRecord).

Covers:
  - Hash-style, get() and attribute-style reads resolve to the same value
  - Field-restricted records copy only configured fields, None for the rest
  - The identifier field is immutable; other fields are writable
  - to_dict() exposes keys in original and string form
  - Raw records over plain objects, dataclasses and pydantic models
  - dump_record() keeps only JSON-ready string keys
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import pytest
from pydantic import BaseModel

from authlane.records import CredentialRecord, UserRecord, dump_record, introspect


class MockUser:
    def __init__(self) -> None:
        self.id = 1
        self.name = "tester"

    @property
    def display(self) -> str:
        return self.name.title()

    def greet(self) -> str:
        return f"hi {self.name}"


@dataclass
class DataUser:
    id: int
    email: str


class ModelUser(BaseModel):
    id: int
    email: str


class Field(Enum):
    ID = "id"


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


class TestReads:
    def test_hash_style_access(self) -> None:
        record = CredentialRecord({"id": 1, "name": "tester"})
        assert record["id"] == 1
        assert record["name"] == "tester"

    def test_attribute_style_access(self) -> None:
        record = CredentialRecord({"id": 1, "name": "tester"})
        assert record.id == 1
        assert record.name == "tester"

    def test_attribute_and_key_reads_agree_on_objects(self) -> None:
        record = CredentialRecord(MockUser())
        assert record.name == record["name"] == record.get("name") == "tester"

    def test_missing_key_reads_none(self) -> None:
        record = CredentialRecord({"id": 1})
        assert record["nope"] is None
        assert record.nope is None
        assert record.get("nope", "fallback") == "fallback"

    def test_private_attribute_lookup_raises(self) -> None:
        record = CredentialRecord({"id": 1})
        with pytest.raises(AttributeError):
            record._secret  # noqa: B018

    def test_contains(self) -> None:
        assert "id" in CredentialRecord({"id": 1})
        assert "name" in CredentialRecord(MockUser())
        assert "name" not in CredentialRecord(MockUser(), ["id"])


# ---------------------------------------------------------------------------
# Field restriction
# ---------------------------------------------------------------------------


class TestFieldRestriction:
    def test_specific_fields_from_mapping(self) -> None:
        record = CredentialRecord({"id": 1, "name": "a"}, ["id"])
        assert record["id"] == 1
        assert record["name"] is None
        assert record.is_restricted
        assert record.raw is None

    def test_specific_fields_from_object(self) -> None:
        record = CredentialRecord(MockUser(), ["id"])
        assert record["id"] == 1
        assert record["name"] is None

    def test_configured_field_missing_on_source_is_none(self) -> None:
        record = CredentialRecord({"id": 1}, ["id", "email"])
        assert record.to_dict() == {"id": 1, "email": None}

    def test_restricted_record_does_not_track_source(self) -> None:
        source = {"id": 1, "name": "a"}
        record = CredentialRecord(source, ["id", "name"])
        source["name"] = "changed"
        assert record["name"] == "a"

    def test_empty_field_list_wraps_whole_object(self) -> None:
        user = MockUser()
        record = CredentialRecord(user, [])
        assert not record.is_restricted
        assert record.raw is user


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


class TestWrites:
    def test_can_change_fields_after_init_from_object(self) -> None:
        record = CredentialRecord(MockUser(), ["id"])
        record["name"] = "Tester"
        assert record["name"] == "Tester"

    def test_can_change_fields_after_init_from_mapping(self) -> None:
        record = CredentialRecord({"id": 1, "name": None}, ["id"])
        record["name"] = "Tester"
        assert record["name"] == "Tester"

    def test_attribute_write(self) -> None:
        record = CredentialRecord({"id": 1}, ["id"])
        record.name = "Tester"
        assert record["name"] == "Tester"

    @pytest.mark.parametrize("fields", [["id"], None])
    def test_id_is_immutable(self, fields) -> None:
        record = CredentialRecord(MockUser(), fields)
        record["id"] = 2
        record.id = 3
        record.set("id", 4)
        assert record["id"] == 1

    def test_custom_id_field_is_the_immutable_one(self) -> None:
        record = CredentialRecord({"uid": "u-1", "id": 1}, ["uid", "id"], id_field="uid")
        record["uid"] = "u-2"
        record["id"] = 2
        assert record["uid"] == "u-1"
        assert record["id"] == 2

    def test_raw_mapping_write_goes_to_wrapped_mapping(self) -> None:
        source = {"id": 1}
        record = CredentialRecord(source)
        record["name"] = "x"
        assert source["name"] == "x"

    def test_raw_object_write_sets_attribute(self) -> None:
        user = MockUser()
        record = CredentialRecord(user)
        record.name = "changed"
        assert user.name == "changed"


# ---------------------------------------------------------------------------
# Dump
# ---------------------------------------------------------------------------


class TestToDict:
    def test_returns_dict_for_object(self) -> None:
        assert isinstance(CredentialRecord(MockUser()).to_dict(), dict)

    def test_object_dump_uses_public_accessors(self) -> None:
        data = CredentialRecord(MockUser()).to_dict()
        assert data == {"id": 1, "name": "tester", "display": "Tester"}

    def test_mapping_round_trip_keeps_every_key(self) -> None:
        source = {"id": 1, "name": "tester", 7: "seven", Field.ID: "enum"}
        data = CredentialRecord(source).to_dict()
        for key, value in source.items():
            assert data[key] == value
        assert data["7"] == "seven"
        assert data["id"] == 1
        assert data[Field.ID] == "enum"

    def test_dataclass_dump(self) -> None:
        assert CredentialRecord(DataUser(1, "a@example.org")).to_dict() == {"id": 1, "email": "a@example.org"}

    def test_pydantic_dump(self) -> None:
        assert CredentialRecord(ModelUser(id=1, email="a@example.org")).to_dict() == {"id": 1, "email": "a@example.org"}

    def test_dump_record_keeps_string_keys_only(self) -> None:
        record = CredentialRecord({"id": 1, 7: "seven"})
        assert dump_record(record) == {"id": 1, "7": "seven"}

    def test_dump_record_introspects_foreign_objects(self) -> None:
        assert dump_record(DataUser(2, "b@example.org")) == {"id": 2, "email": "b@example.org"}

    def test_introspect_skips_methods(self) -> None:
        assert "greet" not in introspect(MockUser())


def test_record_satisfies_user_record_protocol() -> None:
    assert isinstance(CredentialRecord({"id": 1}), UserRecord)
    assert not isinstance({"id": 1}, UserRecord)


def test_records_compare_by_content() -> None:
    assert CredentialRecord({"id": 1, "x": 2}, ["id"]) == CredentialRecord({"id": 1}, ["id"])
    assert CredentialRecord({"id": 1}, ["id"]) != CredentialRecord({"id": 2}, ["id"])


def test_single_field_name_string_is_one_field() -> None:
    record = CredentialRecord({"id": 1, "i": 2, "d": 3}, "id")
    assert record.is_restricted
    assert record.to_dict() == {"id": 1}
