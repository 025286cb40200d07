"""
authlane/records.py -- Credential Record: the serialized login of a user.

Pattern: tagged container. A CredentialRecord holds exactly one of:
  - a restricted mapping copied from the source user (only the configured
    field names; fields the source lacks are stored as None), or
  - the raw source object itself when no field list is configured.

Read access works three ways and all resolve against the same storage:
    record["email"]  record.get("email")  record.email

The identifier field (id_field, "id" by default) is immutable once the
record is built. Writes to it are dropped silently; every other field is
read/write, including fields that were not in the original field list.

Layer rule: no imports from api/, web/, accounts/, or core/.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping, MutableMapping, Sequence
from enum import Enum
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger("authlane.records")

_SLOTS = ("_raw", "_fields", "_id_field")


@runtime_checkable
class UserRecord(Protocol):
    """Capability interface for anything stored as the session credential.

    Custom serialize_user classes implement this so the engine and the
    session binding can read and dump them without knowing their type.
    """

    def __getitem__(self, key: Any) -> Any: ...

    def to_dict(self) -> dict: ...


def _read(source: Any, name: Any) -> Any:
    """Read one attribute from a mapping or an object, None when absent."""
    if isinstance(source, Mapping):
        return source.get(name)
    if isinstance(name, str):
        return getattr(source, name, None)
    return None


def _key_text(key: Any) -> str:
    if isinstance(key, Enum):
        return str(key.value)
    return str(key)


def introspect(obj: Any) -> dict:
    """Return a plain dict of an object's externally visible attributes.

    Resolution order: mappings are copied, objects with to_dict() or
    pydantic's model_dump() are asked for their own dump, dataclasses use
    their declared fields. Anything else contributes its public
    non-callable attributes and properties.
    """
    if isinstance(obj, Mapping):
        return dict(obj)
    if hasattr(obj, "to_dict") and callable(obj.to_dict):
        return dict(obj.to_dict())
    if hasattr(obj, "model_dump") and callable(obj.model_dump):
        return obj.model_dump()
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: getattr(obj, f.name) for f in dataclasses.fields(obj)}

    result: dict = {}
    for name in dir(obj):
        if name.startswith("_"):
            continue
        try:
            value = getattr(obj, name)
        except AttributeError:
            continue
        if callable(value):
            continue
        result[name] = value
    return result


class CredentialRecord:
    """Normalized container for the attributes of a logged-in user.

    Usage:
        record = CredentialRecord({"id": 1, "name": "ada"}, ["id"])
        record["id"]        # 1
        record.name         # None -- not serialized
        record["name"] = "Ada"
        record["id"] = 2    # dropped, record["id"] stays 1

    Attribute-style reads cannot reach fields named like the record's own
    members (get, set, raw, to_dict, ...); hash-style reads always can.
    """

    __slots__ = _SLOTS

    def __init__(self, user: Any, fields: Sequence[Any] | None = None, id_field: Any = "id") -> None:
        object.__setattr__(self, "_id_field", id_field)
        if isinstance(fields, str):
            fields = (fields,)
        if fields:
            object.__setattr__(self, "_raw", None)
            object.__setattr__(self, "_fields", {name: _read(user, name) for name in fields})
        else:
            object.__setattr__(self, "_raw", user)
            object.__setattr__(self, "_fields", None)

    # ------------------------------------------------------------------
    # Variant inspection
    # ------------------------------------------------------------------

    @property
    def is_restricted(self) -> bool:
        """True when only a configured list of fields was copied."""
        return self._fields is not None

    @property
    def raw(self) -> Any:
        """The wrapped user object in raw mode, None for restricted records."""
        return self._raw

    @property
    def id_field(self) -> Any:
        return self._id_field

    # ------------------------------------------------------------------
    # Read / write
    # ------------------------------------------------------------------

    def get(self, key: Any, default: Any = None) -> Any:
        if self._fields is not None:
            value = self._fields.get(key)
        else:
            value = _read(self._raw, key)
        return default if value is None else value

    def set(self, key: Any, value: Any) -> None:
        if key == self._id_field:
            logger.debug("Ignoring write to immutable credential field %r", key)
            return
        if self._fields is not None:
            self._fields[key] = value
        elif isinstance(self._raw, MutableMapping):
            self._raw[key] = value
        elif isinstance(key, str):
            setattr(self._raw, key, value)
        else:
            raise TypeError(f"cannot set non-string key {key!r} on a wrapped object")

    def __getitem__(self, key: Any) -> Any:
        return self.get(key)

    def __setitem__(self, key: Any, value: Any) -> None:
        self.set(key, value)

    def __getattr__(self, name: str) -> Any:
        # Only called when normal lookup fails, i.e. never for slots or methods.
        if name.startswith("_"):
            raise AttributeError(name)
        return self.get(name)

    def __setattr__(self, name: str, value: Any) -> None:
        if name in _SLOTS:
            object.__setattr__(self, name, value)
        else:
            self.set(name, value)

    def __contains__(self, key: Any) -> bool:
        if self._fields is not None:
            return key in self._fields
        if isinstance(self._raw, Mapping):
            return key in self._raw
        return isinstance(key, str) and hasattr(self._raw, key)

    # ------------------------------------------------------------------
    # Dump
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        """Return every stored attribute keyed by original AND string form.

        A record built from {"id": 1, 2: "b"} dumps to
        {"id": 1, 2: "b", "2": "b"} so callers can look keys up either way.
        """
        source = self._fields if self._fields is not None else introspect(self._raw)
        result = dict(source)
        # A string form never shadows a key that already is that string.
        for key, value in source.items():
            if not isinstance(key, str):
                result.setdefault(_key_text(key), value)
        return result

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CredentialRecord):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    __hash__ = None  # mutable container

    def __repr__(self) -> str:
        kind = "fields" if self._fields is not None else "raw"
        return f"CredentialRecord({kind}, {self._id_field}={self.get(self._id_field)!r})"


def dump_record(record: Any) -> dict:
    """Return a JSON-ready dict for storing a record in a cookie session.

    Only string keys survive: Starlette sessions are JSON documents, so the
    string form emitted by to_dict() is the one that round-trips.
    """
    data = record.to_dict() if isinstance(record, UserRecord) else introspect(record)
    return {key: value for key, value in data.items() if isinstance(key, str)}
