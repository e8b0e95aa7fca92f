"""Conversion between typed records and query/command documents.

Records are pydantic models whose fields carry two independent tags in their
``json_schema_extra``:

* ``query`` - key used when building a filter document from an instance.
  The reserved value ``"_id"`` marks the identifier field, a hex string that
  is converted to an ``ObjectId``.
* ``bson`` - storage field name, optionally followed by options
  (``"name,omitempty"``). Falls back to the field alias when absent. The
  identifier (``"_id"``) is never written by a command document.

Example::

    class User(Record):
        id: str = tagged_field("", query="_id", bson="_id")
        name: str = tagged_field("", query="name", bson="name")

    QueryMap().from_record(User(id="507f191e810c19729de860ea"))
    command_document(SET_OPERATOR, User(name="X"))  # {"$set": {"name": "X"}}
"""

from __future__ import annotations

import types
from dataclasses import dataclass
from typing import Any, Union, get_args, get_origin

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel, ConfigDict, Field

from .errors import InvalidIdentifierError, MalformedInputError
from .utils import ID_KEY, to_object_id

QUERY_TAG = "query"
STORAGE_TAG = "bson"
SET_OPERATOR = "$set"
OMIT_EMPTY = "omitempty"


class Record(BaseModel):
    """Convenience base so records can be built by attribute name or storage alias."""

    model_config = ConfigDict(populate_by_name=True)


def tagged_field(default: Any = ..., *, query: str = "", bson: str = "", **kwargs: Any) -> Any:
    """Build a pydantic ``Field`` carrying query/storage tags."""

    extra = dict(kwargs.pop("json_schema_extra", None) or {})
    if query:
        extra[QUERY_TAG] = query
    if bson:
        extra[STORAGE_TAG] = bson
        storage_name = bson.split(",")[0]
        if storage_name and "alias" not in kwargs:
            kwargs["alias"] = storage_name
    if "default_factory" in kwargs:
        return Field(json_schema_extra=extra or None, **kwargs)
    return Field(default, json_schema_extra=extra or None, **kwargs)


@dataclass(frozen=True)
class FieldTags:
    attribute: str
    query: str
    storage: str
    annotation: Any
    dump_key: str

    @property
    def storage_name(self) -> str:
        return self.storage.split(",")[0]

    @property
    def storage_options(self) -> frozenset[str]:
        return frozenset(part.strip() for part in self.storage.split(",")[1:] if part.strip())

    @property
    def is_identifier(self) -> bool:
        return self.query == ID_KEY


_DESCRIPTORS: dict[type, tuple[FieldTags, ...]] = {}


def describe(record_type: Any) -> tuple[FieldTags, ...]:
    """Return the cached tag descriptor for a record type."""

    if not (isinstance(record_type, type) and issubclass(record_type, BaseModel)):
        raise MalformedInputError("only accept input of type simple record")

    cached = _DESCRIPTORS.get(record_type)
    if cached is not None:
        return cached

    tags = []
    for attribute, info in record_type.model_fields.items():
        extra = info.json_schema_extra if isinstance(info.json_schema_extra, dict) else {}
        query = extra.get(QUERY_TAG) or ""
        storage = extra.get(STORAGE_TAG) or info.serialization_alias or info.alias or ""
        dump_key = info.serialization_alias or info.alias or attribute
        tags.append(FieldTags(attribute, str(query), str(storage), info.annotation, dump_key))

    descriptor = tuple(tags)
    _DESCRIPTORS[record_type] = descriptor
    return descriptor


def _is_str_annotation(annotation: Any) -> bool:
    if annotation is str:
        return True
    if get_origin(annotation) in (Union, getattr(types, "UnionType", Union)):
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        return args == [str]
    return False


def _is_empty(value: Any) -> bool:
    """Zero-value test used by the ``omitempty`` storage option."""
    if value is None or value is False:
        return True
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 0
    if isinstance(value, (str, bytes, list, tuple, dict, set, frozenset)):
        return len(value) == 0
    return False


def _require_record(record: Any) -> BaseModel:
    if not isinstance(record, BaseModel):
        raise MalformedInputError("only accept input of type simple record")
    return record


class QueryMap(dict):
    """Filter document with helpers for building it by hand or from a record."""

    def set_object_id(self, id: str) -> None:
        try:
            self[ID_KEY] = ObjectId(id)
        except (InvalidId, TypeError) as exc:
            raise InvalidIdentifierError(f"invalid object id {id!r}") from exc

    def key_value(self, key: str, val: Any) -> None:
        self[key] = val

    def from_record(self, record: Any) -> "QueryMap":
        """Add the record's query-tagged fields.

        A non-empty identifier wins: the record then contributes only ``_id``.
        """

        record = _require_record(record)
        values = record.model_dump(by_alias=True)
        derived: dict[str, Any] = {}

        for tags in describe(type(record)):
            if not tags.query:
                continue
            if tags.is_identifier:
                if not _is_str_annotation(tags.annotation):
                    raise MalformedInputError("valid _id only of value string")
                value = values.get(tags.dump_key)
                if isinstance(value, str) and value != "":
                    self.set_object_id(value)
                    return self
                continue
            derived[tags.query] = values.get(tags.dump_key)

        self.update(derived)
        return self


def command_document(command: str, record: Any) -> dict[str, Any]:
    """Build ``{command: {storage_name: value}}`` from a record, never touching ``_id``."""

    record = _require_record(record)
    values = record.model_dump(by_alias=True)
    inside: dict[str, Any] = {}

    for tags in describe(type(record)):
        name = tags.storage_name
        if name == "" or name == ID_KEY:
            continue
        value = values.get(tags.dump_key)
        if OMIT_EMPTY in tags.storage_options and _is_empty(value):
            continue
        inside[name] = value

    return {command: inside}


def encode_record(record: Any) -> dict[str, Any]:
    """Dump a record for insertion, keyed by storage alias, dropping ``omitempty`` zero values."""

    record = _require_record(record)
    doc = record.model_dump(by_alias=True)

    for tags in describe(type(record)):
        if OMIT_EMPTY in tags.storage_options and _is_empty(doc.get(tags.dump_key)):
            doc.pop(tags.dump_key, None)

    if ID_KEY in doc:
        if doc[ID_KEY] in (None, ""):
            # let the server assign one
            del doc[ID_KEY]
        else:
            doc[ID_KEY] = to_object_id(doc[ID_KEY])
    return doc
