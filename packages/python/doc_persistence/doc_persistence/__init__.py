"""Reflection-driven document persistence on top of MongoDB.

Example usage in a domain module:

    from doc_persistence import QueryMap, Record, get_store, tagged_field

    class User(Record):
        id: str = tagged_field("", query="_id", bson="_id")
        name: str = tagged_field("", query="name", bson="name")

    store = get_store()
    store.store("users", User(id="507f191e810c19729de860ea", name="Ada"))
    user = store.fetch_one({"_id": "507f191e810c19729de860ea"}, "find", "users", User)
"""

from .connector import MongoConnector, get_connector, get_store
from .context import MongoConnectionContext
from .errors import (
    ContextTypeError,
    InvalidIdentifierError,
    MalformedInputError,
    PersistenceError,
    RecordNotFoundError,
    SessionUnavailableError,
    UnsupportedFetchTypeError,
)
from .mapper import SET_OPERATOR, FieldTags, QueryMap, Record, command_document, describe, tagged_field
from .settings import MongoSettings, settings
from .store import FETCH_AGGREGATE, FETCH_FIND, FetchOptions, RecordStore, split_query

__all__ = [
    "MongoSettings",
    "settings",
    "MongoConnector",
    "get_connector",
    "get_store",
    "MongoConnectionContext",
    "RecordStore",
    "FetchOptions",
    "split_query",
    "FETCH_FIND",
    "FETCH_AGGREGATE",
    "QueryMap",
    "Record",
    "FieldTags",
    "tagged_field",
    "describe",
    "command_document",
    "SET_OPERATOR",
    "PersistenceError",
    "ContextTypeError",
    "SessionUnavailableError",
    "MalformedInputError",
    "InvalidIdentifierError",
    "UnsupportedFetchTypeError",
    "RecordNotFoundError",
]
