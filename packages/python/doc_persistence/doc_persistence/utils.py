from typing import Any, Mapping

from bson import ObjectId

ID_KEY = "_id"


def to_object_id(value: Any) -> Any:
    """Return an ObjectId for a valid hex string; anything else is returned unchanged."""
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return value


def serialize_doc(doc: Mapping[str, Any]) -> dict[str, Any]:
    doc = dict(doc)
    if isinstance(doc.get(ID_KEY), ObjectId):
        doc[ID_KEY] = str(doc[ID_KEY])
    return doc


def normalize_filter(query: Mapping[str, Any]) -> dict[str, Any]:
    query = dict(query)
    if ID_KEY in query:
        query[ID_KEY] = to_object_id(query[ID_KEY])
    return query

