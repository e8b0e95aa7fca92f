"""Connection context wrapping a single MongoDB session.

The context is the only seam between the record store and the driver. It
exposes the handful of collection operations the store needs, plus ``unwrap``
for callers that want the concrete client for anything else (indexes,
sessions, admin commands).
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Sequence, TypeVar

from loguru import logger

from .errors import ContextTypeError
from .typing import Action, MongoDocument, SessionLike, SortSpec

T = TypeVar("T")


class MongoConnectionContext:
    """Holds exactly one session; never rebound after construction."""

    __slots__ = ("_client",)

    def __init__(self, client: SessionLike):
        object.__setattr__(self, "_client", client)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    def unwrap(self, session_type: type[T]) -> T:
        """Return the wrapped session if its runtime type is exactly ``session_type``."""

        if type(self._client) is not session_type:
            type_name = getattr(session_type, "__name__", str(session_type))
            raise ContextTypeError(f"unknown context type {type_name}")
        return self._client

    def process(self, action: Action, *items: Any) -> None:
        """Run ``action`` once per item in order, or once with ``None`` when no items are given.

        The first exception stops the loop and propagates unchanged.
        """

        if items:
            for item in items:
                action(item)
        else:
            action(None)

    # ---------------------------------------------------------
    # Collection capability used by RecordStore
    # ---------------------------------------------------------
    def _collection(self, db_name: str, name: str):
        return self._client[db_name][name]

    def ping(self) -> None:
        self._client.admin.command("ping")

    def insert_one(self, db_name: str, name: str, document: MongoDocument) -> Any:
        result = self._collection(db_name, name).insert_one(document)
        return result.inserted_id

    def update_one(self, db_name: str, name: str, filter: MongoDocument, update: MongoDocument) -> Any:
        return self._collection(db_name, name).update_one(filter, update)

    def find(
        self,
        db_name: str,
        name: str,
        filter: MongoDocument,
        *,
        limit: int = 0,
        skip: int = 0,
        sort: Optional[SortSpec] = None,
    ) -> Iterable[Mapping[str, Any]]:
        kwargs: dict[str, Any] = {"limit": limit, "skip": skip}
        if sort:
            kwargs["sort"] = sort
        logger.debug(f"find on {db_name}.{name} limit={limit} skip={skip} sort={sort}")
        return self._collection(db_name, name).find(filter, **kwargs)

    def aggregate(self, db_name: str, name: str, pipeline: Sequence[MongoDocument]) -> Iterable[Mapping[str, Any]]:
        logger.debug(f"aggregate on {db_name}.{name} with {len(pipeline)} stage(s)")
        return self._collection(db_name, name).aggregate(list(pipeline))
