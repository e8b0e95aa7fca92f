"""MongoDB session bootstrap.

Builds a ``MongoClient`` (optionally with a read preference), wraps it in a
``MongoConnectionContext`` and hands out record stores bound to it::

    from doc_persistence import get_store

    store = get_store()
    store.store("users", User(name="Ada"))
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Optional

from loguru import logger
from pymongo import MongoClient, ReadPreference
from pymongo.errors import PyMongoError

from .context import MongoConnectionContext
from .errors import SessionUnavailableError
from .settings import READ_PREF_PRIMARY, READ_PREF_SECONDARY, MongoSettings, settings
from .store import RecordStore

__all__ = [
    "READ_PREF_PRIMARY",
    "READ_PREF_SECONDARY",
    "MongoConnector",
    "get_connector",
    "get_store",
]


class MongoConnector:
    def __init__(self, context: MongoConnectionContext):
        self._context = context

    @classmethod
    def from_uri(cls, uri: str, read_pref: Optional[str] = None, **client_kwargs: Any) -> "MongoConnector":
        kwargs = dict(client_kwargs)
        if read_pref is not None:
            if read_pref == READ_PREF_SECONDARY:
                kwargs["read_preference"] = ReadPreference.SECONDARY
            else:
                kwargs["read_preference"] = ReadPreference.PRIMARY
        client = MongoClient(uri, **kwargs)
        return cls(MongoConnectionContext(client))

    @classmethod
    def from_settings(cls, config: MongoSettings) -> "MongoConnector":
        return cls.from_uri(
            config.uri,
            read_pref=config.read_preference,
            serverSelectionTimeoutMS=config.server_selection_timeout_ms,
        )

    @property
    def context(self) -> MongoConnectionContext:
        return self._context

    def connect(self) -> None:
        """Ping the server so connection problems surface at startup."""
        try:
            self._context.ping()
        except PyMongoError as exc:
            logger.warning(f"MongoDB ping failed: {exc}")
            raise SessionUnavailableError(str(exc)) from exc


@lru_cache
def get_connector() -> MongoConnector:
    """Return a cached connector configured via ``doc_persistence.settings``."""

    logger.info(f"Connecting to MongoDB (read_preference={settings.read_preference})")
    return MongoConnector.from_settings(settings)


def get_store(db_name: Optional[str] = None) -> RecordStore:
    """Return a record store on the shared connector for ``db_name`` (default ``settings.db_name``)."""

    return RecordStore(get_connector().context, db_name or settings.db_name)
