"""Lightweight typing helpers shared by the context and the store."""

from typing import Any, Callable, Mapping, Optional, Protocol


class SessionLike(Protocol):
    """Minimal protocol describing a MongoClient-style session (``client[db][coll]``)."""

    def __getitem__(self, name: str) -> Any:  # pragma: no cover - structural typing only
        ...


MongoDocument = Mapping[str, Any]

Action = Callable[[Optional[Any]], None]
"""Callable run by ``MongoConnectionContext.process`` once per input item."""

SortSpec = list[tuple[str, int]]
