"""Record store: insert, partial update and fetch of typed records.

All operations are synchronous and go through a shared
``MongoConnectionContext``; errors from the driver propagate unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, TypeVar, get_args, get_origin

from loguru import logger
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING

from .context import MongoConnectionContext
from .errors import MalformedInputError, RecordNotFoundError, UnsupportedFetchTypeError
from .mapper import SET_OPERATOR, command_document, encode_record
from .typing import SortSpec
from .utils import normalize_filter, serialize_doc

FETCH_FIND = "find"
FETCH_AGGREGATE = "aggregate"
MATCH_STAGE = "$match"

PAGE_KEY = "page"
LIMIT_KEY = "limit"
SORTING_KEY = "sorting"

M = TypeVar("M", bound=BaseModel)


def _int_option(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return 0


@dataclass(frozen=True)
class FetchOptions:
    """Pagination and sort controls carried inside a fetch query."""

    page: int = 0
    limit: int = 0
    sorting: str = ""

    @property
    def skip(self) -> int:
        if self.page > 0:
            return self.limit * (self.page - 1)
        return 0

    @property
    def sort(self) -> Optional[SortSpec]:
        parts = self.sorting.split(",")
        if len(parts) == 2 and parts[1] == "desc":
            return [(parts[0], DESCENDING)]
        # NOTE: only the bare "asc" literal sorts ascending, on a field named "asc".
        if self.sorting == "asc":
            return [(parts[0], ASCENDING)]
        return None


def split_query(query: Any) -> tuple[dict[str, Any], FetchOptions]:
    """Separate the reserved control keys from the filter; the input is left untouched."""

    if not isinstance(query, Mapping):
        raise MalformedInputError("query should be of type mapping")

    filter = dict(query)
    page = filter.pop(PAGE_KEY, None)
    limit = filter.pop(LIMIT_KEY, None)
    sorting = filter.pop(SORTING_KEY, None)

    options = FetchOptions(
        page=_int_option(page),
        limit=_int_option(limit),
        sorting=sorting if isinstance(sorting, str) else "",
    )
    return filter, options


def _record_type(output: Any) -> tuple[type[BaseModel], bool]:
    """Return ``(model, many)`` for a ``Model`` or ``list[Model]`` output type."""

    if get_origin(output) in (list, List):
        args = get_args(output)
        if len(args) == 1 and isinstance(args[0], type) and issubclass(args[0], BaseModel):
            return args[0], True
    elif isinstance(output, type) and issubclass(output, BaseModel):
        return output, False

    raise MalformedInputError("expected output as a record type or a list of record type")


class RecordStore:
    """Persistence facade bound to one database on a shared connection context."""

    __slots__ = ("_context", "_db_name")

    def __init__(self, context: MongoConnectionContext, db_name: str):
        object.__setattr__(self, "_context", context)
        object.__setattr__(self, "_db_name", db_name)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    @property
    def db_name(self) -> str:
        return self._db_name

    # ---------------------------------------------------------
    # STORE
    # ---------------------------------------------------------
    def store(self, name: str, data: BaseModel) -> None:
        def _insert(record: BaseModel) -> None:
            logger.debug(f"insert into {self._db_name}.{name}")
            self._context.insert_one(self._db_name, name, encode_record(record))

        self._context.process(_insert, data)

    # ---------------------------------------------------------
    # UPDATE
    # ---------------------------------------------------------
    def update(self, query: Mapping[str, Any], name: str, data: BaseModel) -> None:
        """Apply ``$set`` built from ``data`` to the first document matching ``query``."""

        def _update(_: Any) -> None:
            command = command_document(SET_OPERATOR, data)
            logger.debug(f"update one in {self._db_name}.{name}")
            self._context.update_one(self._db_name, name, normalize_filter(query), command)

        self._context.process(_update)

    # ---------------------------------------------------------
    # FETCH
    # ---------------------------------------------------------
    def fetch(self, query: Mapping[str, Any], fetch_type: str, name: str, output: Any) -> Any:
        """Fetch into ``output``: a record type returns one record, ``list[Model]`` returns a list."""

        split_query(query)  # query shape is checked before the output type
        model, many = _record_type(output)
        if many:
            return self.fetch_many(query, fetch_type, name, model)
        return self.fetch_one(query, fetch_type, name, model)

    def fetch_one(self, query: Mapping[str, Any], fetch_type: str, name: str, model: type[M]) -> M:
        return self._fetch(query, fetch_type, name, model, first=True)[0]

    def fetch_many(self, query: Mapping[str, Any], fetch_type: str, name: str, model: type[M]) -> list[M]:
        return self._fetch(query, fetch_type, name, model, first=False)

    def _fetch(self, query, fetch_type: str, name: str, model: type[M], first: bool) -> list[M]:
        found: list[M] = []

        def _read(_: Any) -> None:
            found.extend(self._decode(query, fetch_type, name, model, first))

        self._context.process(_read)
        return found

    def _cursor(self, query: Mapping[str, Any], fetch_type: str, name: str) -> Iterable[Mapping[str, Any]]:
        filter, options = split_query(query)

        if fetch_type == FETCH_AGGREGATE:
            pipeline = [
                {stage: normalize_filter(spec) if stage == MATCH_STAGE and isinstance(spec, Mapping) else spec}
                for stage, spec in filter.items()
            ]
            return self._context.aggregate(self._db_name, name, pipeline)

        if fetch_type == FETCH_FIND:
            return self._context.find(
                self._db_name,
                name,
                normalize_filter(filter),
                limit=options.limit if options.limit > 0 else 0,
                skip=options.skip,
                sort=options.sort,
            )

        raise UnsupportedFetchTypeError("only accept fetch type aggregate or find")

    def _decode(
        self,
        query: Mapping[str, Any],
        fetch_type: str,
        name: str,
        model: type[M],
        first: bool,
    ) -> list[M]:
        records: list[M] = []
        cursor = self._cursor(query, fetch_type, name)
        try:
            for doc in cursor:
                records.append(model.model_validate(serialize_doc(doc)))
                if first:
                    break
        finally:
            close = getattr(cursor, "close", None)
            if close is not None:
                close()

        if not records:
            logger.debug(f"no documents matched in {self._db_name}.{name}")
            raise RecordNotFoundError("data not found")
        return records
