import pytest

from doc_persistence.context import MongoConnectionContext
from doc_persistence.errors import ContextTypeError


class _OtherClient(dict):
    pass


def test_process_without_items_runs_once_with_none(context):
    seen = []
    context.process(seen.append)
    assert seen == [None]


def test_process_propagates_single_invocation_error(context):
    def boom(_):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        context.process(boom)


def test_process_runs_items_in_order(context):
    seen = []
    context.process(seen.append, "a", "b", "c")
    assert seen == ["a", "b", "c"]


def test_process_stops_at_first_failure(context):
    seen = []

    def action(item):
        seen.append(item)
        if item == "a":
            raise ValueError("bad a")

    with pytest.raises(ValueError, match="bad a"):
        context.process(action, "a", "b")
    assert seen == ["a"]


def test_unwrap_returns_session_of_exact_type(client, context):
    assert context.unwrap(type(client)) is client


def test_unwrap_rejects_other_type(context):
    session = None
    with pytest.raises(ContextTypeError, match="unknown context type _OtherClient"):
        session = context.unwrap(_OtherClient)
    assert session is None


def test_unwrap_rejects_parent_type(context):
    # identity, not isinstance
    with pytest.raises(ContextTypeError):
        context.unwrap(dict)


def test_context_cannot_be_rebound(context):
    with pytest.raises(AttributeError):
        context._client = {}


def test_ping_runs_admin_command(client, context):
    context.ping()
    assert client.commands == ["ping"]


def test_find_omits_empty_sort(client):
    ctx = MongoConnectionContext(client)
    list(ctx.find("db", "coll", {}, limit=3))
    assert client["db"]["coll"].calls == [("find", {}, {"limit": 3, "skip": 0, "sort": None})]
