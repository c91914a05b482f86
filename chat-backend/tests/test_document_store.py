"""
Tests for the Cloud Firestore adapter, driven by a mocked client.

Covers marker translation on the way in, reference translation on the way
out, how queries are built, and how Firestore errors map to project errors.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest
from google.api_core.exceptions import Aborted, NotFound
from google.cloud import firestore

from core.document_store import (
    SERVER_TIMESTAMP,
    ArrayUnion,
    FirestoreDocumentStore,
    FirestoreTransaction,
    _from_firestore,
    _to_firestore,
)
from core.exceptions import DocumentNotFoundError, TransactionConflictError

pytestmark = pytest.mark.anyio


def snapshot(data):
    snap = MagicMock()
    snap.exists = data is not None
    snap.to_dict.return_value = data
    return snap


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def store(client):
    return FirestoreDocumentStore(client)


@pytest.fixture
def query(client):
    """Chainable query whose stream yields two snapshots."""
    q = MagicMock()
    client.collection.return_value = q
    q.where.return_value = q
    q.order_by.return_value = q
    q.start_after.return_value = q
    q.limit.return_value = q

    async def stream():
        for data in ({"id": "m2"}, {"id": "m1"}):
            yield snapshot(data)

    q.stream.side_effect = stream
    return q


@pytest.fixture
def passthrough_transactional(monkeypatch):
    # The real decorator begins and commits against the server
    monkeypatch.setattr(firestore, "async_transactional", lambda fn: fn)


class TestToFirestore:
    def test_server_timestamp_marker(self):
        assert _to_firestore({"createdAt": SERVER_TIMESTAMP}) == {"createdAt": firestore.SERVER_TIMESTAMP}

    def test_array_union_marker(self):
        converted = _to_firestore({"chatRefs": ArrayUnion(["chats/cab"])})["chatRefs"]

        assert isinstance(converted, firestore.ArrayUnion)
        assert list(converted.values) == ["chats/cab"]

    def test_nested_last_message_timestamp(self):
        data = {"lastMessage": {"id": "m1", "content": "hi", "createdAt": SERVER_TIMESTAMP}}

        converted = _to_firestore(data)

        assert converted["lastMessage"]["createdAt"] is firestore.SERVER_TIMESTAMP
        assert converted["lastMessage"]["content"] == "hi"

    def test_plain_values_untouched(self):
        data = {"username": "alice", "chatRefs": ["chats/x"], "count": 3}

        assert _to_firestore(data) == data


class TestFromFirestore:
    def test_document_reference_becomes_path(self):
        assert _from_firestore(firestore.DocumentReference("chats", "abc")) == "chats/abc"

    def test_references_inside_lists_and_dicts(self):
        data = {
            "chatRefs": [firestore.DocumentReference("chats", "abc"), "chats/def"],
            "nested": {"ref": firestore.DocumentReference("users", "u1")},
        }

        assert _from_firestore(data) == {"chatRefs": ["chats/abc", "chats/def"], "nested": {"ref": "users/u1"}}

    def test_strings_are_not_references(self):
        assert _from_firestore({"path": "chats/abc"}) == {"path": "chats/abc"}


class TestFirestoreReads:
    async def test_get_existing_document(self, store, client):
        client.document.return_value.get = AsyncMock(
            return_value=snapshot({"id": "u1", "chatRefs": [firestore.DocumentReference("chats", "abc")]})
        )

        data = await store.get("users/u1")

        client.document.assert_called_once_with("users/u1")
        assert data == {"id": "u1", "chatRefs": ["chats/abc"]}

    async def test_get_missing_document(self, store, client):
        client.document.return_value.get = AsyncMock(return_value=snapshot(None))

        assert await store.get("users/nobody") is None

    async def test_query_builds_filter_order_cursor_and_limit(self, store, client, query):
        cursor = {"createdAt": "2024-01-01T00:00:00Z"}

        results = await store.query(
            "chats/cab/messages",
            filters={"senderId": "ab"},
            order_by="createdAt",
            descending=True,
            limit=2,
            start_after=cursor,
        )

        client.collection.assert_called_once_with("chats/cab/messages")
        field_filter = query.where.call_args.kwargs["filter"]
        assert (field_filter.field_path, field_filter.op_string, field_filter.value) == ("senderId", "==", "ab")
        query.order_by.assert_called_once_with("createdAt", direction=firestore.Query.DESCENDING)
        query.start_after.assert_called_once_with(cursor)
        query.limit.assert_called_once_with(2)
        assert results == [{"id": "m2"}, {"id": "m1"}]

    async def test_query_without_options_streams_collection(self, store, client, query):
        results = await store.query("users")

        query.where.assert_not_called()
        query.order_by.assert_not_called()
        query.start_after.assert_not_called()
        query.limit.assert_not_called()
        assert len(results) == 2

    async def test_ascending_order(self, store, query):
        await store.query("users", order_by="username")

        query.order_by.assert_called_once_with("username", direction=firestore.Query.ASCENDING)


class TestFirestoreWrites:
    async def test_set_translates_markers(self, store, client):
        client.document.return_value.set = AsyncMock()

        await store.set("users/u1", {"id": "u1", "createdAt": SERVER_TIMESTAMP})

        client.document.return_value.set.assert_awaited_once_with({"id": "u1", "createdAt": firestore.SERVER_TIMESTAMP})

    async def test_update_missing_document(self, store, client):
        client.document.return_value.update = AsyncMock(side_effect=NotFound("no document"))

        with pytest.raises(DocumentNotFoundError) as exc_info:
            await store.update("users/nobody", {"username": "x"})

        assert exc_info.value.path == "users/nobody"

    async def test_batch_commit_missing_document(self, store, client):
        client.batch.return_value.commit = AsyncMock(side_effect=NotFound("no document"))
        batch = store.batch()
        batch.update("chats/missing", {"lastMessage": {"content": "hi"}})

        with pytest.raises(DocumentNotFoundError):
            await batch.commit()

    async def test_batch_writes_go_to_the_sdk_batch(self, store, client):
        sdk_batch = client.batch.return_value
        sdk_batch.commit = AsyncMock()
        batch = store.batch()

        batch.set("chats/cab/messages/m1", {"content": "hi", "createdAt": SERVER_TIMESTAMP})
        batch.update("chats/cab", {"lastMessage": {"content": "hi"}})
        await batch.commit()

        sdk_batch.set.assert_called_once_with(
            client.document.return_value, {"content": "hi", "createdAt": firestore.SERVER_TIMESTAMP}
        )
        sdk_batch.update.assert_called_once_with(client.document.return_value, {"lastMessage": {"content": "hi"}})
        sdk_batch.commit.assert_awaited_once()


class TestFirestoreTransactions:
    async def test_transaction_reads_and_writes_through_sdk_transaction(
        self, store, client, passthrough_transactional
    ):
        sdk_transaction = client.transaction.return_value
        document = client.document.return_value
        document.get = AsyncMock(return_value=snapshot(None))

        async def create(transaction):
            assert isinstance(transaction, FirestoreTransaction)
            existing = await transaction.get("chats/cab")
            transaction.set("chats/cab", {"createdAt": SERVER_TIMESTAMP})
            transaction.update("users/ab", {"chatRefs": ArrayUnion(["chats/cab"])})
            return existing

        assert await store.run_transaction(create) is None

        document.get.assert_awaited_once_with(transaction=sdk_transaction)
        sdk_transaction.set.assert_called_once_with(document, {"createdAt": firestore.SERVER_TIMESTAMP})
        update_data = sdk_transaction.update.call_args.args[1]
        assert isinstance(update_data["chatRefs"], firestore.ArrayUnion)

    async def test_aborted_becomes_conflict(self, store, passthrough_transactional):
        async def contended(transaction):
            raise Aborted("too much contention")

        with pytest.raises(TransactionConflictError):
            await store.run_transaction(contended)

    async def test_not_found_becomes_document_not_found(self, store, passthrough_transactional):
        async def missing(transaction):
            raise NotFound("no document")

        with pytest.raises(DocumentNotFoundError):
            await store.run_transaction(missing)

    async def test_other_errors_propagate(self, store, passthrough_transactional):
        async def failing(transaction):
            raise ValueError("bad member map")

        with pytest.raises(ValueError):
            await store.run_transaction(failing)
