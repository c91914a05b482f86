"""
Document store interface and its Cloud Firestore implementation.

Repositories talk to a `DocumentStore` using slash-separated document paths
("users/<uid>", "chats/<id>/messages/<id>"). Two write-time markers stand in
for Firestore field transforms so the same repository code runs against the
in-memory store:

    SERVER_TIMESTAMP   the commit time of the write
    ArrayUnion(values) append values that are not already in the array
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from google.api_core.exceptions import Aborted, NotFound
from google.cloud import firestore
from google.cloud.firestore_v1.base_document import BaseDocumentReference
from google.cloud.firestore_v1.base_query import FieldFilter

from core.exceptions import DocumentNotFoundError, TransactionConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _ServerTimestamp:
    def __repr__(self):
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


class ArrayUnion:
    def __init__(self, values: List[Any]):
        self.values = list(values)

    def __repr__(self):
        return f"ArrayUnion({self.values!r})"


class Transaction(ABC):
    """Reads see committed data; writes are buffered until the transaction commits."""

    @abstractmethod
    async def get(self, path: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def set(self, path: str, data: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def update(self, path: str, data: Dict[str, Any]) -> None:
        ...


class WriteBatch(ABC):
    @abstractmethod
    def set(self, path: str, data: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def update(self, path: str, data: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    async def commit(self) -> None:
        ...


class DocumentStore(ABC):
    @abstractmethod
    async def get(self, path: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def set(self, path: str, data: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    async def update(self, path: str, data: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    async def delete(self, path: str) -> None:
        ...

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        start_after: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """Equality filters, one ordering field and an exclusive start-after cursor."""

    @abstractmethod
    async def run_transaction(self, fn: Callable[[Transaction], Awaitable[T]]) -> T:
        """Run `fn` in a transaction; an exception raised by `fn` aborts it."""

    @abstractmethod
    def batch(self) -> WriteBatch:
        ...


# --- Cloud Firestore ---

def _to_firestore(value: Any) -> Any:
    if value is SERVER_TIMESTAMP:
        return firestore.SERVER_TIMESTAMP
    if isinstance(value, ArrayUnion):
        return firestore.ArrayUnion(value.values)
    if isinstance(value, dict):
        return {k: _to_firestore(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_to_firestore(v) for v in value]
    return value


def _from_firestore(value: Any) -> Any:
    # Documents written by the browser client keep chat references as DocumentReference
    if isinstance(value, BaseDocumentReference):
        return value.path
    if isinstance(value, dict):
        return {k: _from_firestore(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_from_firestore(v) for v in value]
    return value


class FirestoreTransaction(Transaction):
    def __init__(self, client: firestore.AsyncClient, transaction: firestore.AsyncTransaction):
        self.client = client
        self.transaction = transaction

    async def get(self, path: str) -> Optional[Dict[str, Any]]:
        snapshot = await self.client.document(path).get(transaction=self.transaction)
        if not snapshot.exists:
            return None
        return _from_firestore(snapshot.to_dict())

    def set(self, path: str, data: Dict[str, Any]) -> None:
        self.transaction.set(self.client.document(path), _to_firestore(data))

    def update(self, path: str, data: Dict[str, Any]) -> None:
        self.transaction.update(self.client.document(path), _to_firestore(data))


class FirestoreWriteBatch(WriteBatch):
    def __init__(self, client: firestore.AsyncClient):
        self.client = client
        self._batch = client.batch()

    def set(self, path: str, data: Dict[str, Any]) -> None:
        self._batch.set(self.client.document(path), _to_firestore(data))

    def update(self, path: str, data: Dict[str, Any]) -> None:
        self._batch.update(self.client.document(path), _to_firestore(data))

    async def commit(self) -> None:
        try:
            await self._batch.commit()
        except NotFound as exc:
            raise DocumentNotFoundError(str(exc)) from exc


class FirestoreDocumentStore(DocumentStore):
    def __init__(self, client: firestore.AsyncClient):
        self.client = client

    async def get(self, path: str) -> Optional[Dict[str, Any]]:
        snapshot = await self.client.document(path).get()
        if not snapshot.exists:
            return None
        return _from_firestore(snapshot.to_dict())

    async def set(self, path: str, data: Dict[str, Any]) -> None:
        await self.client.document(path).set(_to_firestore(data))

    async def update(self, path: str, data: Dict[str, Any]) -> None:
        try:
            await self.client.document(path).update(_to_firestore(data))
        except NotFound as exc:
            raise DocumentNotFoundError(path) from exc

    async def delete(self, path: str) -> None:
        await self.client.document(path).delete()

    async def query(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        start_after: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        query = self.client.collection(collection)
        for field, value in (filters or {}).items():
            query = query.where(filter=FieldFilter(field, "==", value))
        if order_by:
            direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            query = query.order_by(order_by, direction=direction)
        if start_after:
            query = query.start_after(start_after)
        if limit is not None:
            query = query.limit(limit)
        return [_from_firestore(snapshot.to_dict()) async for snapshot in query.stream()]

    async def run_transaction(self, fn: Callable[[Transaction], Awaitable[T]]) -> T:
        @firestore.async_transactional
        async def _run(transaction):
            return await fn(FirestoreTransaction(self.client, transaction))

        try:
            return await _run(self.client.transaction())
        except Aborted as exc:
            logger.warning("Transaction aborted after retries: %s", exc)
            raise TransactionConflictError(str(exc)) from exc
        except NotFound as exc:
            raise DocumentNotFoundError(str(exc)) from exc

    def batch(self) -> WriteBatch:
        return FirestoreWriteBatch(self.client)
