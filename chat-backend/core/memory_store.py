"""In-process document store with the same transaction and batch semantics as Firestore."""
import asyncio
import copy
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, TypeVar

from core.document_store import SERVER_TIMESTAMP, ArrayUnion, DocumentStore, Transaction, WriteBatch
from core.exceptions import DocumentNotFoundError

T = TypeVar("T")

# ("set" | "update", path, data)
Write = Tuple[str, str, Dict[str, Any]]


def _parent(path: str) -> str:
    return path.rsplit("/", 1)[0] if "/" in path else ""


def _resolve(value: Any, current: Any, now: datetime) -> Any:
    if value is SERVER_TIMESTAMP:
        return now
    if isinstance(value, ArrayUnion):
        merged = list(current) if isinstance(current, list) else []
        for item in value.values:
            if item not in merged:
                merged.append(item)
        return merged
    if isinstance(value, dict):
        return {k: _resolve(v, None, now) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve(v, None, now) for v in value]
    return copy.deepcopy(value)


class MemoryTransaction(Transaction):
    def __init__(self, store: "MemoryDocumentStore"):
        self.store = store
        self.writes: List[Write] = []

    async def get(self, path: str) -> Optional[Dict[str, Any]]:
        return self.store._read(path)

    def set(self, path: str, data: Dict[str, Any]) -> None:
        self.writes.append(("set", path, data))

    def update(self, path: str, data: Dict[str, Any]) -> None:
        self.writes.append(("update", path, data))


class MemoryWriteBatch(WriteBatch):
    def __init__(self, store: "MemoryDocumentStore"):
        self.store = store
        self.writes: List[Write] = []

    def set(self, path: str, data: Dict[str, Any]) -> None:
        self.writes.append(("set", path, data))

    def update(self, path: str, data: Dict[str, Any]) -> None:
        self.writes.append(("update", path, data))

    async def commit(self) -> None:
        async with self.store.lock:
            self.store._apply(self.writes)


class MemoryDocumentStore(DocumentStore):
    def __init__(self):
        self.documents: Dict[str, Dict[str, Any]] = {}
        self.lock = asyncio.Lock()
        self._last_commit: Optional[datetime] = None

    def _commit_time(self) -> datetime:
        # Strictly increasing so server timestamps order writes even within one clock tick
        now = datetime.now(timezone.utc)
        if self._last_commit is not None and now <= self._last_commit:
            now = self._last_commit + timedelta(microseconds=1)
        self._last_commit = now
        return now

    def _read(self, path: str) -> Optional[Dict[str, Any]]:
        document = self.documents.get(path)
        return copy.deepcopy(document) if document is not None else None

    def _apply(self, writes: List[Write]) -> None:
        # Validate everything first so a failing write leaves no trace
        staged: Dict[str, Dict[str, Any]] = {}
        now = self._commit_time()
        for kind, path, data in writes:
            current = staged.get(path, self.documents.get(path))
            if kind == "set":
                staged[path] = {k: _resolve(v, None, now) for k, v in data.items()}
            else:
                if current is None:
                    raise DocumentNotFoundError(path)
                updated = copy.deepcopy(current)
                for field, value in data.items():
                    updated[field] = _resolve(value, updated.get(field), now)
                staged[path] = updated
        self.documents.update(staged)

    async def get(self, path: str) -> Optional[Dict[str, Any]]:
        return self._read(path)

    async def set(self, path: str, data: Dict[str, Any]) -> None:
        async with self.lock:
            self._apply([("set", path, data)])

    async def update(self, path: str, data: Dict[str, Any]) -> None:
        async with self.lock:
            self._apply([("update", path, data)])

    async def delete(self, path: str) -> None:
        async with self.lock:
            self.documents.pop(path, None)

    async def query(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        start_after: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        results = [
            copy.deepcopy(document)
            for path, document in self.documents.items()
            if _parent(path) == collection
            and all(document.get(field) == value for field, value in (filters or {}).items())
        ]
        if order_by:
            # Firestore leaves out documents that lack the ordering field
            results = [document for document in results if document.get(order_by) is not None]
            results.sort(key=lambda document: document[order_by], reverse=descending)
            if start_after and start_after.get(order_by) is not None:
                cursor = start_after[order_by]
                if descending:
                    results = [document for document in results if document[order_by] < cursor]
                else:
                    results = [document for document in results if document[order_by] > cursor]
        if limit is not None:
            results = results[:limit]
        return results

    async def run_transaction(self, fn: Callable[[Transaction], Awaitable[T]]) -> T:
        async with self.lock:
            transaction = MemoryTransaction(self)
            result = await fn(transaction)
            self._apply(transaction.writes)
            return result

    def batch(self) -> WriteBatch:
        return MemoryWriteBatch(self)
