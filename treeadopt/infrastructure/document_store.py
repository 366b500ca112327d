"""
Infrastructure layer: document database abstraction.

Documents are addressed by a collection path (``"stories"``,
``"stories/<story_id>/comments"``) and a document id, mirroring the layout of
the hosted document database. Counter mutations go through the atomic
primitives below, never through read-modify-write in the services.
"""
import asyncio
import copy
import logging
import uuid
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from treeadopt.config import settings
from treeadopt.domain.exceptions import CapacityError, NotFoundError


logger = logging.getLogger(__name__)

Document = Dict[str, Any]
Filter = Tuple[str, str, Any]

_COMPARATORS = {
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
    "<": lambda a, b: a < b,
    "<=": lambda a, b: a <= b,
    ">": lambda a, b: a > b,
    ">=": lambda a, b: a >= b,
    "in": lambda a, b: a in b,
    "array_contains": lambda a, b: isinstance(a, list) and b in a,
}


class DocumentStore(Protocol):
    """Operations the services need from the document database."""

    async def get(self, path: str, doc_id: str) -> Optional[Document]:
        ...

    async def add(self, path: str, data: Document) -> str:
        ...

    async def set(self, path: str, doc_id: str, data: Document, merge: bool = False) -> None:
        ...

    async def update(self, path: str, doc_id: str, data: Document) -> None:
        ...

    async def delete(self, path: str, doc_id: str) -> None:
        ...

    async def query(
        self,
        path: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Tuple[str, Document]]:
        ...

    async def increment(
        self,
        path: str,
        doc_id: str,
        deltas: Dict[str, float],
        updates: Optional[Document] = None,
        defaults: Optional[Document] = None,
    ) -> Document:
        """
        Atomically add ``deltas`` to numeric fields.

        If the document is missing it is created from ``defaults`` (plus the
        deltas); without defaults a missing document raises NotFoundError.
        Returns the document as written.
        """
        ...

    async def compare_and_set(
        self,
        path: str,
        doc_id: str,
        field: str,
        expected: Any,
        updates: Document,
    ) -> bool:
        """Apply ``updates`` only if ``field`` currently equals ``expected``."""
        ...

    async def toggle_membership(
        self,
        path: str,
        doc_id: str,
        array_field: str,
        count_field: str,
        member: str,
        capacity_field: Optional[str] = None,
    ) -> bool:
        """
        Add ``member`` to ``array_field`` (or remove it if present) and keep
        ``count_field`` in step. Returns True when the member was added.
        """
        ...


class InMemoryDocumentStore:
    """
    Process-local document store.

    A single asyncio lock serializes every mutation, which makes the
    increment, compare-and-set and toggle operations atomic.
    """

    def __init__(self, seed: Optional[Dict[str, Dict[str, Document]]] = None):
        self._collections: Dict[str, Dict[str, Document]] = copy.deepcopy(seed) if seed else {}
        self._lock = asyncio.Lock()

    def _collection(self, path: str) -> Dict[str, Document]:
        return self._collections.setdefault(path.strip("/"), {})

    def _require(self, path: str, doc_id: str) -> Document:
        doc = self._collection(path).get(doc_id)
        if doc is None:
            raise NotFoundError(f"Document {path}/{doc_id} not found")
        return doc

    async def get(self, path: str, doc_id: str) -> Optional[Document]:
        doc = self._collection(path).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def add(self, path: str, data: Document) -> str:
        doc_id = uuid.uuid4().hex[:20]
        async with self._lock:
            self._collection(path)[doc_id] = copy.deepcopy(data)
        return doc_id

    async def set(self, path: str, doc_id: str, data: Document, merge: bool = False) -> None:
        async with self._lock:
            collection = self._collection(path)
            if merge and doc_id in collection:
                collection[doc_id].update(copy.deepcopy(data))
            else:
                collection[doc_id] = copy.deepcopy(data)

    async def update(self, path: str, doc_id: str, data: Document) -> None:
        async with self._lock:
            self._require(path, doc_id).update(copy.deepcopy(data))

    async def delete(self, path: str, doc_id: str) -> None:
        async with self._lock:
            self._collection(path).pop(doc_id, None)

    async def query(
        self,
        path: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Tuple[str, Document]]:
        results = []
        for doc_id, doc in self._collection(path).items():
            if all(
                field in doc and _COMPARATORS[op](doc[field], value)
                for field, op, value in filters
            ):
                results.append((doc_id, copy.deepcopy(doc)))

        if order_by is not None:
            # Documents missing the ordering field are excluded, as in Firestore
            results = [r for r in results if r[1].get(order_by) is not None]
            results.sort(key=lambda r: r[1][order_by], reverse=descending)

        if limit is not None:
            results = results[:limit]
        return results

    async def increment(
        self,
        path: str,
        doc_id: str,
        deltas: Dict[str, float],
        updates: Optional[Document] = None,
        defaults: Optional[Document] = None,
    ) -> Document:
        async with self._lock:
            collection = self._collection(path)
            doc = collection.get(doc_id)
            if doc is None:
                if defaults is None:
                    raise NotFoundError(f"Document {path}/{doc_id} not found")
                doc = copy.deepcopy(defaults)
                collection[doc_id] = doc
            for field, delta in deltas.items():
                doc[field] = (doc.get(field) or 0) + delta
            if updates:
                doc.update(copy.deepcopy(updates))
            return copy.deepcopy(doc)

    async def compare_and_set(
        self,
        path: str,
        doc_id: str,
        field: str,
        expected: Any,
        updates: Document,
    ) -> bool:
        async with self._lock:
            doc = self._require(path, doc_id)
            if doc.get(field) != expected:
                return False
            doc.update(copy.deepcopy(updates))
            return True

    async def toggle_membership(
        self,
        path: str,
        doc_id: str,
        array_field: str,
        count_field: str,
        member: str,
        capacity_field: Optional[str] = None,
    ) -> bool:
        async with self._lock:
            doc = self._require(path, doc_id)
            members = list(doc.get(array_field) or [])
            count = doc.get(count_field) or 0

            if member in members:
                members.remove(member)
                doc[array_field] = members
                doc[count_field] = max(0, count - 1)
                return False

            capacity = doc.get(capacity_field) if capacity_field else None
            if capacity is not None and count >= capacity:
                raise CapacityError("Event is full")
            members.append(member)
            doc[array_field] = members
            doc[count_field] = count + 1
            return True


# Singleton instance
_document_store: Optional[DocumentStore] = None


def get_document_store() -> DocumentStore:
    """
    Get or create the singleton document store for the configured backend.

    Returns:
        DocumentStore instance
    """
    global _document_store
    if _document_store is None:
        backend = settings.document_store_backend.lower()
        if backend == "firestore":
            from treeadopt.infrastructure.firestore_store import FirestoreDocumentStore
            _document_store = FirestoreDocumentStore(
                project=settings.firebase_project_id or None
            )
        elif backend == "memory":
            _document_store = InMemoryDocumentStore()
        else:
            raise ValueError(f"Unknown document store backend: {backend}")
        logger.info(f"Document store backend: {backend}")
    return _document_store
