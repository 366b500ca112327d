"""
Infrastructure layer: Firestore-backed document store.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from google.api_core import exceptions as gcloud_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from treeadopt.domain.exceptions import CapacityError, NotFoundError
from treeadopt.infrastructure.document_store import Document, Filter


logger = logging.getLogger(__name__)


class FirestoreDocumentStore:
    """
    DocumentStore implementation over the Firestore async client.

    Plain increments use ``firestore.Increment``; operations that need to
    read before they write run inside a transaction.
    """

    def __init__(
        self,
        client: Optional[firestore.AsyncClient] = None,
        project: Optional[str] = None,
    ):
        self.client = client or firestore.AsyncClient(project=project)

    def _ref(self, path: str, doc_id: str):
        return self.client.collection(path).document(doc_id)

    async def get(self, path: str, doc_id: str) -> Optional[Document]:
        snapshot = await self._ref(path, doc_id).get()
        return snapshot.to_dict() if snapshot.exists else None

    async def add(self, path: str, data: Document) -> str:
        _, ref = await self.client.collection(path).add(data)
        return ref.id

    async def set(self, path: str, doc_id: str, data: Document, merge: bool = False) -> None:
        await self._ref(path, doc_id).set(data, merge=merge)

    async def update(self, path: str, doc_id: str, data: Document) -> None:
        try:
            await self._ref(path, doc_id).update(data)
        except gcloud_exceptions.NotFound:
            raise NotFoundError(f"Document {path}/{doc_id} not found")

    async def delete(self, path: str, doc_id: str) -> None:
        await self._ref(path, doc_id).delete()

    async def query(
        self,
        path: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Tuple[str, Document]]:
        query = self.client.collection(path)
        for field, op, value in filters:
            query = query.where(filter=FieldFilter(field, op, value))
        if order_by is not None:
            direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            query = query.order_by(order_by, direction=direction)
        if limit is not None:
            query = query.limit(limit)

        return [(snapshot.id, snapshot.to_dict()) async for snapshot in query.stream()]

    async def increment(
        self,
        path: str,
        doc_id: str,
        deltas: Dict[str, float],
        updates: Optional[Document] = None,
        defaults: Optional[Document] = None,
    ) -> Document:
        ref = self._ref(path, doc_id)

        @firestore.async_transactional
        async def apply(transaction) -> Document:
            snapshot = await ref.get(transaction=transaction)
            if snapshot.exists:
                doc = snapshot.to_dict()
            elif defaults is not None:
                doc = dict(defaults)
            else:
                raise NotFoundError(f"Document {path}/{doc_id} not found")

            for field, delta in deltas.items():
                doc[field] = (doc.get(field) or 0) + delta
            doc.update(updates or {})

            if snapshot.exists:
                changes = {field: firestore.Increment(delta) for field, delta in deltas.items()}
                changes.update(updates or {})
                transaction.update(ref, changes)
            else:
                transaction.set(ref, doc)
            return doc

        return await apply(self.client.transaction())

    async def compare_and_set(
        self,
        path: str,
        doc_id: str,
        field: str,
        expected: Any,
        updates: Document,
    ) -> bool:
        ref = self._ref(path, doc_id)

        @firestore.async_transactional
        async def apply(transaction) -> bool:
            snapshot = await ref.get(transaction=transaction)
            if not snapshot.exists:
                raise NotFoundError(f"Document {path}/{doc_id} not found")
            if (snapshot.to_dict() or {}).get(field) != expected:
                return False
            transaction.update(ref, updates)
            return True

        return await apply(self.client.transaction())

    async def toggle_membership(
        self,
        path: str,
        doc_id: str,
        array_field: str,
        count_field: str,
        member: str,
        capacity_field: Optional[str] = None,
    ) -> bool:
        ref = self._ref(path, doc_id)

        @firestore.async_transactional
        async def apply(transaction) -> bool:
            snapshot = await ref.get(transaction=transaction)
            if not snapshot.exists:
                raise NotFoundError(f"Document {path}/{doc_id} not found")
            doc = snapshot.to_dict()
            members = doc.get(array_field) or []
            count = doc.get(count_field) or 0

            if member in members:
                transaction.update(ref, {
                    array_field: firestore.ArrayRemove([member]),
                    count_field: max(0, count - 1),
                })
                return False

            capacity = doc.get(capacity_field) if capacity_field else None
            if capacity is not None and count >= capacity:
                raise CapacityError("Event is full")
            transaction.update(ref, {
                array_field: firestore.ArrayUnion([member]),
                count_field: count + 1,
            })
            return True

        return await apply(self.client.transaction())
