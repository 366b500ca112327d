"""
Application service: tree listings and tree selection.
"""
from typing import List, Optional

from treeadopt.domain.exceptions import NotFoundError, ValidationError
from treeadopt.domain.models import TreeListing, TreeStatus
from treeadopt.infrastructure.document_store import DocumentStore
from treeadopt.services.application.session_manager import Session


TREES = "trees"


class TreeService:
    """Reads tree listings and remembers the tree a user picked."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def list_trees(
        self,
        status: Optional[TreeStatus] = None,
        limit: int = 50,
    ) -> List[TreeListing]:
        filters = [("status", "==", TreeStatus(status).value)] if status else []
        docs = await self.store.query(TREES, filters=filters, limit=limit)
        return [TreeListing(**{**data, "id": doc_id}) for doc_id, data in docs]

    async def get_tree(self, tree_id: str) -> TreeListing:
        """
        Fetch one tree listing.

        Raises:
            NotFoundError: If no tree has that id
        """
        data = await self.store.get(TREES, tree_id)
        if data is None:
            raise NotFoundError(f"Tree '{tree_id}' not found")
        return TreeListing(**{**data, "id": tree_id})

    async def select_tree(self, session: Session, tree_id: str) -> TreeListing:
        """Remember ``tree_id`` as the tree this session is adopting."""
        tree = await self.get_tree(tree_id)
        session.selected_tree = tree
        return tree

    def selected_tree(self, session: Session) -> TreeListing:
        """
        Return the tree chosen earlier in this session.

        Raises:
            ValidationError: If no tree was selected
        """
        if session.selected_tree is None:
            raise ValidationError("No tree data found")
        return session.selected_tree
