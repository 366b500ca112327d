"""
API router for tree listings.
"""
from typing import Annotated, List, Optional
from fastapi import APIRouter, Path, Query

from treeadopt.api.dependencies import (
    ChatClientDep,
    CurrentSessionDep,
    TreeServiceDep,
)
from treeadopt.api.v1.models.requests import ChatRequest
from treeadopt.api.v1.models.responses import ChatResponse
from treeadopt.domain.models import TreeListing, TreeStatus


router = APIRouter(
    prefix="/trees",
    tags=["trees"],
)

TreeId = Annotated[str, Path(description="Unique identifier for the tree")]


@router.get("", response_model=List[TreeListing], summary="List trees")
async def list_trees(
    tree_service: TreeServiceDep,
    status: Annotated[Optional[TreeStatus], Query(description="Filter by adoption status")] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
) -> List[TreeListing]:
    return await tree_service.list_trees(status=status, limit=limit)


@router.get("/{tree_id}", response_model=TreeListing, summary="Get a tree")
async def get_tree(tree_id: TreeId, tree_service: TreeServiceDep) -> TreeListing:
    return await tree_service.get_tree(tree_id)


@router.post(
    "/{tree_id}/select",
    response_model=TreeListing,
    summary="Select a tree for adoption",
    description="Remember this tree as the one the signed-in user is about to adopt.",
)
async def select_tree(
    tree_id: TreeId,
    session: CurrentSessionDep,
    tree_service: TreeServiceDep,
) -> TreeListing:
    return await tree_service.select_tree(session, tree_id)


@router.post(
    "/{tree_id}/chat",
    response_model=ChatResponse,
    summary="Chat with a tree",
    description="""
    Send a message to an AI persona of the tree. The conversation history
    is kept per session and per tree (last 10 messages).
    """,
)
async def chat_with_tree(
    tree_id: TreeId,
    body: ChatRequest,
    session: CurrentSessionDep,
    tree_service: TreeServiceDep,
    chat_client: ChatClientDep,
) -> ChatResponse:
    tree = await tree_service.get_tree(tree_id)
    history = session.chat_histories.setdefault(tree_id, [])
    reply = await chat_client.reply(tree, history, body.message)
    return ChatResponse(reply=reply)
