"""Knowledge graph (mind map) endpoints."""

from typing import Union

from fastapi import APIRouter, Body, Depends

from learnwiki.api.deps import get_store
from learnwiki.api.schemas import MindmapBatch, OperationResult
from learnwiki.errors import NotFoundError
from learnwiki.store.schemas import KnowledgeNode
from learnwiki.store.tenant import TenantStore

router = APIRouter(prefix="/api/mindmap", tags=["mindmap"])


@router.get("", response_model=list[KnowledgeNode])
async def list_nodes(store: TenantStore = Depends(get_store)) -> list[KnowledgeNode]:
    return store.knowledge.get_all()


@router.get("/{node_id}", response_model=KnowledgeNode)
async def get_node(
    node_id: str,
    store: TenantStore = Depends(get_store),
) -> KnowledgeNode:
    """Fetch one node without loading the graph."""
    node = store.knowledge.get(node_id)
    if node is None:
        raise NotFoundError(f"Node not found: {node_id}")
    return node


@router.post("", response_model=OperationResult)
async def save_nodes(
    body: Union[MindmapBatch, KnowledgeNode] = Body(...),
    store: TenantStore = Depends(get_store),
) -> OperationResult:
    """Save one node, or {"nodes": [...]} in a single transaction."""
    if isinstance(body, MindmapBatch):
        store.knowledge.save_many(body.nodes)
        return OperationResult(count=len(body.nodes))
    store.knowledge.save(body)
    return OperationResult(count=1)


@router.delete("", response_model=OperationResult)
async def delete_nodes(store: TenantStore = Depends(get_store)) -> OperationResult:
    return OperationResult(removed=store.knowledge.delete_all())
