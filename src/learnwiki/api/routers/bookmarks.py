"""Bookmark endpoints."""

from fastapi import APIRouter, Depends

from learnwiki.api.deps import get_store
from learnwiki.api.schemas import OperationResult
from learnwiki.store.schemas import Bookmark
from learnwiki.store.tenant import TenantStore

router = APIRouter(prefix="/api/bookmarks", tags=["bookmarks"])


@router.get("", response_model=list[Bookmark])
async def list_bookmarks(store: TenantStore = Depends(get_store)) -> list[Bookmark]:
    """List bookmarks, most recent first."""
    return store.bookmarks.get_all()


@router.post("", response_model=OperationResult)
async def add_bookmark(
    bookmark: Bookmark,
    store: TenantStore = Depends(get_store),
) -> OperationResult:
    """Bookmark a page. A page already bookmarked keeps its original entry."""
    return OperationResult(added=store.bookmarks.add(bookmark))


@router.delete("/{page_id}", response_model=OperationResult)
async def remove_bookmark(
    page_id: str,
    store: TenantStore = Depends(get_store),
) -> OperationResult:
    return OperationResult(removed=1 if store.bookmarks.delete(page_id) else 0)


@router.delete("", response_model=OperationResult)
async def delete_bookmarks(store: TenantStore = Depends(get_store)) -> OperationResult:
    return OperationResult(removed=store.bookmarks.delete_all())
