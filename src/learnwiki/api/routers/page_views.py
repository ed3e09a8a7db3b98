"""Page view endpoints."""

from typing import Union

from fastapi import APIRouter, Depends, Query

from learnwiki.api.deps import get_store
from learnwiki.api.schemas import OperationResult, PageViewRequest
from learnwiki.errors import NotFoundError
from learnwiki.store.schemas import PageView
from learnwiki.store.tenant import TenantStore

router = APIRouter(prefix="/api/page-views", tags=["page-views"])


@router.get("", response_model=Union[list[PageView], list[str]])
async def list_page_views(
    ids_only: bool = Query(default=False, alias="idsOnly"),
    store: TenantStore = Depends(get_store),
) -> Union[list[PageView], list[str]]:
    """List view records, most recent first. ?idsOnly=true returns just page IDs."""
    if ids_only:
        return store.page_views.viewed_ids()
    return store.page_views.get_all()


@router.get("/{page_id}", response_model=PageView)
async def get_page_view(
    page_id: str,
    store: TenantStore = Depends(get_store),
) -> PageView:
    view = store.page_views.get(page_id)
    if view is None:
        raise NotFoundError(f"Page view not found: {page_id}")
    return view


@router.post("", response_model=PageView)
async def record_view(
    request: PageViewRequest,
    store: TenantStore = Depends(get_store),
) -> PageView:
    """Count a view of a page."""
    return store.page_views.record_view(request.page_id)


@router.delete("/{page_id}", response_model=OperationResult)
async def delete_page_view(
    page_id: str,
    store: TenantStore = Depends(get_store),
) -> OperationResult:
    return OperationResult(removed=1 if store.page_views.delete(page_id) else 0)


@router.delete("", response_model=OperationResult)
async def delete_page_views(store: TenantStore = Depends(get_store)) -> OperationResult:
    return OperationResult(removed=store.page_views.delete_all())
