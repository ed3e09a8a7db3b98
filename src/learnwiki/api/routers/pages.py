"""Wiki page endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from learnwiki.api.deps import get_session_tracker, get_store
from learnwiki.api.schemas import DuplicateReport, OperationResult
from learnwiki.errors import NotFoundError, ValidationError
from learnwiki.sessions import SessionTracker
from learnwiki.store.schemas import WikiPage
from learnwiki.store.tenant import TenantStore

router = APIRouter(prefix="/api/pages", tags=["pages"])


@router.get("", response_model=list[WikiPage])
async def list_pages(
    query: Optional[str] = Query(default=None),
    store: TenantStore = Depends(get_store),
) -> list[WikiPage]:
    """List pages newest first, or search title and content with ?query=."""
    if query:
        return store.pages.search(query)
    return store.pages.get_all()


@router.get("/duplicates", response_model=DuplicateReport)
async def duplicate_report(store: TenantStore = Depends(get_store)) -> DuplicateReport:
    """Report duplicate titles without deleting anything."""
    pages = store.pages.get_all()
    groups = store.pages.duplicate_groups()
    duplicates = sum(group.count - 1 for group in groups)
    return DuplicateReport(
        total_pages=len(pages),
        unique_titles=len(pages) - duplicates,
        duplicates_found=duplicates,
        duplicate_groups=groups,
    )


@router.get("/{page_id}", response_model=WikiPage)
async def get_page(
    page_id: str,
    store: TenantStore = Depends(get_store),
) -> WikiPage:
    page = store.pages.get(page_id)
    if page is None:
        raise NotFoundError(f"Page not found: {page_id}")
    return page


@router.post("", response_model=WikiPage)
async def save_page(
    page: WikiPage,
    store: TenantStore = Depends(get_store),
) -> WikiPage:
    """Insert a page or replace the one with the same ID."""
    return store.pages.save(page)


@router.delete("/{page_id}", response_model=OperationResult)
async def delete_page(
    page_id: str,
    store: TenantStore = Depends(get_store),
    tracker: SessionTracker = Depends(get_session_tracker),
) -> OperationResult:
    """Delete a page with its knowledge node, bookmark and view record."""
    if not store.delete_page(page_id):
        raise NotFoundError(f"Page not found: {page_id}")
    tracker.forget_page(page_id)
    return OperationResult(removed=1)


@router.delete("", response_model=OperationResult)
async def delete_pages(
    action: Optional[str] = Query(default=None),
    store: TenantStore = Depends(get_store),
) -> OperationResult:
    """Bulk delete: ?action=duplicates keeps the newest page per title, ?action=all wipes."""
    if action == "duplicates":
        return OperationResult(removed=store.remove_duplicate_pages())
    if action == "all":
        return OperationResult(removed=store.delete_all_pages())
    raise ValidationError("Invalid action. Use 'duplicates' or 'all'.")
