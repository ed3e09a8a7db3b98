"""Learning session endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends

from learnwiki.api.deps import get_session_tracker, get_store
from learnwiki.api.schemas import OperationResult, VisitRequest
from learnwiki.errors import NotFoundError
from learnwiki.sessions import SessionTracker, dedupe_breadcrumbs
from learnwiki.store.schemas import LearningSession
from learnwiki.store.tenant import TenantStore

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


@router.get("", response_model=list[LearningSession])
async def list_sessions(store: TenantStore = Depends(get_store)) -> list[LearningSession]:
    """List sessions, most recently started first."""
    return store.sessions.get_all()


@router.get("/current", response_model=Optional[LearningSession])
async def current_session(
    tracker: SessionTracker = Depends(get_session_tracker),
) -> Optional[LearningSession]:
    """The library's current session, or null."""
    return tracker.current()


@router.get("/{session_id}", response_model=LearningSession)
async def get_session(
    session_id: str,
    store: TenantStore = Depends(get_store),
) -> LearningSession:
    session = store.sessions.get(session_id)
    if session is None:
        raise NotFoundError(f"Session not found: {session_id}")
    return session


@router.post("", response_model=LearningSession)
async def save_session(
    session: LearningSession,
    store: TenantStore = Depends(get_store),
    tracker: SessionTracker = Depends(get_session_tracker),
) -> LearningSession:
    """Save a session and make it current."""
    breadcrumbs = dedupe_breadcrumbs(session.breadcrumbs)[-tracker.breadcrumb_limit :]
    session = session.model_copy(update={"breadcrumbs": breadcrumbs})
    with store.db.transaction():
        store.sessions.save(session)
        store.sessions.set_current(session.id)
    return session


@router.post("/visit", response_model=LearningSession)
async def visit_page(
    request: VisitRequest,
    tracker: SessionTracker = Depends(get_session_tracker),
) -> LearningSession:
    """Record navigation to a page, starting a session if none is current.

    With fromHistory the trail is cut back to the page when it is already on it.
    """
    if request.from_history:
        return tracker.navigate_to(request.page_id, request.title)
    return tracker.visit(request.page_id, request.title)


@router.delete("", response_model=OperationResult)
async def delete_sessions(store: TenantStore = Depends(get_store)) -> OperationResult:
    """Delete every session and clear the current pointer."""
    return OperationResult(removed=store.sessions.delete_all())
