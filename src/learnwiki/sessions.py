"""Learning session tracking: breadcrumbs and the current-session pointer."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Optional

from learnwiki.constants import BREADCRUMB_LIMIT, LOADING_PREFIX
from learnwiki.store.schemas import Breadcrumb, LearningSession, now_ms
from learnwiki.store.tenant import TenantStore

logger = logging.getLogger(__name__)


def dedupe_breadcrumbs(breadcrumbs: Sequence[Breadcrumb]) -> list[Breadcrumb]:
    """Collapse runs of consecutive crumbs with the same id."""
    result: list[Breadcrumb] = []
    for crumb in breadcrumbs:
        if not result or result[-1].id != crumb.id:
            result.append(crumb)
    return result


def append_breadcrumb(
    breadcrumbs: Sequence[Breadcrumb], crumb: Breadcrumb, limit: int = BREADCRUMB_LIMIT
) -> list[Breadcrumb]:
    """Return a new trail with ``crumb`` as the most recent entry.

    A trailing ``loading-`` crumb for another id is replaced rather than
    kept. Appending the id that is already last changes nothing. Only the
    ``limit`` most recent crumbs are kept.
    """
    trail = list(breadcrumbs)
    last = trail[-1] if trail else None

    if last is not None and last.id.startswith(LOADING_PREFIX) and last.id != crumb.id:
        trail[-1] = crumb
    elif last is None or last.id != crumb.id:
        trail.append(crumb)

    return dedupe_breadcrumbs(trail)[-limit:]


class SessionTracker:
    """Records navigation in a library's current learning session."""

    def __init__(self, store: TenantStore, breadcrumb_limit: int = BREADCRUMB_LIMIT) -> None:
        self.store = store
        self.breadcrumb_limit = breadcrumb_limit

    def current(self) -> Optional[LearningSession]:
        return self.store.sessions.get_current()

    def start(self, page_id: str, title: str) -> LearningSession:
        """Start a new session at a page and make it current."""
        started_at = now_ms()
        session = LearningSession(
            id=f"session-{started_at}",
            name=f"Learning: {title}",
            started_at=started_at,
            pages=[page_id],
            current_page_id=page_id,
            breadcrumbs=[Breadcrumb(id=page_id, title=title)],
        )
        with self.store.db.transaction():
            self.store.sessions.save(session)
            self.store.sessions.set_current(session.id)
        logger.info(f"Started session {session.id} in library '{self.store.name}'")
        return session

    def visit(self, page_id: str, title: str) -> LearningSession:
        """Record a visit to a page, starting a session if none is current."""
        session = self.current()
        if session is None:
            return self.start(page_id, title)

        pages = session.pages if page_id in session.pages else [*session.pages, page_id]
        updated = session.model_copy(
            update={
                "pages": pages,
                "current_page_id": page_id,
                "breadcrumbs": append_breadcrumb(
                    session.breadcrumbs, Breadcrumb(id=page_id, title=title), self.breadcrumb_limit
                ),
            }
        )
        return self.store.sessions.save(updated)

    def navigate_to(self, page_id: str, title: str) -> LearningSession:
        """Move to a page, going back in history if it is already on the trail."""
        session = self.current()
        if session is not None:
            index = next(
                (i for i, crumb in enumerate(session.breadcrumbs) if crumb.id == page_id), None
            )
            if index is not None:
                updated = session.model_copy(
                    update={
                        "current_page_id": page_id,
                        "breadcrumbs": session.breadcrumbs[: index + 1],
                    }
                )
                return self.store.sessions.save(updated)
        return self.visit(page_id, title)

    def forget_page(self, page_id: str) -> Optional[LearningSession]:
        """Drop a deleted page from the current session.

        Clears the current-session pointer when no breadcrumbs remain.
        Returns the updated session, or None if there is none left.
        """
        session = self.current()
        if session is None:
            return None

        breadcrumbs = [crumb for crumb in session.breadcrumbs if crumb.id != page_id]
        if not breadcrumbs:
            self.store.sessions.set_current(None)
            return None

        current_page_id = session.current_page_id
        if current_page_id == page_id:
            current_page_id = breadcrumbs[-1].id
        updated = session.model_copy(
            update={
                "pages": [p for p in session.pages if p != page_id],
                "current_page_id": current_page_id,
                "breadcrumbs": dedupe_breadcrumbs(breadcrumbs),
            }
        )
        return self.store.sessions.save(updated)
