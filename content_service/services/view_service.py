# content_service/services/view_service.py
import logging
import uuid
from typing import Optional

from fastapi import Depends
from sqlmodel import Session

from content_service.core.clock import Clock, get_clock, utcnow
from content_service.core.exceptions import NotFoundError
from content_service.crud.blog import post_crud
from content_service.database.engine import transaction
from content_service.models.blog import PostView

logger = logging.getLogger(__name__)

# Column limit for post_views.ip_address (IPv6 textual form)
MAX_IP_LENGTH = 45


class ViewCounter:
    """Append-only view events and their per-post count. No dedup, no decrement."""

    def __init__(self, clock: Clock = utcnow):
        self.clock = clock

    def _ensure_post(self, db: Session, post_id: uuid.UUID) -> None:
        if not post_crud.get_post(db, post_id):
            raise NotFoundError("Post not found", details={"post_id": str(post_id)})

    def record_view(
        self,
        db: Session,
        post_id: uuid.UUID,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> PostView:
        self._ensure_post(db, post_id)

        view = PostView(
            post_id=post_id,
            ip_address=ip_address[:MAX_IP_LENGTH] if ip_address else None,
            user_agent=user_agent,
            viewed_at=self.clock(),
        )
        with transaction(db):
            db.add(view)
        logger.debug(f"View recorded for post {post_id}")
        return view

    def count_views(self, db: Session, post_id: uuid.UUID) -> int:
        self._ensure_post(db, post_id)
        return post_crud.count_views(db, post_id)


def get_view_counter(clock: Clock = Depends(get_clock)) -> ViewCounter:
    return ViewCounter(clock=clock)
