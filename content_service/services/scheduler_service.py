# content_service/services/scheduler_service.py
"""
Scheduled-publish sweep.

The sweep only knows how to find due posts and promote them; what triggers
it (the in-process timer or the HTTP endpoint) lives elsewhere.
"""
import logging
from typing import List, Optional

from fastapi import Depends

from content_service.core.clock import Clock, get_clock, utcnow
from content_service.crud.blog import post_crud
from content_service.database.engine import SessionFactory, get_session_factory, transaction
from content_service.schemas.blog import DuePost, PublishedPost

logger = logging.getLogger(__name__)


class ScheduledPublisher:
    def __init__(self, session_factory: SessionFactory, clock: Clock = utcnow):
        self.session_factory = session_factory
        self.clock = clock

    def list_due_posts(self, limit: Optional[int] = 50) -> List[DuePost]:
        """Scheduled posts whose time has come, oldest first."""
        with self.session_factory() as db:
            posts = post_crud.get_due_posts(db, self.clock(), limit=limit)
            return [DuePost.model_validate(post) for post in posts]

    def publish_due_posts(self) -> List[PublishedPost]:
        """
        Publish every due post, each in its own transaction.

        A post another sweep got to first is skipped silently; a post that
        fails is logged and skipped so it cannot block the rest. Running it
        again with nothing due writes nothing and returns an empty list.
        """
        with self.session_factory() as db:
            due = [(post.id, post.title) for post in post_crud.get_due_posts(db, self.clock())]

        published: List[PublishedPost] = []
        for post_id, title in due:
            now = self.clock()
            try:
                with self.session_factory() as db:
                    with transaction(db):
                        promoted = post_crud.publish_if_scheduled(db, post_id, now)
            except Exception as e:
                logger.error(f"Failed to publish scheduled post {post_id}: {e}")
                continue

            if promoted:
                logger.info(f"Published scheduled post: {title} ({post_id})")
                published.append(PublishedPost(id=post_id, title=title, published_at=now))
            else:
                logger.debug(f"Scheduled post {post_id} was already handled by another sweep")

        if due:
            logger.info(f"Scheduled publish sweep: {len(published)} of {len(due)} due posts published")
        return published


def get_scheduled_publisher(
    session_factory: SessionFactory = Depends(get_session_factory),
    clock: Clock = Depends(get_clock),
) -> ScheduledPublisher:
    return ScheduledPublisher(session_factory, clock=clock)
