# content_service/services/version_store.py
"""
Append-only snapshots of a post's editable content.

Numbers are contiguous per post starting at 1. Snapshots are never changed
or removed here; they disappear only when their post is deleted.
"""
from sqlmodel import Session
from typing import List, Optional, Tuple
import logging
import uuid

from content_service.core.clock import Clock, utcnow
from content_service.crud.blog import post_crud
from content_service.models.blog import Post, PostVersion

logger = logging.getLogger(__name__)


class VersionStore:
    def __init__(self, clock: Clock = utcnow):
        self.clock = clock

    def next_version_number(self, db: Session, post_id: uuid.UUID) -> int:
        return post_crud.get_max_version_number(db, post_id) + 1

    def snapshot(
        self,
        db: Session,
        post: Post,
        created_by: uuid.UUID,
        title: Optional[str] = None,
        content: Optional[str] = None,
        excerpt: Optional[str] = None,
    ) -> PostVersion:
        """
        Append the post's current title/content/excerpt as the next version.

        Must run inside the caller's transaction and before any pending
        change to those fields is applied. Explicit ``title``/``content``/
        ``excerpt`` override the stored values (manual saves).
        """
        version = PostVersion(
            post_id=post.id,
            title=title if title is not None else post.title,
            content=content if content is not None else post.content,
            excerpt=excerpt if excerpt is not None else post.excerpt,
            version_number=self.next_version_number(db, post.id),
            created_by=created_by,
            created_at=self.clock(),
        )
        db.add(version)
        # Flush now so a duplicate number surfaces inside the caller's retry loop
        db.flush()
        logger.debug(f"Recorded version {version.version_number} of post {post.id}")
        return version

    def list_versions(
        self,
        db: Session,
        post_id: uuid.UUID,
        skip: int = 0,
        limit: int = 10,
    ) -> Tuple[List[PostVersion], int]:
        return post_crud.get_versions(db, post_id, skip=skip, limit=limit)

    def get_version(self, db: Session, post_id: uuid.UUID, version_number: int) -> Optional[PostVersion]:
        return post_crud.get_version(db, post_id, version_number)
