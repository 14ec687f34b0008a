# content_service/crud/blog.py
from sqlmodel import Session, select, func, and_, or_
from sqlalchemy import update, delete
from typing import List, Optional, Sequence, Tuple
from datetime import datetime
import uuid

from content_service.models.blog import (
    Post, PostVersion, PostCategory, PostTag, PostView, PostStatus
)

SORTABLE_FIELDS = ("created_at", "updated_at", "published_at", "scheduled_at", "title", "view_count")


class PostCRUD:
    # ============ Post Operations ============

    def get_post(self, db: Session, post_id: uuid.UUID) -> Optional[Post]:
        """Get post by ID."""
        return db.get(Post, post_id)

    def get_post_by_slug(self, db: Session, slug: str) -> Optional[Post]:
        """Get post by slug."""
        return db.exec(select(Post).where(Post.slug == slug)).first()

    def slug_exists(self, db: Session, slug: str, exclude_post_id: Optional[uuid.UUID] = None) -> bool:
        query = select(Post.id).where(Post.slug == slug)
        if exclude_post_id is not None:
            query = query.where(Post.id != exclude_post_id)
        return db.exec(query).first() is not None

    def get_posts(
        self,
        db: Session,
        skip: int = 0,
        limit: int = 10,
        statuses: Optional[Sequence[PostStatus]] = None,
        author_id: Optional[uuid.UUID] = None,
        category_id: Optional[uuid.UUID] = None,
        tag_id: Optional[uuid.UUID] = None,
        search: Optional[str] = None,
        restrict_to_author: Optional[uuid.UUID] = None,
        sort_by: str = "published_at",
        sort_order: str = "desc",
    ) -> Tuple[List[Tuple[Post, int]], int]:
        """
        Get posts with filtering options.

        ``restrict_to_author`` limits non-published rows to one author while
        leaving published rows visible.

        Returns:
            ([(post, view_count), ...], total_count)
        """
        conditions = []

        if statuses:
            conditions.append(Post.status.in_(list(statuses)))

        if restrict_to_author is not None:
            conditions.append(
                or_(Post.status == PostStatus.published, Post.author_id == restrict_to_author)
            )

        if author_id:
            conditions.append(Post.author_id == author_id)

        if category_id:
            conditions.append(
                Post.id.in_(select(PostCategory.post_id).where(PostCategory.category_id == category_id))
            )

        if tag_id:
            conditions.append(
                Post.id.in_(select(PostTag.post_id).where(PostTag.tag_id == tag_id))
            )

        if search:
            search_pattern = f"%{search}%"
            conditions.append(
                or_(
                    Post.title.ilike(search_pattern),
                    Post.content.ilike(search_pattern),
                    Post.excerpt.ilike(search_pattern),
                    Post.meta_title.ilike(search_pattern),
                    Post.meta_description.ilike(search_pattern),
                )
            )

        view_count = func.count(PostView.id).label("view_count")
        query = (
            select(Post, view_count)
            .outerjoin(PostView, PostView.post_id == Post.id)
            .group_by(Post.id)
        )
        count_query = select(func.count(Post.id))

        if conditions:
            query = query.where(and_(*conditions))
            count_query = count_query.where(and_(*conditions))

        total = db.exec(count_query).first() or 0

        if sort_by not in SORTABLE_FIELDS:
            sort_by = "published_at"
        column = view_count if sort_by == "view_count" else getattr(Post, sort_by)
        ordering = column.asc() if sort_order == "asc" else column.desc()
        if sort_by == "view_count":
            query = query.order_by(ordering, Post.published_at.desc())
        else:
            query = query.order_by(ordering, Post.created_at.desc())

        rows = db.exec(query.offset(skip).limit(limit)).all()
        return [(post, count) for post, count in rows], total

    def get_drafts(
        self,
        db: Session,
        skip: int = 0,
        limit: int = 10,
        author_id: Optional[uuid.UUID] = None,
    ) -> Tuple[List[Post], int]:
        conditions = [Post.status == PostStatus.draft]
        if author_id:
            conditions.append(Post.author_id == author_id)

        total = db.exec(select(func.count(Post.id)).where(and_(*conditions))).first() or 0
        drafts = db.exec(
            select(Post)
            .where(and_(*conditions))
            .order_by(Post.updated_at.desc())
            .offset(skip)
            .limit(limit)
        ).all()
        return list(drafts), total

    def get_due_posts(self, db: Session, now: datetime, limit: Optional[int] = None) -> List[Post]:
        """Scheduled posts whose time has come, oldest first."""
        query = (
            select(Post)
            .where(Post.status == PostStatus.scheduled, Post.scheduled_at <= now)
            .order_by(Post.scheduled_at.asc())
        )
        if limit is not None:
            query = query.limit(limit)
        return list(db.exec(query).all())

    def publish_if_scheduled(self, db: Session, post_id: uuid.UUID, now: datetime) -> bool:
        """
        Promote a scheduled post. The status condition makes racing sweeps
        harmless: whoever loses sees zero affected rows.
        """
        result = db.exec(
            update(Post)
            .where(Post.id == post_id, Post.status == PostStatus.scheduled)
            .values(
                status=PostStatus.published,
                published_at=now,
                scheduled_at=None,
                updated_at=now,
            )
        )
        return result.rowcount == 1

    def delete_post(self, db: Session, post_id: uuid.UUID) -> None:
        """Delete a post and everything hanging off it. Caller owns the transaction."""
        for model in (PostView, PostTag, PostCategory, PostVersion):
            db.exec(delete(model).where(model.post_id == post_id))
        db.exec(delete(Post).where(Post.id == post_id))

    # ============ Category / Tag Links ============

    def get_category_ids(self, db: Session, post_id: uuid.UUID) -> List[uuid.UUID]:
        return list(db.exec(
            select(PostCategory.category_id)
            .where(PostCategory.post_id == post_id)
            .order_by(PostCategory.created_at)
        ).all())

    def get_tag_ids(self, db: Session, post_id: uuid.UUID) -> List[uuid.UUID]:
        return list(db.exec(
            select(PostTag.tag_id)
            .where(PostTag.post_id == post_id)
            .order_by(PostTag.created_at)
        ).all())

    def replace_categories(self, db: Session, post_id: uuid.UUID, category_ids: Sequence[uuid.UUID]) -> None:
        db.exec(delete(PostCategory).where(PostCategory.post_id == post_id))
        for category_id in _unique(category_ids):
            db.add(PostCategory(post_id=post_id, category_id=category_id))

    def replace_tags(self, db: Session, post_id: uuid.UUID, tag_ids: Sequence[uuid.UUID]) -> None:
        db.exec(delete(PostTag).where(PostTag.post_id == post_id))
        for tag_id in _unique(tag_ids):
            db.add(PostTag(post_id=post_id, tag_id=tag_id))

    # ============ Versions ============

    def get_max_version_number(self, db: Session, post_id: uuid.UUID) -> int:
        return db.exec(
            select(func.max(PostVersion.version_number)).where(PostVersion.post_id == post_id)
        ).first() or 0

    def get_versions(
        self,
        db: Session,
        post_id: uuid.UUID,
        skip: int = 0,
        limit: int = 10
    ) -> Tuple[List[PostVersion], int]:
        total = db.exec(
            select(func.count(PostVersion.id)).where(PostVersion.post_id == post_id)
        ).first() or 0
        versions = db.exec(
            select(PostVersion)
            .where(PostVersion.post_id == post_id)
            .order_by(PostVersion.version_number.desc())
            .offset(skip)
            .limit(limit)
        ).all()
        return list(versions), total

    def get_version(self, db: Session, post_id: uuid.UUID, version_number: int) -> Optional[PostVersion]:
        return db.exec(
            select(PostVersion).where(
                PostVersion.post_id == post_id,
                PostVersion.version_number == version_number
            )
        ).first()

    # ============ Views ============

    def count_views(self, db: Session, post_id: uuid.UUID) -> int:
        return db.exec(
            select(func.count(PostView.id)).where(PostView.post_id == post_id)
        ).first() or 0


def _unique(ids: Sequence[uuid.UUID]) -> List[uuid.UUID]:
    """Drop repeated IDs, keeping first-seen order."""
    return list(dict.fromkeys(ids))


# Create singleton instance
post_crud = PostCRUD()
