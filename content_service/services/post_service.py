# content_service/services/post_service.py
"""
Post lifecycle: creation, edits, the draft/scheduled/published/archived
state machine, versioning and category/tag replacement.

Every multi-step write runs as one unit inside ``transaction()``. When a
unit trips over the unique slug index or the per-post version number
constraint, it is rolled back and re-executed from scratch; the rerun
re-probes the slug and re-reads the max version number, so it lands on the
next free value.
"""
import logging
import uuid
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

from fastapi import Depends
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from content_service.core.auth import Principal, can_manage_post, ensure_can_manage_post
from content_service.core.clock import Clock, get_clock, to_utc, utcnow
from content_service.core.config import settings
from content_service.core.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from content_service.crud.blog import SORTABLE_FIELDS, post_crud
from content_service.database.engine import transaction
from content_service.models.blog import Post, PostStatus, PostVersion
from content_service.schemas.blog import (
    DraftSave,
    PostCreate,
    PostRead,
    PostSummary,
    PostUpdate,
    PostVersionRead,
    VersionCreate,
)
from content_service.services.slug_service import generate_slug
from content_service.services.tag_validator import TagValidator, get_tag_validator
from content_service.services.version_store import VersionStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Unique-key violations worth a retry, as PostgreSQL and SQLite report them
_RETRYABLE_CONSTRAINTS = (
    '"ix_posts_slug"',
    '"uq_post_versions_post_version"',
    "unique constraint failed: posts.slug",
    "unique constraint failed: post_versions.post_id, post_versions.version_number",
)

_VERSIONED_FIELDS = ("title", "content", "excerpt")
_PLAIN_FIELDS = ("excerpt", "featured_image_url", "meta_title", "meta_description")


def _is_retryable_collision(error: IntegrityError) -> bool:
    message = str(error.orig).lower()
    return any(marker in message for marker in _RETRYABLE_CONSTRAINTS)


class PostService:
    """Post Lifecycle Manager."""

    def __init__(
        self,
        tag_validator: TagValidator,
        clock: Clock = utcnow,
        version_store: Optional[VersionStore] = None,
        retry_attempts: Optional[int] = None,
        allow_anonymous_creation: Optional[bool] = None,
        default_author_id: Optional[uuid.UUID] = None,
    ):
        self.tag_validator = tag_validator
        self.clock = clock
        self.versions = version_store or VersionStore(clock=clock)
        if retry_attempts is None:
            retry_attempts = settings.WRITE_RETRY_ATTEMPTS
        self.retry_attempts = max(1, retry_attempts)
        if allow_anonymous_creation is None:
            allow_anonymous_creation = settings.ALLOW_ANONYMOUS_POST_CREATION
        self.allow_anonymous_creation = allow_anonymous_creation
        self.default_author_id = default_author_id or uuid.UUID(settings.DEFAULT_AUTHOR_ID)

    # ============ Plumbing ============

    def _run_unit(self, db: Session, unit: Callable[[], T], description: str) -> T:
        """Run ``unit`` in a transaction, re-running it on slug/version collisions."""
        for attempt in range(1, self.retry_attempts + 1):
            try:
                with transaction(db):
                    return unit()
            except IntegrityError as e:
                if not _is_retryable_collision(e):
                    raise
                logger.warning(
                    f"Unique key collision while trying to {description} "
                    f"(attempt {attempt}/{self.retry_attempts}): {e.orig}"
                )

        raise ConflictError(
            f"Could not {description}: conflicting concurrent writes",
            details={"attempts": self.retry_attempts},
        )

    def _get_post_or_404(self, db: Session, post_id: uuid.UUID) -> Post:
        post = post_crud.get_post(db, post_id)
        if not post:
            raise NotFoundError("Post not found", details={"post_id": str(post_id)})
        return post

    def _acting_principal(self, principal: Optional[Principal]) -> Principal:
        """
        The principal a creation runs as. Anonymous callers act as the
        default author, but only when anonymous creation is switched on.
        """
        if principal is None:
            if not self.allow_anonymous_creation:
                raise AuthenticationError("Access token required")
            return Principal(id=self.default_author_id, role="author")
        if not principal.is_staff:
            raise PermissionDeniedError("Insufficient permissions")
        return principal

    def _validate_tags(self, tags: Optional[Sequence[str]]) -> Optional[List[uuid.UUID]]:
        if tags is None:
            return None
        return self.tag_validator.validate_tags(tags)

    def _require_future(self, scheduled_at: Optional[datetime], now: datetime) -> datetime:
        if scheduled_at is None:
            raise ValidationError("scheduled_at is required for scheduled posts")
        scheduled_at = to_utc(scheduled_at)
        if scheduled_at <= now:
            raise ValidationError(
                "Scheduled time must be in the future",
                details={"scheduled_at": scheduled_at.isoformat()},
            )
        return scheduled_at

    @staticmethod
    def can_view(principal: Optional[Principal], post: Post) -> bool:
        return post.status == PostStatus.published or can_manage_post(principal, post.author_id)

    def to_read(self, db: Session, post: Post) -> PostRead:
        return PostRead.model_validate(post).model_copy(update={
            "categories": post_crud.get_category_ids(db, post.id),
            "tags": post_crud.get_tag_ids(db, post.id),
            "view_count": post_crud.count_views(db, post.id),
        })

    # ============ Reads ============

    def get_post(self, db: Session, post_id: uuid.UUID, principal: Optional[Principal]) -> PostRead:
        """Non-published posts are reported as missing to callers who may not see them."""
        post = post_crud.get_post(db, post_id)
        if not post or not self.can_view(principal, post):
            raise NotFoundError("Post not found", details={"post_id": str(post_id)})
        return self.to_read(db, post)

    def get_post_by_slug(self, db: Session, slug: str, principal: Optional[Principal]) -> PostRead:
        post = post_crud.get_post_by_slug(db, slug)
        if not post or not self.can_view(principal, post):
            raise NotFoundError("Post not found", details={"slug": slug})
        return self.to_read(db, post)

    def list_posts(
        self,
        db: Session,
        principal: Optional[Principal],
        skip: int = 0,
        limit: int = 10,
        status: Optional[PostStatus] = None,
        author_id: Optional[uuid.UUID] = None,
        category_id: Optional[uuid.UUID] = None,
        tag_id: Optional[uuid.UUID] = None,
        search: Optional[str] = None,
        include_drafts: bool = False,
        sort_by: str = "published_at",
        sort_order: str = "desc",
    ) -> Tuple[List[PostSummary], int]:
        """
        List posts visible to the caller.

        Anonymous and non-staff callers only ever get published posts. Staff
        asking for another status (or ``include_drafts``) see everything if
        they are editors/admins, otherwise published posts plus their own.
        """
        if sort_by not in SORTABLE_FIELDS:
            raise ValidationError(
                f"Cannot sort by '{sort_by}'",
                details={"allowed": list(SORTABLE_FIELDS)},
            )
        if sort_order not in ("asc", "desc"):
            raise ValidationError("sort_order must be 'asc' or 'desc'")

        statuses: Optional[List[PostStatus]] = [PostStatus.published]
        restrict_to_author = None
        if principal is not None and principal.is_staff and (status or include_drafts):
            statuses = [status] if status else None
            if not principal.is_privileged:
                restrict_to_author = principal.id
        elif status and status != PostStatus.published:
            # Nothing but published posts is visible here
            return [], 0

        rows, total = post_crud.get_posts(
            db,
            skip=skip,
            limit=limit,
            statuses=statuses,
            author_id=author_id,
            category_id=category_id,
            tag_id=tag_id,
            search=search,
            restrict_to_author=restrict_to_author,
            sort_by=sort_by,
            sort_order=sort_order,
        )
        summaries = [
            PostSummary.model_validate(post).model_copy(update={"view_count": view_count})
            for post, view_count in rows
        ]
        return summaries, total

    def list_drafts(
        self,
        db: Session,
        principal: Principal,
        skip: int = 0,
        limit: int = 10,
    ) -> Tuple[List[PostSummary], int]:
        """Editors and admins see every draft; everyone else sees their own."""
        author_id = None if principal.is_privileged else principal.id
        drafts, total = post_crud.get_drafts(db, skip=skip, limit=limit, author_id=author_id)
        return [PostSummary.model_validate(draft) for draft in drafts], total

    # ============ Create / Update / Delete ============

    def create_post(self, db: Session, data: PostCreate, principal: Optional[Principal]) -> PostRead:
        actor = self._acting_principal(principal)
        now = self.clock()

        scheduled_at = None
        published_at = None
        if data.status == PostStatus.scheduled:
            scheduled_at = self._require_future(data.scheduled_at, now)
        elif data.status == PostStatus.published:
            published_at = now

        tag_ids = self._validate_tags(data.tags) or []

        def unit() -> uuid.UUID:
            post = Post(
                title=data.title,
                slug=generate_slug(db, data.title),
                content=data.content,
                excerpt=data.excerpt,
                author_id=actor.id,
                status=data.status,
                featured_image_url=data.featured_image_url,
                meta_title=data.meta_title,
                meta_description=data.meta_description,
                published_at=published_at,
                scheduled_at=scheduled_at,
                created_at=now,
                updated_at=now,
            )
            db.add(post)
            db.flush()

            self.versions.snapshot(db, post, created_by=actor.id)
            post_crud.replace_categories(db, post.id, data.categories)
            post_crud.replace_tags(db, post.id, tag_ids)
            return post.id

        post_id = self._run_unit(db, unit, "create post")
        logger.info(f"Post {post_id} created by {actor.id} with status {data.status.value}")
        return self.to_read(db, self._get_post_or_404(db, post_id))

    def update_post(
        self,
        db: Session,
        post_id: uuid.UUID,
        data: PostUpdate,
        principal: Principal,
    ) -> PostRead:
        """
        Apply the fields present in ``data``.

        When title, content or excerpt is supplied (and ``create_version`` is
        on), the stored state is snapshotted first. The slug follows the title
        only when the title actually changes.
        """
        fields = data.model_fields_set
        post = self._get_post_or_404(db, post_id)
        ensure_can_manage_post(principal, post.author_id, "update")

        for field in ("title", "content"):
            if field in fields and getattr(data, field) is None:
                raise ValidationError(f"{field.capitalize()} cannot be empty")

        now = self.clock()
        current_status = post.status
        target_status = data.status if "status" in fields and data.status is not None else current_status

        scheduled_at = post.scheduled_at
        published_at = post.published_at
        if target_status == PostStatus.scheduled:
            if current_status != PostStatus.scheduled and current_status != PostStatus.draft:
                raise ValidationError("Only draft posts can be scheduled")
            if current_status != PostStatus.scheduled or "scheduled_at" in fields:
                scheduled_at = self._require_future(data.scheduled_at, now)
        else:
            if "scheduled_at" in fields and data.scheduled_at is not None:
                raise ValidationError("scheduled_at can only be set on scheduled posts")
            scheduled_at = None
            if target_status == PostStatus.published and current_status != PostStatus.published:
                published_at = now

        tag_ids = self._validate_tags(data.tags) if "tags" in fields else None
        snapshot = data.create_version and any(field in fields for field in _VERSIONED_FIELDS)

        def unit() -> None:
            post = self._get_post_or_404(db, post_id)

            if snapshot:
                self.versions.snapshot(db, post, created_by=principal.id)

            title_changed = "title" in fields and data.title != post.title
            for field in ("title", "content") + _PLAIN_FIELDS:
                if field in fields:
                    setattr(post, field, getattr(data, field))
            if title_changed:
                post.slug = generate_slug(db, post.title, exclude_post_id=post.id)

            post.status = target_status
            post.scheduled_at = scheduled_at
            post.published_at = published_at
            post.updated_at = now
            db.add(post)

            if "categories" in fields and data.categories is not None:
                post_crud.replace_categories(db, post.id, data.categories)
            if tag_ids is not None:
                post_crud.replace_tags(db, post.id, tag_ids)

        self._run_unit(db, unit, "update post")
        if target_status != current_status:
            logger.info(f"Post {post_id} moved from {current_status.value} to {target_status.value} by {principal.id}")
        else:
            logger.info(f"Post {post_id} updated by {principal.id}")
        return self.to_read(db, self._get_post_or_404(db, post_id))

    def delete_post(self, db: Session, post_id: uuid.UUID, principal: Principal) -> None:
        post = self._get_post_or_404(db, post_id)
        ensure_can_manage_post(principal, post.author_id, "delete")

        with transaction(db):
            post_crud.delete_post(db, post_id)
        logger.info(f"Post {post_id} deleted by {principal.id}")

    # ============ Transitions ============

    def publish_post(self, db: Session, post_id: uuid.UUID, principal: Principal) -> PostRead:
        post = self._get_post_or_404(db, post_id)
        ensure_can_manage_post(principal, post.author_id, "publish")
        if post.status == PostStatus.published:
            raise ValidationError("Post is already published")

        previous = post.status
        now = self.clock()
        with transaction(db):
            post.status = PostStatus.published
            post.published_at = now
            post.scheduled_at = None
            post.updated_at = now
            db.add(post)

        logger.info(f"Post {post_id} published from {previous.value} by {principal.id}")
        return self.to_read(db, self._get_post_or_404(db, post_id))

    def schedule_post(
        self,
        db: Session,
        post_id: uuid.UUID,
        scheduled_at: datetime,
        principal: Principal,
    ) -> PostRead:
        post = self._get_post_or_404(db, post_id)
        ensure_can_manage_post(principal, post.author_id, "schedule")
        if post.status != PostStatus.draft:
            raise ValidationError(
                "Only draft posts can be scheduled",
                details={"status": post.status.value},
            )

        now = self.clock()
        scheduled_at = self._require_future(scheduled_at, now)
        with transaction(db):
            post.status = PostStatus.scheduled
            post.scheduled_at = scheduled_at
            post.updated_at = now
            db.add(post)

        logger.info(f"Post {post_id} scheduled for {scheduled_at.isoformat()} by {principal.id}")
        return self.to_read(db, self._get_post_or_404(db, post_id))

    # ============ Drafts ============

    def save_draft(self, db: Session, data: DraftSave, principal: Optional[Principal]) -> PostRead:
        """
        Create a draft, or overwrite an existing one in place.

        A new draft gets its slug and version 1. Overwriting keeps the slug
        and takes no snapshot.
        """
        actor = self._acting_principal(principal)

        if data.post_id is not None:
            existing = self._get_post_or_404(db, data.post_id)
            ensure_can_manage_post(actor, existing.author_id, "update")
            if existing.status != PostStatus.draft:
                raise ValidationError(
                    "Only draft posts can be saved as drafts",
                    details={"status": existing.status.value},
                )

        tag_ids = self._validate_tags(data.tags)
        now = self.clock()

        def apply_links(post_id: uuid.UUID) -> None:
            if data.categories is not None:
                post_crud.replace_categories(db, post_id, data.categories)
            if tag_ids is not None:
                post_crud.replace_tags(db, post_id, tag_ids)

        def update_unit() -> uuid.UUID:
            post = self._get_post_or_404(db, data.post_id)
            post.title = data.title
            post.content = data.content
            post.excerpt = data.excerpt
            post.featured_image_url = data.featured_image_url
            post.meta_title = data.meta_title
            post.meta_description = data.meta_description
            post.updated_at = now
            db.add(post)
            apply_links(post.id)
            return post.id

        def create_unit() -> uuid.UUID:
            post = Post(
                title=data.title,
                slug=generate_slug(db, data.title),
                content=data.content,
                excerpt=data.excerpt,
                author_id=actor.id,
                status=PostStatus.draft,
                featured_image_url=data.featured_image_url,
                meta_title=data.meta_title,
                meta_description=data.meta_description,
                created_at=now,
                updated_at=now,
            )
            db.add(post)
            db.flush()
            self.versions.snapshot(db, post, created_by=actor.id)
            apply_links(post.id)
            return post.id

        if data.post_id is not None:
            post_id = self._run_unit(db, update_unit, "save draft")
            logger.info(f"Draft {post_id} saved by {actor.id}")
        else:
            post_id = self._run_unit(db, create_unit, "create draft")
            logger.info(f"Draft {post_id} created by {actor.id}")
        return self.to_read(db, self._get_post_or_404(db, post_id))

    def delete_draft(self, db: Session, post_id: uuid.UUID, principal: Principal) -> None:
        post = self._get_post_or_404(db, post_id)
        ensure_can_manage_post(principal, post.author_id, "delete")
        if post.status != PostStatus.draft:
            raise ValidationError(
                "Only draft posts can be deleted here",
                details={"status": post.status.value},
            )

        with transaction(db):
            post_crud.delete_post(db, post_id)
        logger.info(f"Draft {post_id} deleted by {principal.id}")

    # ============ Versions ============

    def list_versions(
        self,
        db: Session,
        post_id: uuid.UUID,
        principal: Principal,
        skip: int = 0,
        limit: int = 10,
    ) -> Tuple[List[PostVersionRead], int]:
        post = self._get_post_or_404(db, post_id)
        ensure_can_manage_post(principal, post.author_id, "view versions of")

        versions, total = self.versions.list_versions(db, post_id, skip=skip, limit=limit)
        return [PostVersionRead.model_validate(version) for version in versions], total

    def get_version(
        self,
        db: Session,
        post_id: uuid.UUID,
        version_number: int,
        principal: Principal,
    ) -> PostVersionRead:
        post = self._get_post_or_404(db, post_id)
        ensure_can_manage_post(principal, post.author_id, "view versions of")
        return PostVersionRead.model_validate(self._get_version_or_404(db, post_id, version_number))

    def _get_version_or_404(self, db: Session, post_id: uuid.UUID, version_number: int) -> PostVersion:
        version = self.versions.get_version(db, post_id, version_number)
        if not version:
            raise NotFoundError(
                "Version not found",
                details={"post_id": str(post_id), "version_number": version_number},
            )
        return version

    def create_version(
        self,
        db: Session,
        post_id: uuid.UUID,
        data: VersionCreate,
        principal: Principal,
    ) -> PostVersionRead:
        """Manual snapshot of the stored state, optionally overriding its fields."""
        post = self._get_post_or_404(db, post_id)
        ensure_can_manage_post(principal, post.author_id, "create versions of")

        def unit() -> int:
            post = self._get_post_or_404(db, post_id)
            version = self.versions.snapshot(
                db,
                post,
                created_by=principal.id,
                title=data.title,
                content=data.content,
                excerpt=data.excerpt,
            )
            return version.version_number

        version_number = self._run_unit(db, unit, "create version")
        logger.info(f"Version {version_number} of post {post_id} saved by {principal.id}")
        return PostVersionRead.model_validate(self._get_version_or_404(db, post_id, version_number))

    def restore_version(
        self,
        db: Session,
        post_id: uuid.UUID,
        version_number: int,
        principal: Principal,
    ) -> PostRead:
        """
        Bring back a version's title/content/excerpt.

        The current state is snapshotted first so nothing is lost. Status,
        slug and publication timestamps stay as they are.
        """
        post = self._get_post_or_404(db, post_id)
        ensure_can_manage_post(principal, post.author_id, "restore versions of")
        self._get_version_or_404(db, post_id, version_number)

        def unit() -> None:
            post = self._get_post_or_404(db, post_id)
            target = self._get_version_or_404(db, post_id, version_number)

            self.versions.snapshot(db, post, created_by=principal.id)
            post.title = target.title
            post.content = target.content
            post.excerpt = target.excerpt
            post.updated_at = self.clock()
            db.add(post)

        self._run_unit(db, unit, "restore version")
        logger.info(f"Post {post_id} restored to version {version_number} by {principal.id}")
        return self.to_read(db, self._get_post_or_404(db, post_id))


def get_post_service(
    tag_validator: TagValidator = Depends(get_tag_validator),
    clock: Clock = Depends(get_clock),
) -> PostService:
    return PostService(tag_validator=tag_validator, clock=clock)
