# content_service/routers/posts.py
import logging
import secrets
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Request, status
from sqlmodel import Session

from content_service.core.auth import (
    Principal,
    get_optional_principal,
    require_staff,
)
from content_service.core.config import settings
from content_service.core.exceptions import AuthenticationError
from content_service.database.engine import get_db
from content_service.models.blog import PostStatus
from content_service.schemas.blog import (
    DraftSave,
    DuePostsResponse,
    PostCreate,
    PostRead,
    PostSchedule,
    PostSummary,
    PostUpdate,
    PostVersionRead,
    SweepResponse,
    VersionCreate,
    ViewCount,
)
from content_service.schemas.common import (
    MAX_PAGE_SIZE,
    ErrorResponse,
    MessageResponse,
    PaginatedResponse,
    page_offset,
)
from content_service.services.post_service import PostService, get_post_service
from content_service.services.scheduler_service import ScheduledPublisher, get_scheduled_publisher
from content_service.services.view_service import ViewCounter, get_view_counter

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/posts",
    tags=["posts"],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse, "description": "Not found"},
        409: {"model": ErrorResponse},
    },
)


def verify_scheduler_token(
    x_scheduler_token: Optional[str] = Header(None, alias="X-Scheduler-Token"),
) -> None:
    """Guard for the sweep endpoints when a shared trigger token is configured."""
    expected = settings.SCHEDULER_TRIGGER_TOKEN
    if not expected:
        return
    if not x_scheduler_token or not secrets.compare_digest(x_scheduler_token, expected):
        raise AuthenticationError("Invalid scheduler token")


def _client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


# ========================================
# LISTING
# ========================================

@router.get("", response_model=PaginatedResponse[PostSummary])
def list_posts(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    page_size: int = Query(10, ge=1, le=MAX_PAGE_SIZE, description="Items per page"),
    status: Optional[PostStatus] = None,
    author_id: Optional[uuid.UUID] = None,
    category_id: Optional[uuid.UUID] = None,
    tag_id: Optional[uuid.UUID] = None,
    search: Optional[str] = Query(None, max_length=200),
    include_drafts: bool = False,
    sort_by: str = "published_at",
    sort_order: str = "desc",
    db: Session = Depends(get_db),
    principal: Optional[Principal] = Depends(get_optional_principal),
    service: PostService = Depends(get_post_service),
):
    """
    List posts.

    **Query Parameters**:
    - status / author_id / category_id / tag_id: filters
    - search: matches title, content, excerpt and meta fields
    - include_drafts: staff only, include non-published posts
    - sort_by: created_at, updated_at, published_at, scheduled_at, title or view_count
    - sort_order: asc or desc
    - page / page_size: pagination (max 100 per page)

    **Permissions**:
    - Published posts: Anyone
    - Other statuses: editors/admins see all, authors see their own
    """
    posts, total = service.list_posts(
        db,
        principal,
        skip=page_offset(page, page_size),
        limit=page_size,
        status=status,
        author_id=author_id,
        category_id=category_id,
        tag_id=tag_id,
        search=search,
        include_drafts=include_drafts,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return PaginatedResponse[PostSummary].from_page(posts, total, page, page_size)


# ========================================
# DRAFTS
# ========================================

@router.get("/drafts", response_model=PaginatedResponse[PostSummary])
def list_drafts(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_staff),
    service: PostService = Depends(get_post_service),
):
    """Drafts, most recently edited first. Authors only see their own."""
    drafts, total = service.list_drafts(db, principal, skip=page_offset(page, page_size), limit=page_size)
    return PaginatedResponse[PostSummary].from_page(drafts, total, page, page_size)


@router.post("/drafts", response_model=PostRead)
def save_draft(
    draft: DraftSave,
    db: Session = Depends(get_db),
    principal: Optional[Principal] = Depends(get_optional_principal),
    service: PostService = Depends(get_post_service),
):
    """Create a draft, or overwrite the draft named by ``post_id``."""
    return service.save_draft(db, draft, principal)


@router.delete("/drafts/{post_id}", response_model=MessageResponse)
def delete_draft(
    post_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_staff),
    service: PostService = Depends(get_post_service),
):
    service.delete_draft(db, post_id, principal)
    return MessageResponse(message="Draft deleted successfully")


# ========================================
# SCHEDULED PUBLISHING
# ========================================

@router.get(
    "/scheduled/ready",
    response_model=DuePostsResponse,
    dependencies=[Depends(verify_scheduler_token)],
)
def list_due_posts(
    limit: int = Query(settings.DUE_POSTS_DEFAULT_LIMIT, ge=1, le=500),
    publisher: ScheduledPublisher = Depends(get_scheduled_publisher),
):
    """Scheduled posts whose publication time has passed."""
    due = publisher.list_due_posts(limit=limit)
    return DuePostsResponse(scheduled_posts=due, count=len(due))


@router.post(
    "/scheduled/publish",
    response_model=SweepResponse,
    dependencies=[Depends(verify_scheduler_token)],
)
def publish_due_posts(publisher: ScheduledPublisher = Depends(get_scheduled_publisher)):
    """
    Publish every due scheduled post.

    Called by the background scheduler (or an external cron). Safe to call
    repeatedly; nothing due means an empty list.
    """
    published = publisher.publish_due_posts()
    return SweepResponse(
        message=f"Published {len(published)} scheduled posts",
        published_posts=published,
    )


# ========================================
# SINGLE POSTS
# ========================================

@router.get("/by-slug/{slug}", response_model=PostRead)
def get_post_by_slug(
    slug: str,
    db: Session = Depends(get_db),
    principal: Optional[Principal] = Depends(get_optional_principal),
    service: PostService = Depends(get_post_service),
):
    return service.get_post_by_slug(db, slug, principal)


@router.post("", response_model=PostRead, status_code=status.HTTP_201_CREATED)
def create_post(
    post_data: PostCreate,
    db: Session = Depends(get_db),
    principal: Optional[Principal] = Depends(get_optional_principal),
    service: PostService = Depends(get_post_service),
):
    """
    Create a new post.

    **Permissions**: Authors, editors and admins. Anonymous creation only
    when ALLOW_ANONYMOUS_POST_CREATION is enabled.
    """
    return service.create_post(db, post_data, principal)


@router.get("/{post_id}", response_model=PostRead)
def get_post(
    post_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Optional[Principal] = Depends(get_optional_principal),
    service: PostService = Depends(get_post_service),
):
    """
    Get a single post with its categories, tags and view count.

    **Permissions**:
    - Published posts: Anyone
    - Other posts: the author, editors and admins
    """
    return service.get_post(db, post_id, principal)


@router.put("/{post_id}", response_model=PostRead)
def update_post(
    post_id: uuid.UUID,
    post_data: PostUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_staff),
    service: PostService = Depends(get_post_service),
):
    """
    Update a post. Only the fields sent are changed.

    **Permissions**: The author, editors and admins
    """
    return service.update_post(db, post_id, post_data, principal)


@router.delete("/{post_id}", response_model=MessageResponse)
def delete_post(
    post_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_staff),
    service: PostService = Depends(get_post_service),
):
    service.delete_post(db, post_id, principal)
    return MessageResponse(message="Post deleted successfully")


@router.post("/{post_id}/publish", response_model=PostRead)
def publish_post(
    post_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_staff),
    service: PostService = Depends(get_post_service),
):
    return service.publish_post(db, post_id, principal)


@router.post("/{post_id}/schedule", response_model=PostRead)
def schedule_post(
    post_id: uuid.UUID,
    schedule: PostSchedule,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_staff),
    service: PostService = Depends(get_post_service),
):
    """Schedule a draft for publication at a future time."""
    return service.schedule_post(db, post_id, schedule.scheduled_at, principal)


# ========================================
# VERSIONS
# ========================================

@router.get("/{post_id}/versions", response_model=PaginatedResponse[PostVersionRead])
def list_versions(
    post_id: uuid.UUID,
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_staff),
    service: PostService = Depends(get_post_service),
):
    """Versions of a post, newest first."""
    versions, total = service.list_versions(
        db, post_id, principal, skip=page_offset(page, page_size), limit=page_size
    )
    return PaginatedResponse[PostVersionRead].from_page(versions, total, page, page_size)


@router.post("/{post_id}/versions", response_model=PostVersionRead, status_code=status.HTTP_201_CREATED)
def create_version(
    post_id: uuid.UUID,
    version_data: Optional[VersionCreate] = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_staff),
    service: PostService = Depends(get_post_service),
):
    return service.create_version(db, post_id, version_data or VersionCreate(), principal)


@router.get("/{post_id}/versions/{version_number}", response_model=PostVersionRead)
def get_version(
    post_id: uuid.UUID,
    version_number: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_staff),
    service: PostService = Depends(get_post_service),
):
    return service.get_version(db, post_id, version_number, principal)


@router.post("/{post_id}/versions/{version_number}/restore", response_model=PostRead)
def restore_version(
    post_id: uuid.UUID,
    version_number: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_staff),
    service: PostService = Depends(get_post_service),
):
    """Restore title, content and excerpt from a version. The current state is saved first."""
    return service.restore_version(db, post_id, version_number, principal)


# ========================================
# VIEWS
# ========================================

@router.get("/{post_id}/views", response_model=ViewCount)
def get_view_count(
    post_id: uuid.UUID,
    db: Session = Depends(get_db),
    counter: ViewCounter = Depends(get_view_counter),
):
    return ViewCount(post_id=post_id, view_count=counter.count_views(db, post_id))


@router.post("/{post_id}/views", response_model=ViewCount, status_code=status.HTTP_201_CREATED)
def record_view(
    post_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    counter: ViewCounter = Depends(get_view_counter),
):
    """Record one view. Every call counts; there is no per-visitor dedup."""
    counter.record_view(
        db,
        post_id,
        ip_address=_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return ViewCount(post_id=post_id, view_count=counter.count_views(db, post_id))
