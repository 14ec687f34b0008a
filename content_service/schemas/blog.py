# content_service/schemas/blog.py
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
import uuid

from content_service.core.clock import to_utc
from content_service.models.blog import PostStatus


def _require_text(value: Optional[str], field_name: str) -> Optional[str]:
    if value is not None and len(value.strip()) == 0:
        raise ValueError(f'{field_name} cannot be empty')
    return value


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    return to_utc(value) if value is not None else None


# Post write schemas
class PostCreate(BaseModel):
    title: str = Field(..., max_length=500)
    content: str
    excerpt: Optional[str] = Field(None, max_length=1000)
    featured_image_url: Optional[str] = Field(None, max_length=500)
    meta_title: Optional[str] = Field(None, max_length=200)
    meta_description: Optional[str] = Field(None, max_length=500)
    categories: List[uuid.UUID] = []
    # Tag IDs stay strings here; the tag validator reports malformed ones
    tags: List[str] = []
    status: PostStatus = PostStatus.draft
    scheduled_at: Optional[datetime] = None

    @field_validator('title')
    def validate_title(cls, v):
        return _require_text(v, 'Title')

    @field_validator('content')
    def validate_content(cls, v):
        return _require_text(v, 'Content')

    @field_validator('status', mode='before')
    def default_unknown_status(cls, v):
        """Unknown or missing status values fall back to draft."""
        if v is None:
            return PostStatus.draft
        try:
            return PostStatus(v)
        except ValueError:
            return PostStatus.draft


class PostUpdate(BaseModel):
    """
    Partial update. Only fields the client actually sent are applied;
    ``model_fields_set`` tells absent fields apart from explicit nulls.
    """
    title: Optional[str] = Field(None, max_length=500)
    content: Optional[str] = None
    excerpt: Optional[str] = Field(None, max_length=1000)
    featured_image_url: Optional[str] = Field(None, max_length=500)
    meta_title: Optional[str] = Field(None, max_length=200)
    meta_description: Optional[str] = Field(None, max_length=500)
    categories: Optional[List[uuid.UUID]] = None
    tags: Optional[List[str]] = None
    status: Optional[PostStatus] = None
    scheduled_at: Optional[datetime] = None
    create_version: bool = True

    @field_validator('title')
    def validate_title(cls, v):
        return _require_text(v, 'Title')

    @field_validator('content')
    def validate_content(cls, v):
        return _require_text(v, 'Content')


class DraftSave(BaseModel):
    """Create a new draft, or overwrite an existing one when ``post_id`` is given."""
    post_id: Optional[uuid.UUID] = None
    title: str = Field(..., max_length=500)
    content: str
    excerpt: Optional[str] = Field(None, max_length=1000)
    featured_image_url: Optional[str] = Field(None, max_length=500)
    meta_title: Optional[str] = Field(None, max_length=200)
    meta_description: Optional[str] = Field(None, max_length=500)
    categories: Optional[List[uuid.UUID]] = None
    tags: Optional[List[str]] = None

    @field_validator('title')
    def validate_title(cls, v):
        return _require_text(v, 'Title')

    @field_validator('content')
    def validate_content(cls, v):
        return _require_text(v, 'Content')


class PostSchedule(BaseModel):
    scheduled_at: datetime


class VersionCreate(BaseModel):
    """Manual snapshot. Omitted fields are taken from the stored post."""
    title: Optional[str] = Field(None, max_length=500)
    content: Optional[str] = None
    excerpt: Optional[str] = Field(None, max_length=1000)

    @field_validator('title')
    def validate_title(cls, v):
        return _require_text(v, 'Title')

    @field_validator('content')
    def validate_content(cls, v):
        return _require_text(v, 'Content')


# Post read schemas
class PostRead(BaseModel):
    id: uuid.UUID
    title: str
    slug: str
    content: str
    excerpt: Optional[str]
    author_id: uuid.UUID
    status: PostStatus
    featured_image_url: Optional[str]
    meta_title: Optional[str]
    meta_description: Optional[str]
    published_at: Optional[datetime]
    scheduled_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime
    categories: List[uuid.UUID] = []
    tags: List[uuid.UUID] = []
    view_count: int = 0

    @field_validator('published_at', 'scheduled_at', 'created_at', 'updated_at')
    def timestamps_as_utc(cls, v):
        return _as_utc(v)

    class Config:
        from_attributes = True


class PostSummary(BaseModel):
    """Lightweight post for list views"""
    id: uuid.UUID
    title: str
    slug: str
    excerpt: Optional[str]
    author_id: uuid.UUID
    status: PostStatus
    featured_image_url: Optional[str]
    meta_title: Optional[str]
    meta_description: Optional[str]
    published_at: Optional[datetime]
    scheduled_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime
    view_count: int = 0

    @field_validator('published_at', 'scheduled_at', 'created_at', 'updated_at')
    def timestamps_as_utc(cls, v):
        return _as_utc(v)

    class Config:
        from_attributes = True


class PostVersionRead(BaseModel):
    id: uuid.UUID
    post_id: uuid.UUID
    title: str
    content: str
    excerpt: Optional[str]
    version_number: int
    created_by: uuid.UUID
    created_at: datetime

    @field_validator('created_at')
    def timestamps_as_utc(cls, v):
        return _as_utc(v)

    class Config:
        from_attributes = True


class DuePost(BaseModel):
    id: uuid.UUID
    title: str
    slug: str
    author_id: uuid.UUID
    scheduled_at: datetime

    @field_validator('scheduled_at')
    def timestamps_as_utc(cls, v):
        return _as_utc(v)

    class Config:
        from_attributes = True


class DuePostsResponse(BaseModel):
    scheduled_posts: List[DuePost]
    count: int


class PublishedPost(BaseModel):
    id: uuid.UUID
    title: str
    published_at: datetime

    @field_validator('published_at')
    def timestamps_as_utc(cls, v):
        return _as_utc(v)


class SweepResponse(BaseModel):
    message: str
    published_posts: List[PublishedPost]


class ViewCount(BaseModel):
    post_id: uuid.UUID
    view_count: int
