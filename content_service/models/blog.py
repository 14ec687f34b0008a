# content_service/models/blog.py
from sqlmodel import SQLModel, Field, Column, Text
from sqlalchemy import CheckConstraint, Enum as SAEnum, UniqueConstraint
from typing import Optional
from datetime import datetime
from enum import Enum
import uuid

from content_service.core.clock import utcnow
from content_service.database.types import UTCDateTime


class PostStatus(str, Enum):
    draft = "draft"
    published = "published"
    scheduled = "scheduled"
    archived = "archived"


class Post(SQLModel, table=True):
    __tablename__ = "posts"
    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'published', 'scheduled', 'archived')",
            name="ck_posts_status",
        ),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    title: str = Field(max_length=500)
    slug: str = Field(max_length=500, unique=True, index=True)
    content: str = Field(sa_column=Column(Text, nullable=False))
    excerpt: Optional[str] = Field(default=None, sa_column=Column(Text))
    author_id: uuid.UUID = Field(index=True)
    status: PostStatus = Field(
        default=PostStatus.draft,
        sa_column=Column(
            SAEnum(PostStatus, native_enum=False, length=20, validate_strings=True),
            nullable=False,
            index=True,
        ),
    )
    featured_image_url: Optional[str] = Field(default=None, max_length=500)
    meta_title: Optional[str] = Field(default=None, max_length=200)
    meta_description: Optional[str] = Field(default=None, sa_column=Column(Text))
    published_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime, index=True)
    scheduled_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime, index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class PostVersion(SQLModel, table=True):
    __tablename__ = "post_versions"
    __table_args__ = (
        UniqueConstraint("post_id", "version_number", name="uq_post_versions_post_version"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    post_id: uuid.UUID = Field(foreign_key="posts.id", ondelete="CASCADE", index=True)
    title: str = Field(max_length=500)
    content: str = Field(sa_column=Column(Text, nullable=False))
    excerpt: Optional[str] = Field(default=None, sa_column=Column(Text))
    version_number: int = Field(index=True)
    created_by: uuid.UUID
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class PostCategory(SQLModel, table=True):
    __tablename__ = "post_categories"
    __table_args__ = (
        UniqueConstraint("post_id", "category_id", name="uq_post_categories_post_category"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    post_id: uuid.UUID = Field(foreign_key="posts.id", ondelete="CASCADE", index=True)
    category_id: uuid.UUID = Field(index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class PostTag(SQLModel, table=True):
    __tablename__ = "post_tags"
    __table_args__ = (
        UniqueConstraint("post_id", "tag_id", name="uq_post_tags_post_tag"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    post_id: uuid.UUID = Field(foreign_key="posts.id", ondelete="CASCADE", index=True)
    tag_id: uuid.UUID = Field(index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class PostView(SQLModel, table=True):
    __tablename__ = "post_views"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    post_id: uuid.UUID = Field(foreign_key="posts.id", ondelete="CASCADE", index=True)
    ip_address: Optional[str] = Field(default=None, max_length=45)
    user_agent: Optional[str] = Field(default=None, sa_column=Column(Text))
    viewed_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime, index=True)
