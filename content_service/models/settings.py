# content_service/models/settings.py
from sqlmodel import SQLModel, Field, Column, Text
from typing import Optional
from datetime import datetime
import uuid

from content_service.core.clock import utcnow
from content_service.database.types import UTCDateTime

SETTINGS_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")

DEFAULT_BLOG_TITLE = "My Blog"
DEFAULT_BLOG_DESCRIPTION = "Welcome to my blog"


class BlogSettings(SQLModel, table=True):
    """Site-wide configuration. The fixed id keeps the table at a single row;
    the migration adds the matching check constraint."""

    __tablename__ = "blog_settings"

    id: uuid.UUID = Field(default=SETTINGS_ID, primary_key=True)
    blog_title: str = Field(default=DEFAULT_BLOG_TITLE, max_length=200)
    blog_description: Optional[str] = Field(default=DEFAULT_BLOG_DESCRIPTION, sa_column=Column(Text))
    blog_logo_url: Optional[str] = Field(default=None, max_length=500)
    blog_favicon_url: Optional[str] = Field(default=None, max_length=500)
    contact_email: Optional[str] = Field(default=None, max_length=255)
    social_facebook: Optional[str] = Field(default=None, max_length=500)
    social_twitter: Optional[str] = Field(default=None, max_length=500)
    social_linkedin: Optional[str] = Field(default=None, max_length=500)
    social_github: Optional[str] = Field(default=None, max_length=500)
    seo_meta_title: Optional[str] = Field(default=None, max_length=200)
    seo_meta_description: Optional[str] = Field(default=None, sa_column=Column(Text))
    seo_keywords: Optional[str] = Field(default=None, sa_column=Column(Text))
    google_analytics_id: Optional[str] = Field(default=None, max_length=100)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_by: Optional[uuid.UUID] = Field(default=None)
