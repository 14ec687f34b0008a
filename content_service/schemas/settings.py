# content_service/schemas/settings.py
from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional
from datetime import datetime
import uuid

from content_service.core.clock import to_utc


class BlogSettingsUpdate(BaseModel):
    """Full replacement of the blog settings. Omitted optional fields are cleared."""
    blog_title: str = Field(..., min_length=1, max_length=200)
    blog_description: Optional[str] = Field(None, max_length=1000)
    blog_logo_url: Optional[str] = Field(None, max_length=500)
    blog_favicon_url: Optional[str] = Field(None, max_length=500)
    contact_email: Optional[EmailStr] = None
    social_facebook: Optional[str] = Field(None, max_length=500)
    social_twitter: Optional[str] = Field(None, max_length=500)
    social_linkedin: Optional[str] = Field(None, max_length=500)
    social_github: Optional[str] = Field(None, max_length=500)
    seo_meta_title: Optional[str] = Field(None, max_length=200)
    seo_meta_description: Optional[str] = Field(None, max_length=500)
    seo_keywords: Optional[str] = Field(None, max_length=500)
    google_analytics_id: Optional[str] = Field(None, max_length=100)

    @field_validator('blog_title')
    def validate_blog_title(cls, v):
        if len(v.strip()) == 0:
            raise ValueError('Blog title is required')
        return v.strip()

    @field_validator('*', mode='before')
    def blank_to_none(cls, v, info):
        if info.field_name != 'blog_title' and isinstance(v, str):
            v = v.strip()
            return v or None
        return v


class BlogSettingsRead(BaseModel):
    blog_title: str
    blog_description: Optional[str]
    blog_logo_url: Optional[str]
    blog_favicon_url: Optional[str]
    contact_email: Optional[str]
    social_facebook: Optional[str]
    social_twitter: Optional[str]
    social_linkedin: Optional[str]
    social_github: Optional[str]
    seo_meta_title: Optional[str]
    seo_meta_description: Optional[str]
    seo_keywords: Optional[str]
    google_analytics_id: Optional[str]
    updated_at: datetime
    updated_by: Optional[uuid.UUID]

    @field_validator('updated_at')
    def updated_at_as_utc(cls, v):
        return to_utc(v)

    class Config:
        from_attributes = True
