# content_service/services/__init__.py
"""
Services layer: post lifecycle, versioning, slugs, tag validation,
scheduled publishing and view counting.
"""

from content_service.services.post_service import PostService, get_post_service
from content_service.services.scheduler_service import ScheduledPublisher, get_scheduled_publisher
from content_service.services.tag_validator import HttpTagValidator, TagValidator, get_tag_validator
from content_service.services.version_store import VersionStore
from content_service.services.view_service import ViewCounter, get_view_counter

__all__ = [
    "PostService",
    "get_post_service",
    "ScheduledPublisher",
    "get_scheduled_publisher",
    "HttpTagValidator",
    "TagValidator",
    "get_tag_validator",
    "VersionStore",
    "ViewCounter",
    "get_view_counter",
]
