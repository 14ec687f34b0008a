# content_service/services/slug_service.py
"""
Slug generation for posts.

The probe here is only the first line of defence against duplicates; the
unique index on ``posts.slug`` is the final authority and the lifecycle
service retries the whole write when the insert loses a race.
"""
from sqlmodel import Session
from typing import Optional
import re
import unicodedata
import uuid

from content_service.crud.blog import post_crud

SLUG_MAX_LENGTH = 500
FALLBACK_SLUG = "post"

# Characters dropped outright instead of being turned into separators
_REMOVED_CHARACTERS = re.compile(r"[*+~.()'\"!:@]")
_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]+")

# Room kept for a "-N" suffix when clipping long titles
_SUFFIX_RESERVE = 12


def slugify(title: str) -> str:
    """Turn a title into the base slug, e.g. "Hello, World!" -> "hello-world"."""
    text = unicodedata.normalize("NFKD", title).encode("ascii", "ignore").decode("ascii")
    text = _REMOVED_CHARACTERS.sub("", text.lower())
    slug = _NON_ALPHANUMERIC.sub("-", text).strip("-")
    slug = slug[:SLUG_MAX_LENGTH - _SUFFIX_RESERVE].rstrip("-")
    return slug or FALLBACK_SLUG


def generate_slug(
    db: Session,
    title: str,
    exclude_post_id: Optional[uuid.UUID] = None,
) -> str:
    """
    Return the first free slug among ``base``, ``base-1``, ``base-2``...

    Args:
        db: Session of the transaction that will write the post
        title: Post title
        exclude_post_id: The post being updated, so it doesn't collide with itself
    """
    base_slug = slugify(title)
    slug = base_slug
    counter = 1
    while post_crud.slug_exists(db, slug, exclude_post_id=exclude_post_id):
        slug = f"{base_slug}-{counter}"
        counter += 1
    return slug
