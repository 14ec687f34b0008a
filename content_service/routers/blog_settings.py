# content_service/routers/blog_settings.py
from fastapi import APIRouter, Depends
from sqlmodel import Session

from content_service.core.auth import Principal, require_editor
from content_service.core.clock import Clock, get_clock
from content_service.crud.settings import settings_crud
from content_service.database.engine import get_db
from content_service.schemas.common import ErrorResponse
from content_service.schemas.settings import BlogSettingsRead, BlogSettingsUpdate

router = APIRouter(
    prefix="/api/blog-settings",
    tags=["blog-settings"],
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)


@router.get("", response_model=BlogSettingsRead)
def get_blog_settings(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """
    Get the blog settings. Defaults are created on first access.

    **Permissions**: Anyone
    """
    return settings_crud.get_or_create_settings(db, clock=clock)


@router.put("", response_model=BlogSettingsRead)
def update_blog_settings(
    settings_data: BlogSettingsUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_editor),
    clock: Clock = Depends(get_clock),
):
    """
    Replace the blog settings. Optional fields left out are cleared.

    **Permissions**: Editors and admins
    """
    return settings_crud.upsert_settings(db, settings_data, updated_by=principal.id, clock=clock)
