# content_service/crud/settings.py
from sqlmodel import Session
from sqlalchemy.exc import IntegrityError
from typing import Optional
import logging
import uuid

from content_service.core.clock import Clock, utcnow
from content_service.database.engine import transaction
from content_service.models.settings import BlogSettings, SETTINGS_ID
from content_service.schemas.settings import BlogSettingsUpdate

logger = logging.getLogger(__name__)


class SettingsCRUD:
    def get_settings(self, db: Session) -> Optional[BlogSettings]:
        return db.get(BlogSettings, SETTINGS_ID)

    def get_or_create_settings(self, db: Session, clock: Clock = utcnow) -> BlogSettings:
        """
        Return the singleton row, inserting the defaults on first access.

        Two first reads may race to insert; the loser rolls back and reads
        the winner's row.
        """
        existing = self.get_settings(db)
        if existing:
            return existing

        try:
            with transaction(db):
                db.add(BlogSettings(id=SETTINGS_ID, updated_at=clock()))
            logger.info("Initialized default blog settings")
        except IntegrityError:
            logger.info("Blog settings were initialized concurrently")

        return self.get_settings(db)

    def upsert_settings(
        self,
        db: Session,
        data: BlogSettingsUpdate,
        updated_by: uuid.UUID,
        clock: Clock = utcnow,
    ) -> BlogSettings:
        """Full replace: every field takes the payload's value, omitted ones become null."""
        with transaction(db):
            row = self.get_settings(db)
            if row is None:
                row = BlogSettings(id=SETTINGS_ID)

            for field, value in data.model_dump().items():
                setattr(row, field, value)
            row.updated_at = clock()
            row.updated_by = updated_by
            db.add(row)

        db.refresh(row)
        logger.info(f"Blog settings updated by {updated_by}")
        return row


# Create singleton instance
settings_crud = SettingsCRUD()
