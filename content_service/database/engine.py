from contextlib import contextmanager
from fastapi import Request
from sqlalchemy.engine import Engine
from sqlmodel import create_engine, SQLModel, Session
from typing import Callable, Generator, Iterator
import logging

from content_service.core.config import Settings

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


class Database:
    """
    Store handle owning the engine and its connection pool.

    Constructed once at process start (see the application lifespan), passed
    to whatever needs sessions, and disposed at shutdown.
    """

    def __init__(
        self,
        url: str,
        echo: bool = False,
        pool_size: int = 10,
        max_overflow: int = 20,
    ):
        if url.startswith("sqlite"):
            self.engine: Engine = create_engine(
                url,
                echo=echo,
                connect_args={"check_same_thread": False},
            )
        else:
            self.engine = create_engine(
                url,
                echo=echo,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_pre_ping=True,
                pool_recycle=3600,
            )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(
            settings.database_url,
            echo=settings.DB_ECHO,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
        )

    def create_all(self) -> None:
        # Importing the models registers their tables on SQLModel.metadata
        from content_service.models import blog, settings  # noqa: F401

        SQLModel.metadata.create_all(self.engine)

    def session(self) -> Session:
        return Session(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()
        logger.info("Database connection pool disposed")


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """Commit the session's work on success; roll everything back on any error."""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def get_db(request: Request) -> Generator[Session, None, None]:
    database: Database = request.app.state.database
    with database.session() as session:
        yield session


def get_session_factory(request: Request) -> SessionFactory:
    """Sessions for work that needs its own transactions (the scheduled sweep)."""
    database: Database = request.app.state.database
    return database.session
