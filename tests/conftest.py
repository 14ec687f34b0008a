import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool
from datetime import datetime, timedelta, timezone
from jose import jwt
import uuid

from content_service.main import app
from content_service.core.auth import Principal
from content_service.core.clock import get_clock
from content_service.core.config import settings
from content_service.core.exceptions import TagValidationError
from content_service.database.engine import get_db, get_session_factory
from content_service.models import blog, settings as settings_models  # noqa: F401
from content_service.services.post_service import PostService
from content_service.services.tag_validator import get_tag_validator, parse_tag_ids

ACTIVE_TAG = uuid.UUID("11111111-1111-1111-1111-111111111111")
SECOND_ACTIVE_TAG = uuid.UUID("22222222-2222-2222-2222-222222222222")
INACTIVE_TAG = uuid.UUID("33333333-3333-3333-3333-333333333333")


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeTagValidator:
    """Knows a fixed set of tags; anything else is reported as not found."""

    def __init__(self):
        self.tags = {ACTIVE_TAG: True, SECOND_ACTIVE_TAG: True, INACTIVE_TAG: False}
        self.calls = []

    def validate_tags(self, tag_ids):
        self.calls.append(list(tag_ids))
        parsed = parse_tag_ids(tag_ids)
        for tag_id in parsed:
            if tag_id not in self.tags:
                raise TagValidationError(f"Tag with ID {tag_id} not found")
            if not self.tags[tag_id]:
                raise TagValidationError(f"Tag \"{tag_id}\" is not active")
        return parsed


def make_token(principal: Principal) -> str:
    payload = {
        "userId": str(principal.id),
        "role": principal.role,
        "email": principal.email,
        "username": principal.username,
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.ALGORITHM)


def auth_headers_for(principal: Principal) -> dict:
    return {"Authorization": f"Bearer {make_token(principal)}"}


# Test database setup
@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(name="session_factory")
def session_factory_fixture(engine):
    return lambda: Session(engine)


@pytest.fixture(name="clock")
def clock_fixture():
    return FakeClock(datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture(name="tag_validator")
def tag_validator_fixture():
    return FakeTagValidator()


@pytest.fixture(name="service")
def service_fixture(tag_validator, clock):
    return PostService(tag_validator=tag_validator, clock=clock, retry_attempts=3)


@pytest.fixture(name="author")
def author_fixture():
    return Principal(id=uuid.uuid4(), role="author", email="author@example.com", username="author")


@pytest.fixture(name="other_author")
def other_author_fixture():
    return Principal(id=uuid.uuid4(), role="author", email="other@example.com", username="other")


@pytest.fixture(name="editor")
def editor_fixture():
    return Principal(id=uuid.uuid4(), role="editor", email="editor@example.com", username="editor")


@pytest.fixture(name="reader")
def reader_fixture():
    return Principal(id=uuid.uuid4(), role="reader", email="reader@example.com", username="reader")


@pytest.fixture(name="client")
def client_fixture(session: Session, session_factory, clock, tag_validator):
    def get_session_override():
        return session

    app.dependency_overrides[get_db] = get_session_override
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_tag_validator] = lambda: tag_validator
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="make_post")
def make_post_fixture(session: Session):
    """Insert posts directly, bypassing the service."""

    def create_post_row(author_id: uuid.UUID, **overrides) -> blog.Post:
        now = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
        values = dict(
            title="Stored Post",
            slug=f"stored-post-{uuid.uuid4().hex[:8]}",
            content="Stored content",
            author_id=author_id,
            status=blog.PostStatus.draft,
            created_at=now,
            updated_at=now,
        )
        values.update(overrides)
        post = blog.Post(**values)
        session.add(post)
        session.commit()
        session.refresh(post)
        return post

    return create_post_row


@pytest.fixture(name="auth_headers")
def auth_headers_fixture():
    """Bearer headers for a given principal."""
    return auth_headers_for
