import pytest
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta, timezone
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, SQLModel, create_engine, select, func
import uuid

from content_service.core import exceptions
from content_service.models.blog import Post, PostCategory, PostStatus, PostTag, PostVersion, PostView
from content_service.schemas.blog import DraftSave, PostCreate, PostUpdate, VersionCreate
from content_service.services import post_service as post_service_module
from content_service.services.post_service import PostService

ACTIVE_TAG = "11111111-1111-1111-1111-111111111111"
SECOND_ACTIVE_TAG = "22222222-2222-2222-2222-222222222222"
INACTIVE_TAG = "33333333-3333-3333-3333-333333333333"
UNKNOWN_TAG = "44444444-4444-4444-4444-444444444444"


def count_rows(session: Session, model, post_id) -> int:
    return session.exec(select(func.count(model.id)).where(model.post_id == post_id)).first()


def version_contents(service: PostService, session: Session, post_id, principal):
    versions, _ = service.list_versions(session, post_id, principal, limit=100)
    return [v.content for v in sorted(versions, key=lambda v: v.version_number)]


class TestCreatePost:
    def test_create_assigns_slug_and_first_version(self, session: Session, service, author):
        post = service.create_post(session, PostCreate(title="Hello World", content="Body"), author)

        assert post.slug == "hello-world"
        assert post.status == PostStatus.draft
        assert post.author_id == author.id
        assert post.published_at is None

        versions, total = service.list_versions(session, post.id, author)
        assert total == 1
        assert versions[0].version_number == 1
        assert versions[0].content == "Body"
        assert versions[0].created_by == author.id

    def test_create_published_sets_published_at(self, session: Session, service, author, clock):
        post = service.create_post(
            session, PostCreate(title="Live", content="Body", status="published"), author
        )
        assert post.status == PostStatus.published
        assert post.published_at == clock.now

    def test_create_scheduled_requires_future_time(self, session: Session, service, author, clock):
        with pytest.raises(exceptions.ValidationError):
            service.create_post(
                session,
                PostCreate(title="Late", content="Body", status="scheduled",
                           scheduled_at=clock.now - timedelta(minutes=1)),
                author,
            )
        with pytest.raises(exceptions.ValidationError):
            service.create_post(
                session, PostCreate(title="Late", content="Body", status="scheduled"), author
            )
        assert session.exec(select(func.count(Post.id))).first() == 0

    def test_create_scheduled(self, session: Session, service, author, clock):
        when = clock.now + timedelta(days=1)
        post = service.create_post(
            session,
            PostCreate(title="Soon", content="Body", status="scheduled", scheduled_at=when),
            author,
        )
        assert post.status == PostStatus.scheduled
        assert post.scheduled_at == when

    def test_duplicate_titles_get_distinct_slugs(self, session: Session, service, author):
        first = service.create_post(session, PostCreate(title="Same", content="A"), author)
        second = service.create_post(session, PostCreate(title="Same", content="B"), author)
        assert first.slug == "same"
        assert second.slug == "same-1"

    def test_categories_and_tags_are_stored_once(self, session: Session, service, author):
        category = uuid.uuid4()
        post = service.create_post(
            session,
            PostCreate(
                title="Tagged",
                content="Body",
                categories=[category, category],
                tags=[ACTIVE_TAG, SECOND_ACTIVE_TAG, ACTIVE_TAG],
            ),
            author,
        )
        assert post.categories == [category]
        assert sorted(post.tags) == sorted([uuid.UUID(ACTIVE_TAG), uuid.UUID(SECOND_ACTIVE_TAG)])

    def test_rejected_tag_creates_nothing(self, session: Session, service, author):
        with pytest.raises(exceptions.TagValidationError):
            service.create_post(
                session, PostCreate(title="Bad", content="Body", tags=[INACTIVE_TAG]), author
            )
        with pytest.raises(exceptions.TagValidationError):
            service.create_post(
                session, PostCreate(title="Bad", content="Body", tags=["not-a-uuid"]), author
            )
        assert session.exec(select(func.count(Post.id))).first() == 0

    def test_anonymous_creation_disabled_by_default(self, session: Session, service):
        with pytest.raises(exceptions.AuthenticationError):
            service.create_post(session, PostCreate(title="Anon", content="Body"), None)

    def test_anonymous_creation_uses_default_author(self, session: Session, tag_validator, clock):
        default_author = uuid.uuid4()
        service = PostService(
            tag_validator=tag_validator,
            clock=clock,
            allow_anonymous_creation=True,
            default_author_id=default_author,
        )
        post = service.create_post(session, PostCreate(title="Anon", content="Body"), None)
        assert post.author_id == default_author

    def test_non_staff_cannot_create(self, session: Session, service, reader):
        with pytest.raises(exceptions.PermissionDeniedError):
            service.create_post(session, PostCreate(title="Nope", content="Body"), reader)


class TestUpdatePost:
    def test_each_content_update_snapshots_previous_state(self, session: Session, service, author):
        post = service.create_post(session, PostCreate(title="Story", content="v0"), author)

        for i in range(1, 4):
            service.update_post(session, post.id, PostUpdate(content=f"v{i}"), author)

        versions, total = service.list_versions(session, post.id, author, limit=100)
        assert total == 4
        assert sorted(v.version_number for v in versions) == [1, 2, 3, 4]
        assert version_contents(service, session, post.id, author) == ["v0", "v0", "v1", "v2"]
        assert service.get_post(session, post.id, author).content == "v3"

    def test_update_without_snapshot(self, session: Session, service, author):
        post = service.create_post(session, PostCreate(title="Story", content="v0"), author)
        service.update_post(session, post.id, PostUpdate(content="v1", create_version=False), author)
        service.update_post(session, post.id, PostUpdate(meta_title="SEO title"), author)

        _, total = service.list_versions(session, post.id, author)
        assert total == 1

    def test_title_change_regenerates_slug(self, session: Session, service, author):
        service.create_post(session, PostCreate(title="New Title", content="Other"), author)
        post = service.create_post(session, PostCreate(title="Old Title", content="Body"), author)

        updated = service.update_post(session, post.id, PostUpdate(title="New Title"), author)
        assert updated.slug == "new-title-1"

        again = service.update_post(session, post.id, PostUpdate(title="New Title", content="Body 2"), author)
        assert again.slug == "new-title-1"

    def test_untouched_fields_are_kept(self, session: Session, service, author):
        post = service.create_post(
            session, PostCreate(title="Keep", content="Body", excerpt="Short", meta_title="Meta"), author
        )
        updated = service.update_post(session, post.id, PostUpdate(excerpt=None), author)
        assert updated.excerpt is None
        assert updated.meta_title == "Meta"
        assert updated.title == "Keep"

    def test_explicit_null_title_is_rejected(self, session: Session, service, author):
        post = service.create_post(session, PostCreate(title="Keep", content="Body"), author)
        with pytest.raises(exceptions.ValidationError):
            service.update_post(session, post.id, PostUpdate(title=None), author)

    def test_status_change_to_published(self, session: Session, service, author, clock):
        post = service.create_post(session, PostCreate(title="Draft", content="Body"), author)
        updated = service.update_post(session, post.id, PostUpdate(status="published"), author)
        assert updated.status == PostStatus.published
        assert updated.published_at == clock.now

    def test_leaving_scheduled_clears_scheduled_at(self, session: Session, service, author, clock):
        post = service.create_post(
            session,
            PostCreate(title="Soon", content="Body", status="scheduled",
                       scheduled_at=clock.now + timedelta(hours=2)),
            author,
        )
        updated = service.update_post(session, post.id, PostUpdate(status="archived"), author)
        assert updated.status == PostStatus.archived
        assert updated.scheduled_at is None

    def test_scheduling_through_update_needs_draft(self, session: Session, service, author, clock):
        post = service.create_post(
            session, PostCreate(title="Live", content="Body", status="published"), author
        )
        with pytest.raises(exceptions.ValidationError):
            service.update_post(
                session,
                post.id,
                PostUpdate(status="scheduled", scheduled_at=clock.now + timedelta(hours=1)),
                author,
            )

    def test_published_at_survives_archiving(self, session: Session, service, author, clock):
        post = service.create_post(
            session, PostCreate(title="Live", content="Body", status="published"), author
        )
        clock.advance(days=1)
        archived = service.update_post(session, post.id, PostUpdate(status="archived"), author)
        assert archived.published_at == post.published_at

    def test_other_author_cannot_update(self, session: Session, service, author, other_author):
        post = service.create_post(session, PostCreate(title="Mine", content="Body"), author)

        with pytest.raises(exceptions.PermissionDeniedError):
            service.update_post(session, post.id, PostUpdate(content="Hijacked"), other_author)

        assert service.get_post(session, post.id, author).content == "Body"
        assert count_rows(session, PostVersion, post.id) == 1

    def test_editor_can_update_any_post(self, session: Session, service, author, editor):
        post = service.create_post(session, PostCreate(title="Mine", content="Body"), author)
        updated = service.update_post(session, post.id, PostUpdate(content="Edited"), editor)
        assert updated.content == "Edited"

        versions, _ = service.list_versions(session, post.id, editor)
        assert versions[0].created_by == editor.id

    def test_missing_post(self, session: Session, service, author):
        with pytest.raises(exceptions.NotFoundError):
            service.update_post(session, uuid.uuid4(), PostUpdate(content="x"), author)

    def test_rejected_tag_leaves_post_untouched(self, session: Session, service, author):
        category = uuid.uuid4()
        post = service.create_post(
            session,
            PostCreate(title="Tagged", content="Body", categories=[category], tags=[ACTIVE_TAG]),
            author,
        )

        with pytest.raises(exceptions.TagValidationError):
            service.update_post(
                session,
                post.id,
                PostUpdate(title="Changed", categories=[], tags=[SECOND_ACTIVE_TAG, UNKNOWN_TAG]),
                author,
            )

        session.expire_all()
        current = service.get_post(session, post.id, author)
        assert current.title == "Tagged"
        assert current.tags == [uuid.UUID(ACTIVE_TAG)]
        assert current.categories == [category]
        assert count_rows(session, PostVersion, post.id) == 1

    def test_explicit_empty_lists_clear_links(self, session: Session, service, author):
        post = service.create_post(
            session,
            PostCreate(title="Tagged", content="Body", categories=[uuid.uuid4()], tags=[ACTIVE_TAG]),
            author,
        )
        updated = service.update_post(session, post.id, PostUpdate(categories=[], tags=[]), author)
        assert updated.categories == []
        assert updated.tags == []


class TestWriteRetries:
    def test_slug_collision_at_insert_is_retried(self, session: Session, service, author, make_post, monkeypatch):
        make_post(author.id, slug="hello-world")
        real_generate_slug = post_service_module.generate_slug
        calls = []

        def stale_probe(db, title, exclude_post_id=None):
            calls.append(title)
            if len(calls) == 1:
                # Simulates a concurrent writer taking the slug after the probe
                return "hello-world"
            return real_generate_slug(db, title, exclude_post_id=exclude_post_id)

        monkeypatch.setattr(post_service_module, "generate_slug", stale_probe)

        post = service.create_post(session, PostCreate(title="Hello World", content="Body"), author)

        assert post.slug == "hello-world-1"
        assert len(calls) == 2
        assert count_rows(session, PostVersion, post.id) == 1

    def test_persistent_collisions_raise_conflict(self, session: Session, service, author, make_post, monkeypatch):
        make_post(author.id, slug="hello-world")
        monkeypatch.setattr(post_service_module, "generate_slug", lambda db, title, exclude_post_id=None: "hello-world")

        with pytest.raises(exceptions.ConflictError):
            service.create_post(session, PostCreate(title="Hello World", content="Body"), author)

        assert session.exec(select(func.count(Post.id))).first() == 1

    def test_version_number_collision_is_retried(self, session: Session, service, author, monkeypatch):
        post = service.create_post(session, PostCreate(title="Story", content="v0"), author)
        real_next = service.versions.next_version_number
        calls = []

        def stale_next(db, post_id):
            calls.append(post_id)
            if len(calls) == 1:
                return 1
            return real_next(db, post_id)

        monkeypatch.setattr(service.versions, "next_version_number", stale_next)

        service.update_post(session, post.id, PostUpdate(content="v1"), author)

        versions, total = service.list_versions(session, post.id, author)
        assert total == 2
        assert versions[0].version_number == 2
        assert versions[0].content == "v0"

    def test_postgres_slug_violation_is_retried(self, session: Session, service, author, monkeypatch):
        real_replace = post_service_module.post_crud.replace_categories
        calls = []

        def collide_once(db, post_id, category_ids):
            calls.append(post_id)
            if len(calls) == 1:
                raise IntegrityError(
                    "INSERT INTO posts ...", {},
                    Exception('duplicate key value violates unique constraint "ix_posts_slug"'),
                )
            return real_replace(db, post_id, category_ids)

        monkeypatch.setattr(post_service_module.post_crud, "replace_categories", collide_once)

        post = service.create_post(session, PostCreate(title="Hello", content="Body"), author)

        assert len(calls) == 2
        assert session.exec(select(func.count(Post.id))).first() == 1
        assert post.slug == "hello"

    @pytest.mark.parametrize("message", [
        "NOT NULL constraint failed: posts.slug",
        'duplicate key value violates unique constraint "uq_post_categories_post_category"',
        'insert or update on table "post_tags" violates foreign key constraint "post_tags_slug_fkey"',
    ])
    def test_other_integrity_errors_are_not_retried(self, session: Session, service, author, monkeypatch, message):
        calls = []

        def fail(db, post_id, category_ids):
            calls.append(post_id)
            raise IntegrityError("INSERT INTO post_categories ...", {}, Exception(message))

        monkeypatch.setattr(post_service_module.post_crud, "replace_categories", fail)

        with pytest.raises(IntegrityError):
            service.create_post(session, PostCreate(title="Hello", content="Body"), author)

        assert len(calls) == 1
        assert session.exec(select(func.count(Post.id))).first() == 0


class TestConcurrentCreation:
    def test_identical_titles_get_distinct_slugs(self, tmp_path, tag_validator, author):
        engine = create_engine(
            f"sqlite:///{tmp_path / 'blog.db'}",
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        SQLModel.metadata.create_all(engine)
        writers = 8
        service = PostService(tag_validator=tag_validator, retry_attempts=writers + 2)
        start = threading.Barrier(writers)

        def write(n):
            start.wait()
            with Session(engine) as db:
                return service.create_post(
                    db, PostCreate(title="Same Title", content=f"Body {n}"), author
                ).slug

        try:
            with ThreadPoolExecutor(max_workers=writers) as pool:
                slugs = list(pool.map(write, range(writers)))

            with Session(engine) as db:
                stored = db.exec(select(Post.slug)).all()
        finally:
            engine.dispose()

        assert len(set(slugs)) == writers
        assert sorted(stored) == sorted(slugs)
        assert "same-title" in stored
        assert all(slug.startswith("same-title") for slug in stored)


class TestPublishAndSchedule:
    def test_publish_draft(self, session: Session, service, author, clock):
        post = service.create_post(session, PostCreate(title="Draft", content="Body"), author)
        published = service.publish_post(session, post.id, author)
        assert published.status == PostStatus.published
        assert published.published_at == clock.now

    def test_publish_scheduled_clears_schedule(self, session: Session, service, author, clock):
        post = service.create_post(
            session,
            PostCreate(title="Soon", content="Body", status="scheduled",
                       scheduled_at=clock.now + timedelta(days=1)),
            author,
        )
        published = service.publish_post(session, post.id, author)
        assert published.status == PostStatus.published
        assert published.scheduled_at is None

    def test_publish_twice_is_rejected(self, session: Session, service, author):
        post = service.create_post(session, PostCreate(title="Draft", content="Body"), author)
        service.publish_post(session, post.id, author)
        with pytest.raises(exceptions.ValidationError):
            service.publish_post(session, post.id, author)

    def test_republish_archived_post(self, session: Session, service, author, clock):
        post = service.create_post(session, PostCreate(title="Old", content="Body", status="archived"), author)
        published = service.publish_post(session, post.id, author)
        assert published.status == PostStatus.published
        assert published.published_at == clock.now

    def test_schedule_draft(self, session: Session, service, author, clock):
        post = service.create_post(session, PostCreate(title="Draft", content="Body"), author)
        when = clock.now + timedelta(hours=3)
        scheduled = service.schedule_post(session, post.id, when, author)
        assert scheduled.status == PostStatus.scheduled
        assert scheduled.scheduled_at == when

    def test_schedule_normalizes_timezones(self, session: Session, service, author, clock):
        post = service.create_post(session, PostCreate(title="Draft", content="Body"), author)
        local = (clock.now + timedelta(hours=5)).replace(tzinfo=timezone(timedelta(hours=2)))
        scheduled = service.schedule_post(session, post.id, local, author)
        assert scheduled.scheduled_at == clock.now + timedelta(hours=3)

    @pytest.mark.parametrize("offset", [timedelta(0), timedelta(minutes=-5)])
    def test_schedule_must_be_in_future(self, session: Session, service, author, clock, offset):
        post = service.create_post(session, PostCreate(title="Draft", content="Body"), author)
        with pytest.raises(exceptions.ValidationError):
            service.schedule_post(session, post.id, clock.now + offset, author)
        assert service.get_post(session, post.id, author).status == PostStatus.draft

    def test_schedule_requires_draft(self, session: Session, service, author, clock):
        post = service.create_post(
            session, PostCreate(title="Live", content="Body", status="published"), author
        )
        with pytest.raises(exceptions.ValidationError):
            service.schedule_post(session, post.id, clock.now + timedelta(hours=1), author)

    def test_other_author_cannot_publish_or_schedule(self, session: Session, service, author, other_author, clock):
        post = service.create_post(session, PostCreate(title="Mine", content="Body"), author)
        with pytest.raises(exceptions.PermissionDeniedError):
            service.publish_post(session, post.id, other_author)
        with pytest.raises(exceptions.PermissionDeniedError):
            service.schedule_post(session, post.id, clock.now + timedelta(hours=1), other_author)
        assert service.get_post(session, post.id, author).status == PostStatus.draft


class TestVersions:
    def test_restore_snapshots_current_state_first(self, session: Session, service, author, clock):
        post = service.create_post(
            session, PostCreate(title="Title A", content="A", excerpt="a", status="published"), author
        )
        service.update_post(session, post.id, PostUpdate(title="Title B", content="B", excerpt="b"), author)
        service.update_post(session, post.id, PostUpdate(title="Title C", content="C", excerpt="c"), author)
        before = service.get_post(session, post.id, author)

        clock.advance(hours=1)
        restored = service.restore_version(session, post.id, 3, author)

        assert (restored.title, restored.content, restored.excerpt) == ("Title B", "B", "b")
        assert restored.slug == before.slug
        assert restored.status == PostStatus.published
        assert restored.published_at == before.published_at
        assert restored.updated_at == clock.now

        newest = service.get_version(session, post.id, 4, author)
        assert (newest.title, newest.content, newest.excerpt) == ("Title C", "C", "c")

    def test_restore_missing_version(self, session: Session, service, author):
        post = service.create_post(session, PostCreate(title="Only", content="Body"), author)
        with pytest.raises(exceptions.NotFoundError):
            service.restore_version(session, post.id, 7, author)
        assert count_rows(session, PostVersion, post.id) == 1

    def test_manual_version_with_overrides(self, session: Session, service, author):
        post = service.create_post(session, PostCreate(title="Draft", content="Body"), author)

        plain = service.create_version(session, post.id, VersionCreate(), author)
        assert plain.version_number == 2
        assert plain.content == "Body"

        edited = service.create_version(session, post.id, VersionCreate(content="Work in progress"), author)
        assert edited.version_number == 3
        assert edited.title == "Draft"
        assert edited.content == "Work in progress"

    def test_versions_are_listed_newest_first(self, session: Session, service, author):
        post = service.create_post(session, PostCreate(title="Story", content="v0"), author)
        service.update_post(session, post.id, PostUpdate(content="v1"), author)

        versions, _ = service.list_versions(session, post.id, author)
        assert [v.version_number for v in versions] == [2, 1]

    def test_versions_require_ownership(self, session: Session, service, author, other_author):
        post = service.create_post(session, PostCreate(title="Mine", content="Body"), author)
        with pytest.raises(exceptions.PermissionDeniedError):
            service.list_versions(session, post.id, other_author)
        with pytest.raises(exceptions.PermissionDeniedError):
            service.create_version(session, post.id, VersionCreate(), other_author)
        with pytest.raises(exceptions.PermissionDeniedError):
            service.restore_version(session, post.id, 1, other_author)
        assert count_rows(session, PostVersion, post.id) == 1


class TestDeletePost:
    def test_delete_removes_dependent_rows(self, session: Session, service, author):
        post = service.create_post(
            session,
            PostCreate(title="Doomed", content="Body", categories=[uuid.uuid4()], tags=[ACTIVE_TAG]),
            author,
        )
        session.add(PostView(post_id=post.id, ip_address="127.0.0.1"))
        session.commit()

        service.delete_post(session, post.id, author)

        with pytest.raises(exceptions.NotFoundError):
            service.get_post(session, post.id, author)
        for model in (PostVersion, PostTag, PostCategory, PostView):
            assert count_rows(session, model, post.id) == 0

    def test_other_author_cannot_delete(self, session: Session, service, author, other_author):
        post = service.create_post(session, PostCreate(title="Mine", content="Body"), author)
        with pytest.raises(exceptions.PermissionDeniedError):
            service.delete_post(session, post.id, other_author)
        assert service.get_post(session, post.id, author).title == "Mine"


class TestDrafts:
    def test_save_new_draft(self, session: Session, service, author):
        draft = service.save_draft(session, DraftSave(title="First Draft", content="Body"), author)
        assert draft.status == PostStatus.draft
        assert draft.slug == "first-draft"
        assert count_rows(session, PostVersion, draft.id) == 1

    def test_resave_keeps_slug_and_versions(self, session: Session, service, author):
        draft = service.save_draft(session, DraftSave(title="First Draft", content="Body"), author)
        saved = service.save_draft(
            session,
            DraftSave(post_id=draft.id, title="Renamed Draft", content="More body", tags=[ACTIVE_TAG]),
            author,
        )
        assert saved.id == draft.id
        assert saved.slug == "first-draft"
        assert saved.title == "Renamed Draft"
        assert saved.tags == [uuid.UUID(ACTIVE_TAG)]
        assert count_rows(session, PostVersion, draft.id) == 1

    def test_cannot_save_published_post_as_draft(self, session: Session, service, author):
        post = service.create_post(session, PostCreate(title="Live", content="Body", status="published"), author)
        with pytest.raises(exceptions.ValidationError):
            service.save_draft(session, DraftSave(post_id=post.id, title="Live", content="Changed"), author)

    def test_list_drafts_scoping(self, session: Session, service, author, other_author, editor):
        service.save_draft(session, DraftSave(title="Mine", content="Body"), author)
        service.save_draft(session, DraftSave(title="Theirs", content="Body"), other_author)
        service.create_post(session, PostCreate(title="Live", content="Body", status="published"), author)

        own, own_total = service.list_drafts(session, author)
        assert own_total == 1
        assert own[0].title == "Mine"

        _, all_total = service.list_drafts(session, editor)
        assert all_total == 2

    def test_delete_draft(self, session: Session, service, author):
        draft = service.save_draft(session, DraftSave(title="Scrap", content="Body"), author)
        service.delete_draft(session, draft.id, author)
        with pytest.raises(exceptions.NotFoundError):
            service.get_post(session, draft.id, author)

    def test_delete_draft_rejects_published(self, session: Session, service, author):
        post = service.create_post(session, PostCreate(title="Live", content="Body", status="published"), author)
        with pytest.raises(exceptions.ValidationError):
            service.delete_draft(session, post.id, author)


class TestVisibility:
    @pytest.fixture
    def posts(self, session: Session, service, author, other_author):
        published = service.create_post(
            session, PostCreate(title="Public Post", content="Everyone", status="published"), author
        )
        own_draft = service.create_post(session, PostCreate(title="My Draft", content="Secret"), author)
        other_draft = service.create_post(session, PostCreate(title="Their Draft", content="Secret"), other_author)
        return published, own_draft, other_draft

    def test_anonymous_sees_published_only(self, session: Session, service, posts):
        published, _, _ = posts
        results, total = service.list_posts(session, None, include_drafts=True)
        assert total == 1
        assert [p.id for p in results] == [published.id]

        results, total = service.list_posts(session, None, status=PostStatus.draft)
        assert (results, total) == ([], 0)

    def test_author_sees_own_unpublished(self, session: Session, service, author, posts):
        published, own_draft, _ = posts
        results, total = service.list_posts(session, author, include_drafts=True)
        assert total == 2
        assert {p.id for p in results} == {published.id, own_draft.id}

        results, _ = service.list_posts(session, author, status=PostStatus.draft)
        assert [p.id for p in results] == [own_draft.id]

    def test_editor_sees_everything(self, session: Session, service, editor, posts):
        _, total = service.list_posts(session, editor, include_drafts=True)
        assert total == 3

    def test_non_staff_sees_published_only(self, session: Session, service, reader, posts):
        _, total = service.list_posts(session, reader, include_drafts=True)
        assert total == 1

    def test_hidden_posts_look_missing(self, session: Session, service, author, other_author, posts):
        _, own_draft, _ = posts
        with pytest.raises(exceptions.NotFoundError):
            service.get_post(session, own_draft.id, None)
        with pytest.raises(exceptions.NotFoundError):
            service.get_post(session, own_draft.id, other_author)
        with pytest.raises(exceptions.NotFoundError):
            service.get_post_by_slug(session, own_draft.slug, None)
        assert service.get_post(session, own_draft.id, author).id == own_draft.id

    def test_search_and_filters(self, session: Session, service, author, editor):
        category = uuid.uuid4()
        tagged = service.create_post(
            session,
            PostCreate(title="Gardening tips", content="Soil", status="published",
                       categories=[category], tags=[ACTIVE_TAG]),
            author,
        )
        service.create_post(session, PostCreate(title="Cooking", content="Pasta", status="published"), editor)

        results, _ = service.list_posts(session, None, search="garden")
        assert [p.id for p in results] == [tagged.id]
        results, _ = service.list_posts(session, None, category_id=category)
        assert [p.id for p in results] == [tagged.id]
        results, _ = service.list_posts(session, None, tag_id=uuid.UUID(ACTIVE_TAG))
        assert [p.id for p in results] == [tagged.id]
        results, _ = service.list_posts(session, None, author_id=editor.id)
        assert [p.title for p in results] == ["Cooking"]

    def test_sort_by_view_count(self, session: Session, service, author):
        quiet = service.create_post(session, PostCreate(title="Quiet", content="Body", status="published"), author)
        popular = service.create_post(session, PostCreate(title="Popular", content="Body", status="published"), author)
        for _ in range(3):
            session.add(PostView(post_id=popular.id))
        session.commit()

        results, _ = service.list_posts(session, None, sort_by="view_count", sort_order="desc")
        assert [p.id for p in results] == [popular.id, quiet.id]
        assert results[0].view_count == 3

    def test_unknown_sort_field(self, session: Session, service):
        with pytest.raises(exceptions.ValidationError):
            service.list_posts(session, None, sort_by="password")
