"""Credential store tests against a real (SQLite) database.

Learn: Uniqueness is the database's job, so these tests insert for real
and check that collisions come back as DuplicateKeyError rather than
IntegrityError, and that a dead database is InfrastructureError.
"""

import uuid

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from eventease.auth.policy import Role
from eventease.auth.store import SqlCredentialStore
from eventease.db.engine import build_session_factory
from eventease.errors import DuplicateKeyError, InfrastructureError, NotFoundError


# ═══════════════════════════════════════════════════════════
# Create + lookups
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_create_normalizes_and_hashes(store):
    user = await store.create(name="  Ada  ", email=" Ada@Example.COM ", password="secret123")
    assert user.name == "Ada"
    assert user.email == "ada@example.com"
    assert user.role == "guest"
    assert user.password_hash != "secret123"
    assert await store.verify_password(user, "secret123")
    assert not await store.verify_password(user, "secret124")


@pytest.mark.asyncio
async def test_create_accepts_role_enum(store):
    user = await store.create(name="Org", email="org@example.com", password="pw1234", role=Role.ORGANIZER)
    assert user.role == "organizer"


@pytest.mark.asyncio
async def test_create_needs_exactly_one_secret(store):
    with pytest.raises(ValueError):
        await store.create(name="X", email="x@example.com")
    with pytest.raises(ValueError):
        await store.create(name="X", email="x@example.com", password="a", password_hash="b")


@pytest.mark.asyncio
async def test_lookups(store):
    user = await store.create(
        name="Lin", email="lin@example.com", password="pw1234", external_id="g-1"
    )
    assert (await store.find_by_id(user.id)).email == "lin@example.com"
    assert (await store.find_by_id(str(user.id))).id == user.id
    assert (await store.find_by_email("LIN@example.com")).id == user.id
    assert (await store.find_by_external_id("g-1")).id == user.id


@pytest.mark.asyncio
async def test_lookups_miss_quietly(store):
    assert await store.find_by_id(uuid.uuid4()) is None
    assert await store.find_by_id("not-a-uuid") is None
    assert await store.find_by_email("nobody@example.com") is None
    assert await store.find_by_external_id("g-missing") is None


@pytest.mark.asyncio
async def test_list_identities_filters_by_role(store):
    await store.create(name="G", email="g@example.com", password="pw1234")
    await store.create(name="O", email="o@example.com", password="pw1234", role="organizer")
    assert len(await store.list_identities()) == 2
    organizers = await store.list_identities("organizer")
    assert [u.email for u in organizers] == ["o@example.com"]


# ═══════════════════════════════════════════════════════════
# Uniqueness
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_duplicate_email(store):
    await store.create(name="One", email="dup@example.com", password="pw1234")
    with pytest.raises(DuplicateKeyError) as exc:
        await store.create(name="Two", email="DUP@example.com", password="pw1234")
    assert exc.value.message == "Email already exists"
    assert exc.value.status_code == 400


@pytest.mark.asyncio
async def test_duplicate_external_id(store):
    await store.create(name="One", email="a@example.com", password="pw1234", external_id="g-9")
    with pytest.raises(DuplicateKeyError) as exc:
        await store.create(name="Two", email="b@example.com", password="pw1234", external_id="g-9")
    assert "linked" in exc.value.message


@pytest.mark.asyncio
async def test_update_into_taken_email(store):
    await store.create(name="One", email="taken@example.com", password="pw1234")
    other = await store.create(name="Two", email="free@example.com", password="pw1234")
    with pytest.raises(DuplicateKeyError):
        await store.update(other.id, email="taken@example.com")


# ═══════════════════════════════════════════════════════════
# Update + delete
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_update_fields_and_password(store):
    user = await store.create(name="Upd", email="upd@example.com", password="old-pass")
    updated = await store.update(user.id, name="Updated", password="new-pass", role=Role.ADMIN)
    assert updated.name == "Updated"
    assert updated.role == "admin"
    assert await store.verify_password(updated, "new-pass")
    assert not await store.verify_password(updated, "old-pass")


@pytest.mark.asyncio
async def test_password_check_for_unknown_email_never_matches(store):
    assert await store.verify_password_for_unknown("secret123") is False
    assert await store.verify_password_for_unknown("") is False


@pytest.mark.asyncio
async def test_update_rejects_unknown_fields(store):
    user = await store.create(name="U", email="u@example.com", password="pw1234")
    with pytest.raises(ValueError):
        await store.update(user.id, id=uuid.uuid4())


@pytest.mark.asyncio
async def test_update_and_delete_missing_user(store):
    with pytest.raises(NotFoundError):
        await store.update(uuid.uuid4(), name="Ghost")
    with pytest.raises(NotFoundError):
        await store.delete(uuid.uuid4())


@pytest.mark.asyncio
async def test_delete(store):
    user = await store.create(name="Del", email="del@example.com", password="pw1234")
    await store.delete(user.id)
    assert await store.find_by_id(user.id) is None


# ═══════════════════════════════════════════════════════════
# Infrastructure failure
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_unreachable_database_is_infrastructure_error(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'missing-dir' / 'nope.db'}"
    engine = create_async_engine(url)
    broken = SqlCredentialStore(build_session_factory(engine), bcrypt_rounds=4)
    try:
        with pytest.raises(InfrastructureError) as exc:
            await broken.find_by_email("a@example.com")
        assert exc.value.status_code == 500
        assert exc.value.message == "Credential store unavailable"
    finally:
        await engine.dispose()
