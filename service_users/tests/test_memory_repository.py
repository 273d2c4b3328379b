"""
Unit tests for the in-memory user repository.
"""

import uuid

import pytest

from shared.errors import ConflictError, NotFoundError
from service_users.app.persistence.memory import InMemoryUserRepository


class TestInMemoryUserRepository:
    """Test cases for InMemoryUserRepository."""

    @pytest.fixture
    def repository(self):
        return InMemoryUserRepository()

    @pytest.fixture
    def ada(self):
        return {"name": "Ada", "email": "ada@example.com", "age": 36}

    @pytest.mark.asyncio
    async def test_create_assigns_id_and_timestamps(self, repository, ada):
        """Test creation fills in server-side fields."""
        record = await repository.create(ada)

        assert uuid.UUID(record.id)
        assert record.created_at is not None
        assert record.updated_at is not None
        assert await repository.find_by_id(record.id) == record

    @pytest.mark.asyncio
    async def test_create_duplicate_email(self, repository, ada):
        """Test the unique email constraint."""
        await repository.create(ada)

        with pytest.raises(ConflictError) as exc_info:
            await repository.create({**ada, "name": "Other"})

        assert exc_info.value.field == "email"

    @pytest.mark.asyncio
    async def test_find_by_field(self, repository, ada):
        """Test lookup by a named field."""
        record = await repository.create(ada)

        assert await repository.find_by_field("email", "ada@example.com") == record
        assert await repository.find_by_field("email", "nobody@example.com") is None

    @pytest.mark.asyncio
    async def test_find_by_unknown_field(self, repository):
        """Test unknown field names are rejected."""
        with pytest.raises(ValueError):
            await repository.find_by_field("password", "x")

    @pytest.mark.asyncio
    async def test_find_all_in_creation_order(self, repository):
        """Test listing order."""
        for index in range(3):
            await repository.create({"name": f"U{index}", "email": f"u{index}@example.com", "age": 20 + index})

        records = await repository.find_all()

        assert [record.name for record in records] == ["U0", "U1", "U2"]

    @pytest.mark.asyncio
    async def test_update_by_id(self, repository, ada):
        """Test partial update keeps other fields."""
        record = await repository.create(ada)

        updated = await repository.update_by_id(record.id, {"age": 37})

        assert updated.age == 37
        assert updated.name == "Ada"
        assert updated.created_at == record.created_at
        assert updated.updated_at >= record.updated_at

    @pytest.mark.asyncio
    async def test_update_ignores_unknown_fields(self, repository, ada):
        """Test that server-managed fields cannot be overwritten."""
        record = await repository.create(ada)

        updated = await repository.update_by_id(record.id, {"id": "other", "name": "Ada L"})

        assert updated.id == record.id
        assert updated.name == "Ada L"

    @pytest.mark.asyncio
    async def test_update_conflict(self, repository, ada):
        """Test an update cannot take another user's email."""
        record = await repository.create(ada)
        await repository.create({"name": "Grace", "email": "grace@example.com", "age": 45})

        with pytest.raises(ConflictError):
            await repository.update_by_id(record.id, {"email": "grace@example.com"})

        assert (await repository.update_by_id(record.id, {"email": "ada@example.com"})).email == "ada@example.com"

    @pytest.mark.asyncio
    async def test_update_missing(self, repository):
        """Test updating an unknown id."""
        with pytest.raises(NotFoundError):
            await repository.update_by_id(str(uuid.uuid4()), {"age": 30})

    @pytest.mark.asyncio
    async def test_delete_by_id(self, repository, ada):
        """Test deletion reports whether a record was removed."""
        record = await repository.create(ada)

        assert await repository.delete_by_id(record.id) is True
        assert await repository.delete_by_id(record.id) is False
        assert await repository.find_by_id(record.id) is None

    @pytest.mark.asyncio
    async def test_health_check(self, repository):
        """Test the default health check."""
        assert await repository.health_check() is True
