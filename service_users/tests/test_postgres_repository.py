"""
Unit tests for the PostgreSQL user repository.
"""

import uuid
from datetime import datetime, timezone

import asyncpg
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from shared.errors import ConflictError, NotFoundError, ServiceException
from service_users.app.persistence.postgres import PostgresUserRepository


def make_row(**overrides):
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    row = {
        "id": uuid.UUID("8a4a6c1e-55c2-4c7c-9d0e-8b2f5a0c1d11"),
        "name": "Ada",
        "email": "ada@example.com",
        "age": 36,
        "created_at": now,
        "updated_at": now,
    }
    row.update(overrides)
    return row


class TestPostgresUserRepository:
    """Test cases for PostgresUserRepository."""

    @pytest.fixture
    def conn(self):
        return AsyncMock()

    @pytest.fixture
    def repository(self, conn):
        repository = PostgresUserRepository("postgresql://localhost/users")
        pool = MagicMock()
        pool.acquire.return_value.__aenter__.return_value = conn
        pool.close = AsyncMock()
        repository.pool = pool
        return repository

    @pytest.mark.asyncio
    async def test_start_creates_pool_and_tables(self, conn):
        """Test start builds the pool and schema."""
        repository = PostgresUserRepository("postgresql://localhost/users")
        pool = MagicMock()
        pool.acquire.return_value.__aenter__.return_value = conn

        with patch("service_users.app.persistence.postgres.asyncpg.create_pool",
                   new_callable=AsyncMock, return_value=pool) as create_pool:
            await repository.start()

        create_pool.assert_awaited_once()
        assert repository.pool is pool
        schema = " ".join(call.args[0] for call in conn.execute.await_args_list)
        assert "CREATE TABLE IF NOT EXISTS users" in schema
        assert "UNIQUE" in schema

    @pytest.mark.asyncio
    async def test_start_failure_raises_service_exception(self):
        """Test connection failures surface as a service error."""
        repository = PostgresUserRepository("postgresql://localhost/users")

        with patch("service_users.app.persistence.postgres.asyncpg.create_pool",
                   new_callable=AsyncMock, side_effect=OSError("connection refused")):
            with pytest.raises(ServiceException) as exc_info:
                await repository.start()

        assert exc_info.value.code == "POSTGRES_START_FAILED"
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_find_by_id(self, repository, conn):
        """Test row mapping."""
        conn.fetchrow.return_value = make_row()

        record = await repository.find_by_id("8a4a6c1e-55c2-4c7c-9d0e-8b2f5a0c1d11")

        assert record.id == "8a4a6c1e-55c2-4c7c-9d0e-8b2f5a0c1d11"
        assert record.email == "ada@example.com"
        assert record.created_at == datetime(2024, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_find_by_id_missing(self, repository, conn):
        """Test unknown ids return None."""
        conn.fetchrow.return_value = None
        assert await repository.find_by_id(str(uuid.uuid4())) is None

    @pytest.mark.asyncio
    async def test_find_by_field_uses_column(self, repository, conn):
        """Test the field name becomes the filtered column."""
        conn.fetchrow.return_value = make_row()

        await repository.find_by_field("email", "ada@example.com")

        query, value = conn.fetchrow.await_args.args
        assert "WHERE email = $1" in query
        assert value == "ada@example.com"

    @pytest.mark.asyncio
    async def test_find_by_field_rejects_unknown_columns(self, repository, conn):
        """Test arbitrary identifiers never reach SQL."""
        with pytest.raises(ValueError):
            await repository.find_by_field("1=1; DROP TABLE users; --", "x")

        conn.fetchrow.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_find_all(self, repository, conn):
        """Test listing maps every row."""
        conn.fetch.return_value = [make_row(), make_row(id=uuid.uuid4(), email="b@example.com")]

        records = await repository.find_all()

        assert [record.email for record in records] == ["ada@example.com", "b@example.com"]
        assert "ORDER BY created_at" in conn.fetch.await_args.args[0]

    @pytest.mark.asyncio
    async def test_create(self, repository, conn):
        """Test insert parameters."""
        conn.fetchrow.return_value = make_row()

        record = await repository.create({"name": "Ada", "email": "ada@example.com", "age": 36})

        query, user_id, name, email, age = conn.fetchrow.await_args.args
        assert "INSERT INTO users" in query
        assert uuid.UUID(user_id)
        assert (name, email, age) == ("Ada", "ada@example.com", 36)
        assert record.name == "Ada"

    @pytest.mark.asyncio
    async def test_create_unique_violation(self, repository, conn):
        """Test duplicate emails map to ConflictError."""
        conn.fetchrow.side_effect = asyncpg.UniqueViolationError("duplicate key value")

        with pytest.raises(ConflictError) as exc_info:
            await repository.create({"name": "Ada", "email": "ada@example.com", "age": 36})

        assert exc_info.value.field == "email"

    @pytest.mark.asyncio
    async def test_update_by_id_sets_only_supplied_columns(self, repository, conn):
        """Test the generated SET clause."""
        conn.fetchrow.return_value = make_row(age=37)

        record = await repository.update_by_id("8a4a6c1e-55c2-4c7c-9d0e-8b2f5a0c1d11", {"age": 37})

        query, user_id, age = conn.fetchrow.await_args.args
        assert "age = $2" in query
        assert "updated_at = NOW()" in query
        assert "name =" not in query
        assert age == 37
        assert record.age == 37

    @pytest.mark.asyncio
    async def test_update_by_id_missing(self, repository, conn):
        """Test updating an unknown id."""
        conn.fetchrow.return_value = None

        with pytest.raises(NotFoundError):
            await repository.update_by_id(str(uuid.uuid4()), {"age": 37})

    @pytest.mark.asyncio
    async def test_update_unique_violation(self, repository, conn):
        """Test email conflicts on update."""
        conn.fetchrow.side_effect = asyncpg.UniqueViolationError("duplicate key value")

        with pytest.raises(ConflictError):
            await repository.update_by_id(str(uuid.uuid4()), {"email": "taken@example.com"})

    @pytest.mark.asyncio
    async def test_delete_by_id(self, repository, conn):
        """Test delete result parsing."""
        conn.execute.return_value = "DELETE 1"
        assert await repository.delete_by_id(str(uuid.uuid4())) is True

        conn.execute.return_value = "DELETE 0"
        assert await repository.delete_by_id(str(uuid.uuid4())) is False

    @pytest.mark.asyncio
    async def test_health_check(self, repository, conn):
        """Test health probe."""
        conn.fetchval.return_value = 1
        assert await repository.health_check() is True

        conn.fetchval.side_effect = OSError("gone")
        assert await repository.health_check() is False

    @pytest.mark.asyncio
    async def test_stop_closes_pool(self, repository):
        """Test stop releases the pool."""
        pool = repository.pool
        await repository.stop()
        pool.close.assert_awaited_once()
