"""
PostgreSQL persistence layer for the Users Service.
"""

import uuid
from typing import Dict, Any, Optional, List

import asyncpg
from shared.logging import get_logger
from shared.errors import ConflictError, NotFoundError, ServiceException
from ..users.models import UserRecord, USER_FIELDS
from .base import UserRepository


class PostgresUserRepository(UserRepository):
    """PostgreSQL persistence layer for user records."""

    def __init__(self, dsn: str):
        self.dsn = dsn
        self.logger = get_logger("users.persistence.postgres")
        self.pool: Optional[asyncpg.Pool] = None

    async def start(self):
        """Start the persistence layer."""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=2,
                max_size=10,
                command_timeout=30
            )

            await self._create_tables()

            self.logger.info("PostgreSQL persistence started")

        except Exception as e:
            self.logger.error("Failed to start PostgreSQL persistence", error=str(e))
            raise ServiceException("POSTGRES_START_FAILED", str(e), status_code=500)

    async def stop(self):
        """Stop the persistence layer."""
        if self.pool:
            await self.pool.close()
            self.logger.info("PostgreSQL persistence stopped")

    async def _create_tables(self):
        """Create database tables."""
        async with self.pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id UUID PRIMARY KEY,
                    name VARCHAR(255) NOT NULL,
                    email VARCHAR(320) NOT NULL UNIQUE,
                    age INTEGER NOT NULL CHECK (age BETWEEN 1 AND 120),
                    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
                    updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
                );
            """)
            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_users_created_at ON users(created_at);
            """)

    async def find_by_id(self, user_id: str) -> Optional[UserRecord]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow("""
                SELECT * FROM users WHERE id = $1
            """, user_id)

        return self._row_to_user(row) if row else None

    async def find_by_field(self, name: str, value: Any) -> Optional[UserRecord]:
        # Column names cannot be bound as parameters
        if name != "id" and name not in USER_FIELDS:
            raise ValueError(f"Unknown user field: {name}")

        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(f"""
                SELECT * FROM users WHERE {name} = $1 LIMIT 1
            """, value)

        return self._row_to_user(row) if row else None

    async def find_all(self) -> List[UserRecord]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch("""
                SELECT * FROM users ORDER BY created_at ASC
            """)

        return [self._row_to_user(row) for row in rows]

    async def create(self, data: Dict[str, Any]) -> UserRecord:
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow("""
                    INSERT INTO users (id, name, email, age)
                    VALUES ($1, $2, $3, $4)
                    RETURNING *
                """, str(uuid.uuid4()), data["name"], data["email"], data["age"])
        except asyncpg.UniqueViolationError as e:
            self.logger.info("Unique violation on insert", constraint=e.constraint_name)
            raise ConflictError("email") from e

        user = self._row_to_user(row)
        self.logger.info("User saved", user_id=user.id)
        return user

    async def update_by_id(self, user_id: str, fields: Dict[str, Any]) -> UserRecord:
        columns = [name for name in USER_FIELDS if name in fields]
        assignments = [f"{name} = ${position}" for position, name in enumerate(columns, start=2)]
        assignments.append("updated_at = NOW()")

        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(f"""
                    UPDATE users SET {", ".join(assignments)}
                    WHERE id = $1
                    RETURNING *
                """, user_id, *(fields[name] for name in columns))
        except asyncpg.UniqueViolationError as e:
            self.logger.info("Unique violation on update", user_id=user_id, constraint=e.constraint_name)
            raise ConflictError("email") from e

        if row is None:
            raise NotFoundError("User not found", {"id": user_id})

        return self._row_to_user(row)

    async def delete_by_id(self, user_id: str) -> bool:
        async with self.pool.acquire() as conn:
            result = await conn.execute("""
                DELETE FROM users WHERE id = $1
            """, user_id)

        if result == "DELETE 1":
            self.logger.info("User deleted", user_id=user_id)
            return True

        self.logger.warning("User not found for deletion", user_id=user_id)
        return False

    def _row_to_user(self, row) -> UserRecord:
        """Convert database row to UserRecord."""
        return UserRecord(
            id=str(row['id']),
            name=row['name'],
            email=row['email'],
            age=row['age'],
            created_at=row['created_at'],
            updated_at=row['updated_at']
        )

    async def health_check(self) -> bool:
        """Check database health."""
        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
                return True
        except Exception:
            return False
