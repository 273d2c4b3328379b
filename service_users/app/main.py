"""
Users service: user record CRUD with bulk creation and response caching.
"""

from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi import Body, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import ServiceException, ServiceError, ValidationError, ValidationFailedError

from .cache import CacheStore, MemoryStore, RedisStore, ResponseCache
from .persistence import InMemoryUserRepository, PostgresUserRepository, UserRepository
from .users.coordinator import BulkMutationCoordinator
from .users.models import BulkCreateResponse, BulkOutcome, UserRecord


class UsersService(BaseService):
    """Users service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        repository: Optional[UserRepository] = None,
        cache_store: Optional[CacheStore] = None,
    ):
        super().__init__("users", 8013, config)

        self.repository = repository if repository is not None else self._build_repository()
        self.coordinator = BulkMutationCoordinator(self.repository, self.metrics)

        self.cache_store = cache_store if cache_store is not None else self._build_cache_store()
        self.cache: Optional[ResponseCache] = None
        if self.cache_store is not None:
            self.cache = ResponseCache(
                self.cache_store,
                default_ttl=self.config.cache_ttl_seconds,
                metrics=self.metrics,
                failure_threshold=self.config.cache_failure_threshold,
                recovery_timeout=self.config.cache_recovery_timeout
            )

        self._setup_users_routes()

    def _build_repository(self) -> UserRepository:
        if self.config.persistence_backend == "postgres":
            return PostgresUserRepository(self.config.postgres_dsn)
        return InMemoryUserRepository()

    def _build_cache_store(self) -> Optional[CacheStore]:
        if self.config.cache_backend == "redis":
            return RedisStore(self.config.redis_url)
        if self.config.cache_backend == "memory":
            return MemoryStore()
        return None

    def _cache_key(self, request: Request) -> str:
        # Path only; no route takes query parameters
        return f"{self.config.cache_key_prefix}:{request.url.path}"

    async def _read_through(self, request: Request, loader: Callable[[], Awaitable[Any]]) -> Any:
        if self.cache is None:
            return await loader()
        return await self.cache.read_through(self._cache_key(request), loader)

    async def _invalidate_users(self):
        if self.cache is not None:
            await self.cache.invalidate(f"{self.config.cache_key_prefix}:*")

    @staticmethod
    def _user_payload(record: UserRecord) -> Dict[str, Any]:
        return record.to_response().model_dump(mode="json")

    @staticmethod
    def _bulk_status(outcome: BulkOutcome) -> int:
        if outcome.all_created:
            return 201
        if outcome.none_created:
            return 400
        return 207

    def _setup_users_routes(self):
        """Set up user-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "users",
                "message": "User Records - Users Service",
                "version": "1.0.0",
                "capabilities": ["bulk_create", "caching", "persistence"]
            }

        @self.app.post("/api/users")
        async def create_users(payload: Any = Body(...)):
            """Create one user (object body) or many users (array body)."""
            try:
                if isinstance(payload, list):
                    if not payload:
                        raise ValidationError("Request body must contain at least one user")

                    outcome = await self.coordinator.submit(payload)
                    if outcome.created:
                        await self._invalidate_users()

                    return JSONResponse(
                        status_code=self._bulk_status(outcome),
                        content=BulkCreateResponse.from_outcome(outcome).model_dump(mode="json")
                    )

                outcome = await self.coordinator.submit([payload])
                if outcome.created:
                    await self._invalidate_users()
                    return JSONResponse(status_code=201, content=self._user_payload(outcome.created[0]))

                if outcome.has_infrastructure_failure():
                    raise ServiceError("Failed to create user")
                raise ValidationFailedError(outcome.failures[0].issues)

            except ServiceException:
                raise
            except Exception as e:
                self.logger.error("Error creating users", error=str(e))
                raise HTTPException(status_code=500, detail="Internal server error")

        @self.app.get("/api/users")
        async def list_users(request: Request):
            """List all users."""
            async def load():
                return [self._user_payload(record) for record in await self.coordinator.list_users()]

            try:
                return await self._read_through(request, load)
            except ServiceException:
                raise
            except Exception as e:
                self.logger.error("Error listing users", error=str(e))
                raise HTTPException(status_code=500, detail="Internal server error")

        @self.app.get("/api/users/{user_id}")
        async def get_user(user_id: str, request: Request):
            """Get a single user."""
            async def load():
                return self._user_payload(await self.coordinator.get(user_id))

            try:
                return await self._read_through(request, load)
            except ServiceException:
                raise
            except Exception as e:
                self.logger.error("Error getting user", user_id=user_id, error=str(e))
                raise HTTPException(status_code=500, detail="Internal server error")

        @self.app.api_route("/api/users/{user_id}", methods=["PUT", "PATCH"])
        async def update_user(user_id: str, payload: Any = Body(...)):
            """Update the supplied fields of a user."""
            try:
                record = await self.coordinator.update_partial(user_id, payload)
                await self._invalidate_users()
                return self._user_payload(record)

            except ServiceException:
                raise
            except Exception as e:
                self.logger.error("Error updating user", user_id=user_id, error=str(e))
                raise HTTPException(status_code=500, detail="Internal server error")

        @self.app.delete("/api/users/{user_id}", status_code=204)
        async def delete_user(user_id: str):
            """Delete a user."""
            try:
                await self.coordinator.delete(user_id)
                await self._invalidate_users()
                return Response(status_code=204)

            except ServiceException:
                raise
            except Exception as e:
                self.logger.error("Error deleting user", user_id=user_id, error=str(e))
                raise HTTPException(status_code=500, detail="Internal server error")

    async def _check_dependencies(self):
        """Check users service dependencies."""
        dependencies = {}

        try:
            dependencies["persistence"] = "ok" if await self.repository.health_check() else "error"
        except Exception:
            dependencies["persistence"] = "error"

        if self.cache is not None:
            try:
                dependencies["cache"] = "ok" if await self.cache.health_check() else "degraded"
            except Exception:
                dependencies["cache"] = "degraded"

        return dependencies

    async def start(self):
        """Start users service components."""
        await self.repository.start()
        if self.cache_store is not None:
            await self.cache_store.start()

        self.logger.info(
            "Users service started",
            persistence=self.config.persistence_backend,
            cache=self.config.cache_backend
        )

    async def stop(self):
        """Stop users service components."""
        await self.repository.stop()
        if self.cache_store is not None:
            await self.cache_store.stop()

        self.logger.info("Users service stopped")


def create_app():
    """Create users service application."""
    service = UsersService()
    return service.app


if __name__ == "__main__":
    service = UsersService()
    service.run()
