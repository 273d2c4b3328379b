"""
Users Service package.

Manages user records (name, email, age) over HTTP. It provides:

- app.main: API surface for single and bulk creation, reads, updates,
  deletes and health.
- app.users: Record models, field validation and the bulk mutation
  coordinator.
- app.persistence: Repository contract with in-memory and PostgreSQL
  backends.
- app.cache: Read-through response cache over Redis or an in-process
  store, with pattern-based invalidation on writes.

Guidelines:
- Email uniqueness is enforced by the repository; the coordinator's
  pre-flight checks only avoid wasted writes.
- A cache outage must never fail a request; the cache degrades to a miss.
"""
