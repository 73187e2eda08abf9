"""Shared FastAPI dependencies."""

from simplysecure.config import get_settings
from simplysecure.database import get_session as _get_session
from simplysecure.redis_client import get_redis_optional
from simplysecure.training.catalog import DEFAULT_CATALOG, Catalog

get_db = _get_session


async def get_redis_dep() -> object | None:
    """Redis client for event publishing, or None when Redis is not configured."""
    return get_redis_optional()


def get_catalog() -> Catalog:
    """Task catalog in use. Overridable in tests."""
    return DEFAULT_CATALOG


def prerequisites_enforced() -> bool:
    return get_settings().enforce_prerequisites
