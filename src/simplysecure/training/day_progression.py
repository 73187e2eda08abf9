"""Day progression: unlock the next challenge day once the active one is done."""

from __future__ import annotations

import logging

from simplysecure.db.models import User
from simplysecure.training.catalog import DEFAULT_CATALOG, Catalog

logger = logging.getLogger(__name__)


def is_day_complete(day: int, done_task_ids: set[str], catalog: Catalog = DEFAULT_CATALOG) -> bool:
    """True when every task of ``day`` is completed or verified."""
    return set(catalog.day(day).task_ids) <= done_task_ids


def next_active_day(current_day: int, done_task_ids: set[str], catalog: Catalog = DEFAULT_CATALOG) -> int:
    """Advance past every finished day, stopping at the catalog's last day.

    Cascades: if a later day is already finished too, it is skipped as well.
    """
    day = current_day
    while day < catalog.last_day and is_day_complete(day, done_task_ids, catalog):
        day += 1
    return day


def advance_user(user: User, done_task_ids: set[str], catalog: Catalog = DEFAULT_CATALOG) -> bool:
    """Move ``user.current_day`` forward if earned. Returns True if it changed.

    The caller's transaction persists the change.
    """
    new_day = next_active_day(user.current_day, done_task_ids, catalog)
    if new_day == user.current_day:
        return False
    logger.info("User %s advanced from day %s to day %s", user.id, user.current_day, new_day)
    user.current_day = new_day
    return True
