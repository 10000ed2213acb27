"""Server-side login sessions kept in the item table.

The browser only holds the opaque token (inside Starlette's signed session
cookie); the record ``SESSION#<token>`` / ``METADATA`` maps it to an
employee id and an expiry instant.
"""
import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from errors import StoreError
from store import PK, SK, TYPE, ItemStore

logger = logging.getLogger(__name__)

SESSION_PREFIX = "SESSION#"
SESSION_TYPE = "session"
METADATA = "METADATA"


def _pk(token: str) -> str:
    return f"{SESSION_PREFIX}{token}"


async def create_session(store: ItemStore, employee_id: str, now: datetime, ttl: timedelta) -> str:
    token = secrets.token_urlsafe(32)
    await store.put(
        {
            PK: _pk(token),
            SK: METADATA,
            TYPE: SESSION_TYPE,
            "employee_id": employee_id,
            "expires_at": int((now + ttl).timestamp()),
            "created_at": now.isoformat(),
        }
    )
    return token


async def load_session(store: ItemStore, token: str, now: datetime) -> Optional[str]:
    """Return the employee id behind ``token``, or None if unknown or expired."""
    item = await store.get(_pk(token), METADATA)
    if item is None:
        return None
    expires_at = item.get("expires_at")
    if not isinstance(expires_at, (int, float)) or expires_at < now.timestamp():
        await _discard(store, token)
        return None
    employee_id = item.get("employee_id")
    return employee_id if isinstance(employee_id, str) else None


async def destroy_session(store: ItemStore, token: str) -> None:
    await _discard(store, token)


async def delete_expired(store: ItemStore, now: datetime) -> int:
    """Remove expired session records. Best effort: failures are only logged."""
    removed = 0
    try:
        for item in await store.scan(type=SESSION_TYPE):
            expires_at = item.get("expires_at")
            if not isinstance(expires_at, (int, float)) or expires_at < now.timestamp():
                await store.delete(item[PK], item[SK])
                removed += 1
    except StoreError as e:
        logger.warning("Expired session sweep stopped early: %s", e)
    if removed:
        logger.info("Removed %d expired sessions", removed)
    return removed


async def _discard(store: ItemStore, token: str) -> None:
    try:
        await store.delete(_pk(token), METADATA)
    except StoreError as e:
        logger.warning("Could not delete session record: %s", e)
