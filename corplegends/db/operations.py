"""
Key-value blob CRUD operations.

Values are opaque strings; callers own serialization. Nothing here commits:
the caller decides the transaction boundary.
"""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from corplegends.models.db import StateBlobDB

# Namespaces
USER_STATE = "user_state"
CARD_OVERRIDES = "card_overrides"
GLOBAL_ASSETS = "global_assets"
ROSTER_CACHE = "roster_cache"
TRADE_OFFERS = "trade_offers"


async def get_blob_record(session: AsyncSession, namespace: str, key: str) -> StateBlobDB | None:
    """Get the stored record for a key, or None."""
    result = await session.execute(
        select(StateBlobDB).where(
            StateBlobDB.namespace == namespace,
            StateBlobDB.key == key,
        )
    )
    return result.scalar_one_or_none()


async def get_blob(session: AsyncSession, namespace: str, key: str) -> str | None:
    """
    Get the value stored under a key.

    Returns None if nothing has been stored.
    """
    record = await get_blob_record(session, namespace, key)
    return record.value if record else None


async def set_blob(session: AsyncSession, namespace: str, key: str, value: str) -> StateBlobDB:
    """
    Insert or replace the value stored under a key.

    The write becomes durable when the caller commits.
    """
    existing = await get_blob_record(session, namespace, key)

    if existing:
        existing.value = value
        await session.flush()
        return existing

    record = StateBlobDB(namespace=namespace, key=key, value=value)
    session.add(record)
    await session.flush()
    return record


async def list_blobs(session: AsyncSession, namespace: str) -> dict[str, str]:
    """Get every key/value pair in a namespace."""
    result = await session.execute(
        select(StateBlobDB).where(StateBlobDB.namespace == namespace).order_by(StateBlobDB.key)
    )
    return {record.key: record.value for record in result.scalars().all()}


async def delete_blob(session: AsyncSession, namespace: str, key: str) -> bool:
    """
    Delete a stored value.

    Returns True if deleted, False if not found.
    """
    result = await session.execute(
        delete(StateBlobDB).where(
            StateBlobDB.namespace == namespace,
            StateBlobDB.key == key,
        )
    )
    # rowcount is available on DELETE results; type stubs incomplete for async
    return int(result.rowcount) > 0  # type: ignore[attr-defined]
