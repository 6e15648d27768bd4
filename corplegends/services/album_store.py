"""
Album Store — durable, serialized access to collection state.

The store holds no business rules. It loads and saves opaque JSON blobs and
is the single writer of each user's CollectionState.

INVARIANTS:
- `save_state` is all-or-nothing: one row, one transaction
- A failed save leaves the last committed value as the durable truth
- Mutations for the same user never interleave (per-user asyncio.Lock
  held across load -> mutate -> save)
- Subscribers are notified only after a successful commit
"""

import asyncio
import json
import logging
import weakref
from collections.abc import Callable
from functools import lru_cache
from typing import Any, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from corplegends.config import settings
from corplegends.db.database import async_session_factory
from corplegends.db.operations import USER_STATE, delete_blob, get_blob, list_blobs, set_blob
from corplegends.models.collection_state import CollectionState
from corplegends.models.failure import StorageFailureError

logger = logging.getLogger(__name__)

R = TypeVar("R")

StateListener = Callable[[str, CollectionState], None]
Mutation = Callable[[CollectionState], tuple[CollectionState, R]]


class AlbumStore:
    """
    Namespaced key-value persistence plus the per-user mutation lock.

    Args:
        session_factory: Async SQLAlchemy session factory
        max_blob_bytes: Quota for a single persisted value
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        max_blob_bytes: int = settings.max_blob_bytes,
    ) -> None:
        self._session_factory = session_factory
        self._max_blob_bytes = max_blob_bytes
        # Entries vanish once no transaction holds or awaits the lock
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._listeners: list[StateListener] = []

    # -------------------------------------------------------------------------
    # Raw blobs
    # -------------------------------------------------------------------------

    async def get(self, namespace: str, key: str) -> str | None:
        """
        Read a stored value.

        Raises:
            StorageFailureError: If the read fails
        """
        try:
            async with self._session_factory() as session:
                return await get_blob(session, namespace, key)
        except SQLAlchemyError as e:
            logger.error(
                "STATE_LOAD_FAILED",
                extra={"namespace": namespace, "key": key, "error": type(e).__name__},
            )
            raise StorageFailureError(
                f"Read of {namespace}/{key} failed: {type(e).__name__}"
            ) from e

    async def set(self, namespace: str, key: str, value: str) -> None:
        """
        Write a value in its own transaction.

        Raises:
            StorageFailureError: If the value exceeds the quota or the write fails
        """
        size = len(value.encode("utf-8"))
        if size > self._max_blob_bytes:
            logger.warning(
                "STATE_QUOTA_EXCEEDED",
                extra={"namespace": namespace, "key": key, "size": size},
            )
            raise StorageFailureError(
                f"{namespace}/{key} is {size} bytes, quota is {self._max_blob_bytes}",
                suggestion="Reduce the payload size (for example, compress images) and retry.",
            )

        async with self._session_factory() as session:
            try:
                await set_blob(session, namespace, key, value)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(
                    "STATE_SAVE_FAILED",
                    extra={"namespace": namespace, "key": key, "error": type(e).__name__},
                )
                raise StorageFailureError(
                    f"Write of {namespace}/{key} failed: {type(e).__name__}"
                ) from e

    async def delete(self, namespace: str, key: str) -> bool:
        """
        Delete a value. Returns False if nothing was stored.

        Raises:
            StorageFailureError: If the delete fails
        """
        async with self._session_factory() as session:
            try:
                deleted = await delete_blob(session, namespace, key)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(
                    "STATE_SAVE_FAILED",
                    extra={"namespace": namespace, "key": key, "error": type(e).__name__},
                )
                raise StorageFailureError(
                    f"Delete of {namespace}/{key} failed: {type(e).__name__}"
                ) from e
        return deleted

    async def get_json(self, namespace: str, key: str) -> Any:
        """Read and decode a JSON value. Returns None if absent."""
        raw = await self.get(namespace, key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageFailureError(f"{namespace}/{key} holds corrupt JSON") from e

    async def list_json(self, namespace: str) -> dict[str, Any]:
        """Read and decode every value in a namespace, keyed by key."""
        try:
            async with self._session_factory() as session:
                raw = await list_blobs(session, namespace)
        except SQLAlchemyError as e:
            logger.error(
                "STATE_LOAD_FAILED",
                extra={"namespace": namespace, "error": type(e).__name__},
            )
            raise StorageFailureError(f"Read of {namespace} failed: {type(e).__name__}") from e
        try:
            return {key: json.loads(value) for key, value in raw.items()}
        except json.JSONDecodeError as e:
            raise StorageFailureError(f"{namespace} holds corrupt JSON") from e

    async def set_json(self, namespace: str, key: str, value: Any) -> None:
        """Encode and write a JSON value."""
        await self.set(namespace, key, json.dumps(value, ensure_ascii=False))

    # -------------------------------------------------------------------------
    # Collection state
    # -------------------------------------------------------------------------

    async def load_state(self, user_id: str) -> CollectionState:
        """
        Load a user's state.

        Returns a default empty state if none has been saved.
        """
        data = await self.get_json(USER_STATE, user_id)
        if data is None:
            return CollectionState()
        return CollectionState.from_dict(data)

    async def save_state(self, user_id: str, state: CollectionState) -> None:
        """Persist a user's whole state."""
        state.check_invariants()
        await self.set_json(USER_STATE, user_id, state.to_dict())

    def lock_for(self, user_id: str) -> asyncio.Lock:
        """Get the mutation lock for a user."""
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    async def transact(self, user_id: str, mutation: Mutation[R]) -> R:
        """
        Apply a pure mutation as one serialized transaction.

        Loads the current state, applies `mutation`, persists the new state
        and notifies subscribers. If `mutation` raises, nothing is saved.
        If saving fails, the previously persisted state stays durable.

        Args:
            user_id: Owner of the state
            mutation: Pure function state -> (new_state, result)

        Returns:
            The mutation's result value
        """
        async with self.lock_for(user_id):
            state = await self.load_state(user_id)
            new_state, result = mutation(state)
            if new_state != state:
                await self.save_state(user_id, new_state)
                self._notify(user_id, new_state)
            return result

    # -------------------------------------------------------------------------
    # Change notification
    # -------------------------------------------------------------------------

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """
        Register a callback invoked after every committed state change.

        Returns:
            A function that removes the subscription
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, user_id: str, state: CollectionState) -> None:
        for listener in list(self._listeners):
            try:
                listener(user_id, state)
            except Exception:
                # State is already durable; a failing reader must not undo it
                logger.exception("STATE_LISTENER_FAILED", extra={"user_id": user_id})


@lru_cache(maxsize=1)
def get_album_store() -> AlbumStore:
    """Get the application-wide store."""
    return AlbumStore(async_session_factory)
