"""Identity assignment and write-back staging."""

import secrets
import time
from collections.abc import Callable

import structlog

from ...constants import DEFAULT_IDENTITY_PREFIX
from ...models.records import Record
from ...models.requests import ValueRange
from ..store.base import BaseTabularStore

logger = structlog.get_logger()


class IdentityAssigner:
    """Mints identities for records lacking one and stages their write-back.

    Identities combine a strictly increasing millisecond timestamp with random
    entropy. Staged write-backs are only durable after ``flush``; the planner
    flushes a collection before emitting any plan item for it, so a retried run
    reads the persisted identity instead of minting a second one.
    """

    def __init__(
        self,
        store: BaseTabularStore,
        identity_column: int,
        prefix: str = DEFAULT_IDENTITY_PREFIX,
        clock: Callable[[], float] = time.time,
        entropy: Callable[[], str] = lambda: secrets.token_hex(4),
    ):
        self.store = store
        self.identity_column = identity_column
        self.prefix = prefix
        self._clock = clock
        self._entropy = entropy
        self._last_millis = 0
        self._pending: dict[tuple[str, int], str] = {}
        self.assigned_count = 0
        self.logger = logger.bind(component="identity_assigner")

    @property
    def pending(self) -> dict[tuple[str, int], str]:
        """Staged (collection, position) -> identity write-backs."""
        return dict(self._pending)

    def mint(self) -> str:
        millis = max(int(self._clock() * 1000), self._last_millis + 1)
        self._last_millis = millis
        return f"{self.prefix}{millis:x}-{self._entropy()}"

    def ensure(self, record: Record) -> Record:
        """Return ``record`` with an identity, staging a write-back if one was minted."""
        if record.identity:
            return record

        key = (record.collection, record.position)
        identity = self._pending.get(key)
        if identity is None:
            identity = self.mint()
            self._pending[key] = identity
            self.assigned_count += 1
            self.logger.debug(
                "Identity minted",
                collection=record.collection,
                position=record.position,
                identity=identity,
            )
        return record.with_identity(identity, self.identity_column)

    async def flush(self, collection: str | None = None) -> int:
        """Write staged identities as one batched value write.

        Args:
            collection: Only flush this collection; None flushes everything

        Returns:
            Number of identities written
        """
        keys = [key for key in self._pending if collection is None or key[0] == collection]
        if not keys:
            return 0

        data = [
            ValueRange(
                collection=name,
                start_row=position,
                start_col=self.identity_column,
                values=[[self._pending[(name, position)]]],
            )
            for name, position in sorted(keys)
        ]
        await self.store.batch_write_values(data)
        for key in keys:
            del self._pending[key]

        self.logger.info("Identities persisted", collection=collection, count=len(keys))
        return len(keys)

    def discard(self) -> int:
        """Drop staged write-backs without writing them (dry runs)."""
        count = len(self._pending)
        self._pending.clear()
        return count
