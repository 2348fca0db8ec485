"""Per-user offline cache of receipts kept in Redis.

Layout:
    {key_prefix}:{user_id}               JSON array of the user's receipts
    {pending_uploads_prefix}:{user_id}   JSON array of ids written locally, not yet uploaded
    {pending_deletions_key}              JSON array of {"id", "user_id"} awaiting remote delete

The cache is best effort. Read failures (Redis errors, corrupt JSON) degrade
to an empty collection, entries that no longer validate are skipped, and
write failures return False; nothing raises to the caller.
"""

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

import redis
from pydantic import ValidationError

from receipt_tracker.config import Settings
from receipt_tracker.exceptions import StorageError
from receipt_tracker.schemas.receipt import Receipt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingDeletion:
    """A receipt deleted locally that still has to be deleted remotely."""

    id: str
    user_id: str


@dataclass
class CacheRead:
    """Result of reading a user's partition."""

    receipts: list[Receipt] = field(default_factory=list)
    error: str | None = None
    dropped: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


class LocalCacheStore:
    """Durable key-value store of receipt collections, partitioned by user."""

    def __init__(
        self,
        client: redis.Redis,
        *,
        key_prefix: str = "local_receipts",
        pending_deletions_key: str = "pending_deletions",
        pending_uploads_prefix: str = "pending_uploads",
    ) -> None:
        self.client = client
        self.key_prefix = key_prefix
        self.pending_deletions_key = pending_deletions_key
        self.pending_uploads_prefix = pending_uploads_prefix

    def _receipts_key(self, user_id: str) -> str:
        return f"{self.key_prefix}:{user_id}"

    def _uploads_key(self, user_id: str) -> str:
        return f"{self.pending_uploads_prefix}:{user_id}"

    # --- Raw JSON access ---

    def _load_json(self, key: str) -> list:
        try:
            raw = self.client.get(key)
        except redis.RedisError as e:
            raise StorageError(f"Failed to read {key}: {e}") from e
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            raise StorageError(f"Corrupt JSON under {key}: {e}") from e
        if not isinstance(data, list):
            raise StorageError(f"Expected a JSON array under {key}, got {type(data).__name__}")
        return data

    def _store_json(self, key: str, data: list) -> bool:
        try:
            if data:
                self.client.set(key, json.dumps(data))
            else:
                self.client.delete(key)
        except redis.RedisError as e:
            logger.warning(f"Local cache write to {key} failed: {e}")
            return False
        return True

    # --- Receipts ---

    def read(self, user_id: str) -> CacheRead:
        """Read the user's receipts, reporting degradation instead of raising.

        Entries that no longer validate are dropped one by one. Only a
        partition that cannot be loaded at all marks the read as degraded.
        """
        try:
            entries = self._load_json(self._receipts_key(user_id))
        except StorageError as e:
            logger.warning(f"Local cache read for user {user_id} degraded to empty: {e}")
            return CacheRead(error=str(e))

        receipts = []
        dropped = 0
        for entry in entries:
            try:
                receipt = Receipt.model_validate(entry)
            except ValidationError as e:
                dropped += 1
                logger.warning(f"Dropping invalid cached receipt for user {user_id}: {e}")
                continue
            if receipt.user_id == user_id:
                receipts.append(receipt)
        return CacheRead(receipts=receipts, dropped=dropped)

    def list_receipts(self, user_id: str) -> list[Receipt]:
        """The user's cached receipts (empty when the cache is unreadable)."""
        return self.read(user_id).receipts

    def get(self, receipt_id: str, user_id: str) -> Receipt | None:
        """Look up one cached receipt."""
        return next((r for r in self.list_receipts(user_id) if r.id == receipt_id), None)

    def save_all(self, user_id: str, receipts: Iterable[Receipt]) -> bool:
        """Replace the user's partition with the given receipts."""
        entries = [r.model_dump(mode="json") for r in receipts if r.user_id == user_id]
        return self._store_json(self._receipts_key(user_id), entries)

    def upsert(self, receipt: Receipt) -> bool:
        """Replace the cached receipt with the same id, or append it.

        Refused when the partition cannot be read, so a transient failure
        never overwrites receipts that are still stored.
        """
        current = self.read(receipt.user_id)
        if not current.ok:
            logger.warning(f"Not caching receipt {receipt.id}: partition unreadable")
            return False
        receipts = current.receipts
        for index, existing in enumerate(receipts):
            if existing.id == receipt.id:
                receipts[index] = receipt
                break
        else:
            receipts.append(receipt)
        return self.save_all(receipt.user_id, receipts)

    def delete(self, receipt_id: str, user_id: str) -> bool:
        """Remove a cached receipt. Returns True if it was present."""
        current = self.read(user_id)
        if not current.ok:
            logger.warning(f"Not removing receipt {receipt_id}: partition unreadable")
            return False
        remaining = [r for r in current.receipts if r.id != receipt_id]
        if len(remaining) == len(current.receipts):
            return False
        return self.save_all(user_id, remaining)

    # --- Pending deletions (global queue) ---

    def pending_deletions(self) -> list[PendingDeletion]:
        """Deletions waiting for a remote replay."""
        try:
            entries = self._load_json(self.pending_deletions_key)
        except StorageError as e:
            logger.warning(f"Pending deletion queue unreadable, treating as empty: {e}")
            return []

        pending = []
        for entry in entries:
            if isinstance(entry, dict) and entry.get("id") and entry.get("user_id"):
                pending.append(PendingDeletion(id=str(entry["id"]), user_id=str(entry["user_id"])))
        return pending

    def queue_pending_deletion(self, receipt_id: str, user_id: str) -> bool:
        """Record a deletion for later replay. Queuing twice is a no-op."""
        pending = self.pending_deletions()
        entry = PendingDeletion(id=receipt_id, user_id=user_id)
        if entry in pending:
            return True
        pending.append(entry)
        return self._store_pending_deletions(pending)

    def drain_pending_deletions(self) -> list[PendingDeletion]:
        """Return every queued deletion and clear the queue."""
        pending = self.pending_deletions()
        if pending:
            self.clear_pending_deletions()
        return pending

    def clear_pending_deletions(self) -> bool:
        """Empty the deletion queue."""
        return self._store_json(self.pending_deletions_key, [])

    def _store_pending_deletions(self, pending: list[PendingDeletion]) -> bool:
        entries = [{"id": p.id, "user_id": p.user_id} for p in pending]
        return self._store_json(self.pending_deletions_key, entries)

    # --- Pending uploads (per user) ---

    def pending_uploads(self, user_id: str) -> list[str]:
        """Ids of receipts written locally and not yet uploaded."""
        try:
            entries = self._load_json(self._uploads_key(user_id))
        except StorageError as e:
            logger.warning(f"Pending uploads for user {user_id} unreadable: {e}")
            return []
        return [str(entry) for entry in entries if isinstance(entry, str)]

    def mark_pending_upload(self, receipt_id: str, user_id: str) -> bool:
        """Flag a receipt for upload on the next sync sweep."""
        pending = self.pending_uploads(user_id)
        if receipt_id in pending:
            return True
        pending.append(receipt_id)
        return self._store_json(self._uploads_key(user_id), pending)

    def clear_pending_upload(self, receipt_id: str, user_id: str) -> bool:
        """Drop the upload flag of one receipt."""
        pending = self.pending_uploads(user_id)
        if receipt_id not in pending:
            return True
        return self._store_json(
            self._uploads_key(user_id), [rid for rid in pending if rid != receipt_id]
        )

    def users_with_pending_uploads(self) -> list[str]:
        """Owners that have at least one receipt waiting for upload."""
        prefix = f"{self.pending_uploads_prefix}:"
        try:
            keys = list(self.client.scan_iter(match=f"{prefix}*"))
        except redis.RedisError as e:
            logger.warning(f"Could not scan pending uploads: {e}")
            return []
        user_ids = []
        for key in keys:
            key = key.decode("utf-8") if isinstance(key, bytes) else key
            user_id = key[len(prefix) :]
            if user_id:
                user_ids.append(user_id)
        return sorted(user_ids)


def create_local_cache(settings: Settings) -> LocalCacheStore:
    """Build a cache backed by the configured Redis server."""
    client = redis.from_url(settings.redis_url, decode_responses=True)
    return LocalCacheStore(
        client,
        key_prefix=settings.local_cache_prefix,
        pending_deletions_key=settings.pending_deletions_key,
        pending_uploads_prefix=settings.pending_uploads_prefix,
    )
