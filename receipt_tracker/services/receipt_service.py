"""Receipt service that reconciles the remote store with the local cache.

Every operation first consults the connectivity flag. While online the remote
store is authoritative and successful writes are mirrored into the cache.
While offline, or when the remote store fails, reads come from the cache and
writes are kept locally and flagged for the next sync sweep.
"""

import asyncio
import logging
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from receipt_tracker.exceptions import ReceiptNotFoundError, RemoteUnavailableError
from receipt_tracker.models.enums import Connectivity
from receipt_tracker.schemas.receipt import Receipt, ReceiptCreate, ReceiptUpdate
from receipt_tracker.services.local_cache import LocalCacheStore, PendingDeletion
from receipt_tracker.services.remote_store import RemoteReceiptStore

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    """Outcome of one sync sweep, as receipt ids."""

    deleted: list[str] = field(default_factory=list)
    delete_failed: list[str] = field(default_factory=list)
    uploaded: list[str] = field(default_factory=list)
    upload_failed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def _newest_first(receipts: Iterable[Receipt]) -> list[Receipt]:
    return sorted(receipts, key=lambda r: r.date, reverse=True)


def _new_id() -> str:
    return str(uuid.uuid4())


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _describe(error: Exception) -> str:
    if isinstance(error, RemoteUnavailableError | ReceiptNotFoundError):
        return str(error)
    return f"unexpected {type(error).__name__}: {error}"


def _log_sweep_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        logger.warning("Sync sweep was cancelled")
    elif task.exception() is not None:
        logger.error("Sync sweep failed", exc_info=task.exception())


class ReceiptService:
    """Single entry point for receipt CRUD regardless of connectivity."""

    def __init__(
        self,
        remote: RemoteReceiptStore,
        cache: LocalCacheStore,
        *,
        online: bool = True,
        id_factory: Callable[[], str] = _new_id,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.remote = remote
        self.cache = cache
        self._online = online
        self._id_factory = id_factory
        self._clock = clock
        self._sync_task: asyncio.Task | None = None

    @property
    def is_online(self) -> bool:
        return self._online

    @property
    def connectivity(self) -> Connectivity:
        return Connectivity.ONLINE if self._online else Connectivity.OFFLINE

    @property
    def sync_in_progress(self) -> bool:
        return self._sync_task is not None and not self._sync_task.done()

    def set_online(self, online: bool) -> asyncio.Task | None:
        """Update the connectivity flag.

        Only the offline to online edge schedules a sync sweep; the sweep task
        is returned so callers can await it. Must be called from a running
        event loop when coming back online.
        """
        if online == self._online:
            return None

        self._online = online
        if not online:
            logger.info("Connectivity lost, receipts will be kept locally")
            return None

        logger.info("Connectivity restored, scheduling sync sweep")
        return self._start_sweep()

    # --- Reads ---

    async def list_receipts(self, user_id: str) -> list[Receipt]:
        """The user's receipts, newest first."""
        if self._online:
            try:
                remote_receipts = await self.remote.list(user_id)
            except Exception as e:
                logger.warning(f"Listing receipts for user {user_id} from local cache: {_describe(e)}")
            else:
                return self._reconcile_listing(user_id, remote_receipts)

        return _newest_first(self.cache.list_receipts(user_id))

    def _reconcile_listing(self, user_id: str, remote_receipts: list[Receipt]) -> list[Receipt]:
        deleted_ids = {p.id for p in self.cache.pending_deletions() if p.user_id == user_id}
        pending_ids = set(self.cache.pending_uploads(user_id))

        merged = {r.id: r for r in remote_receipts if r.id not in deleted_ids}
        local_read = self.cache.read(user_id)
        if pending_ids:
            for local in local_read.receipts:
                if local.id in pending_ids:
                    merged[local.id] = local

        receipts = _newest_first(merged.values())
        # An unreadable partition may still hold unsynced receipts
        if local_read.ok:
            self.cache.save_all(user_id, receipts)
        return receipts

    async def get_receipt(self, receipt_id: str, user_id: str) -> Receipt:
        """Look up one receipt.

        Raises:
            ReceiptNotFoundError: neither store has the receipt.
        """
        if self._online and receipt_id not in self.cache.pending_uploads(user_id):
            try:
                receipt = await self.remote.get_by_id(receipt_id, user_id)
            except Exception as e:
                logger.warning(f"Reading receipt {receipt_id} from local cache: {_describe(e)}")
            else:
                if receipt is not None:
                    return receipt

        cached = self.cache.get(receipt_id, user_id)
        if cached is None:
            raise ReceiptNotFoundError(receipt_id)
        return cached

    # --- Writes ---

    async def add_receipt(self, receipt_in: ReceiptCreate) -> Receipt:
        """Store a new receipt. The id is minted here when the caller has none."""
        receipt_in = receipt_in.model_copy(update={"id": receipt_in.id or self._id_factory()})

        if self._online:
            try:
                stored = await self.remote.insert(receipt_in)
            except Exception as e:
                logger.warning(f"Keeping receipt {receipt_in.id} locally: {_describe(e)}")
            else:
                self.cache.upsert(stored)
                return stored

        now = self._clock()
        receipt = Receipt(
            **receipt_in.model_dump(exclude={"id"}),
            id=receipt_in.id,
            created_at=now,
            updated_at=now,
        )
        if not self.cache.upsert(receipt):
            logger.warning(f"Receipt {receipt.id} could not be kept in the local cache")
        self.cache.mark_pending_upload(receipt.id, receipt.user_id)
        return receipt

    async def update_receipt(
        self, receipt_id: str, user_id: str, update: ReceiptUpdate
    ) -> Receipt:
        """Apply a partial update.

        A receipt with unsynced local changes is always updated locally so
        those changes are not overwritten by the remote copy.

        Raises:
            ReceiptNotFoundError: the remote update failed and there is no
                local copy to update.
        """
        if self._online and receipt_id not in self.cache.pending_uploads(user_id):
            try:
                stored = await self.remote.update(update, receipt_id, user_id)
            except Exception as e:
                logger.warning(f"Updating receipt {receipt_id} locally: {_describe(e)}")
            else:
                self.cache.upsert(stored)
                return stored

        cached = self.cache.get(receipt_id, user_id)
        if cached is None:
            raise ReceiptNotFoundError(receipt_id)

        updated = cached.merged(update, updated_at=self._clock())
        if not self.cache.upsert(updated):
            logger.warning(f"Update of receipt {receipt_id} could not be kept in the local cache")
        self.cache.mark_pending_upload(receipt_id, user_id)
        return updated

    async def delete_receipt(self, receipt_id: str, user_id: str) -> None:
        """Delete a receipt; offline deletions are replayed by the next sweep."""
        if self._online:
            try:
                await self.remote.delete(receipt_id, user_id)
            except Exception as e:
                logger.warning(f"Queuing deletion of receipt {receipt_id}: {_describe(e)}")
            else:
                self.cache.delete(receipt_id, user_id)
                self.cache.clear_pending_upload(receipt_id, user_id)
                return

        self.cache.delete(receipt_id, user_id)
        self.cache.clear_pending_upload(receipt_id, user_id)
        self.cache.queue_pending_deletion(receipt_id, user_id)

    # --- Sync sweep ---

    async def sync(self) -> SyncReport:
        """Replay local changes against the remote store.

        Does nothing while offline. A sweep already in flight is awaited
        instead of starting a second one.
        """
        if not self._online:
            logger.info("Skipping sync sweep while offline")
            return SyncReport()
        return await self._start_sweep()

    def _start_sweep(self) -> asyncio.Task:
        if self.sync_in_progress:
            return self._sync_task
        self._sync_task = asyncio.get_running_loop().create_task(self._sweep())
        self._sync_task.add_done_callback(_log_sweep_failure)
        return self._sync_task

    async def _sweep(self) -> SyncReport:
        report = SyncReport()

        drained = self.cache.drain_pending_deletions()
        tombstones = {(p.id, p.user_id) for p in drained}
        await self._replay_deletions(drained, report)

        for user_id in self.cache.users_with_pending_uploads():
            await self._upload_pending(user_id, tombstones, report)

        logger.info(
            f"Sync sweep finished: {len(report.deleted)} deleted, "
            f"{len(report.uploaded)} uploaded, "
            f"{len(report.delete_failed) + len(report.upload_failed)} failed"
        )
        return report

    async def _replay_deletions(self, drained: list[PendingDeletion], report: SyncReport) -> None:
        failed = []
        for pending in drained:
            try:
                await self.remote.delete(pending.id, pending.user_id)
            except Exception as e:
                logger.warning(f"Deletion of receipt {pending.id} failed, requeued: {_describe(e)}")
                failed.append(pending)
                report.delete_failed.append(pending.id)
            else:
                report.deleted.append(pending.id)

        for pending in failed:
            self.cache.queue_pending_deletion(pending.id, pending.user_id)

    async def _upload_pending(
        self, user_id: str, tombstones: set[tuple[str, str]], report: SyncReport
    ) -> None:
        local_read = self.cache.read(user_id)
        if not local_read.ok:
            pending = self.cache.pending_uploads(user_id)
            logger.warning(f"Local cache of user {user_id} unreadable, uploads deferred")
            report.upload_failed.extend(pending)
            return
        cached = {r.id: r for r in local_read.receipts}

        for receipt_id in self.cache.pending_uploads(user_id):
            receipt = cached.get(receipt_id)
            if (receipt_id, user_id) in tombstones or receipt is None:
                self.cache.clear_pending_upload(receipt_id, user_id)
                report.skipped.append(receipt_id)
                continue

            try:
                stored = await self.remote.upsert(receipt)
            except Exception as e:
                logger.warning(f"Upload of receipt {receipt_id} failed, will retry: {_describe(e)}")
                report.upload_failed.append(receipt_id)
                continue

            self.cache.clear_pending_upload(receipt_id, user_id)
            if stored is None:
                report.skipped.append(receipt_id)
            else:
                report.uploaded.append(receipt_id)
