"""Remote receipt store backed by the hosted relational database.

Sessions are synchronous. Each public coroutine runs its unit of work in a
worker thread, so the event loop keeps serving other requests meanwhile.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime

from pydantic import ValidationError
from sqlalchemy.orm import Session, sessionmaker

from receipt_tracker.exceptions import ReceiptNotFoundError, RemoteUnavailableError
from receipt_tracker.models.receipt import ReceiptRecord
from receipt_tracker.schemas.receipt import Receipt, ReceiptCreate, ReceiptItem, ReceiptUpdate

logger = logging.getLogger(__name__)

# Stand-in for timestamp columns left empty by older writers
MISSING_TIMESTAMP = datetime(1970, 1, 1, tzinfo=UTC)


def _parse_timestamp(
    value: str | datetime | None, fallback: datetime = MISSING_TIMESTAMP
) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif value:
        parsed = datetime.fromisoformat(value)
    else:
        return fallback
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _to_text(value: datetime) -> str:
    return value.astimezone(UTC).isoformat()


def _map_items(raw_items) -> list[ReceiptItem]:
    if not isinstance(raw_items, list):
        return []
    items = []
    for entry in raw_items:
        try:
            items.append(ReceiptItem.model_validate(entry))
        except ValidationError as e:
            logger.warning(f"Skipping malformed stored item {entry!r}: {e}")
    return items


def map_to_receipt(row: ReceiptRecord) -> Receipt:
    """Convert a stored row into a canonical receipt.

    A missing ``updated_at`` reads as ``MISSING_TIMESTAMP`` and a missing
    ``created_at`` as the update time, so repeated reads agree.
    """
    if not row.created_at or not row.updated_at:
        logger.warning(f"Receipt {row.id} is missing timestamps")
    updated_at = _parse_timestamp(row.updated_at)
    return Receipt(
        id=row.id,
        user_id=row.user_id,
        store_name=row.store_name or "Unknown Store",
        date=_parse_timestamp(row.date),
        total_amount=row.total_amount or 0.0,
        subtotal=row.subtotal or 0.0,
        tax_amount=row.tax_amount or 0.0,
        discount_amount=row.discount_amount or 0.0,
        items=_map_items(row.items),
        image_url=row.image_url,
        created_at=_parse_timestamp(row.created_at, fallback=updated_at),
        updated_at=updated_at,
    )


def _dump_items(items: list[ReceiptItem]) -> list[dict]:
    return [item.model_dump(mode="json") for item in items]


class RemoteReceiptStore:
    """CRUD on the ``receipts`` table, scoped by ``user_id`` on every call."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self.session_factory = session_factory

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        """Commit on success. Anything but a not-found error is reported as unavailability."""
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except ReceiptNotFoundError:
            session.rollback()
            raise
        except Exception as e:
            session.rollback()
            logger.warning(f"Remote {operation} failed: {type(e).__name__}: {e}")
            raise RemoteUnavailableError(f"Remote {operation} failed: {e}") from e
        finally:
            session.close()

    async def list(self, user_id: str) -> list[Receipt]:
        """All of the user's receipts, newest first."""
        return await asyncio.to_thread(self._list, user_id)

    async def get_by_id(self, receipt_id: str, user_id: str) -> Receipt | None:
        """One receipt, or None when the user has no such receipt."""
        return await asyncio.to_thread(self._get_by_id, receipt_id, user_id)

    async def insert(self, receipt: ReceiptCreate) -> Receipt:
        """Insert a new receipt, keeping a client-minted id when present."""
        return await asyncio.to_thread(self._insert, receipt)

    async def update(self, patch: ReceiptUpdate, receipt_id: str, user_id: str) -> Receipt:
        """Merge the set fields of ``patch`` onto the stored receipt.

        Raises:
            ReceiptNotFoundError: the user has no receipt with this id.
        """
        return await asyncio.to_thread(self._update, patch, receipt_id, user_id)

    async def upsert(self, receipt: Receipt) -> Receipt | None:
        """Write a locally held receipt, inserting or overwriting by id.

        ``created_at`` is preserved and ``updated_at`` refreshed. A row with
        the same id owned by another user is left untouched and None returned.
        """
        return await asyncio.to_thread(self._upsert, receipt)

    async def delete(self, receipt_id: str, user_id: str) -> None:
        """Delete the user's receipt; a missing or foreign id is a no-op."""
        await asyncio.to_thread(self._delete, receipt_id, user_id)

    # --- Units of work, run in a worker thread ---

    def _list(self, user_id: str) -> list[Receipt]:
        with self._session("list") as session:
            rows = (
                session.query(ReceiptRecord)
                .filter(ReceiptRecord.user_id == user_id)
                .order_by(ReceiptRecord.date.desc())
                .all()
            )
            return [map_to_receipt(row) for row in rows]

    def _get_by_id(self, receipt_id: str, user_id: str) -> Receipt | None:
        with self._session("get") as session:
            row = self._owned_row(session, receipt_id, user_id)
            return map_to_receipt(row) if row else None

    def _insert(self, receipt: ReceiptCreate) -> Receipt:
        now = _to_text(datetime.now(UTC))
        with self._session("insert") as session:
            row = ReceiptRecord(
                id=receipt.id or str(uuid.uuid4()),
                user_id=receipt.user_id,
                store_name=receipt.store_name,
                date=_to_text(receipt.date),
                total_amount=receipt.total_amount,
                subtotal=receipt.subtotal,
                tax_amount=receipt.tax_amount,
                discount_amount=receipt.discount_amount,
                items=_dump_items(receipt.items),
                image_url=receipt.image_url,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.flush()
            logger.info(f"Inserted receipt {row.id} for user {receipt.user_id}")
            return map_to_receipt(row)

    def _update(self, patch: ReceiptUpdate, receipt_id: str, user_id: str) -> Receipt:
        with self._session("update") as session:
            row = self._owned_row(session, receipt_id, user_id)
            if row is None:
                raise ReceiptNotFoundError(receipt_id)

            for name, value in patch.changes().items():
                if value is None and name != "image_url":
                    continue
                if name == "date":
                    value = _to_text(value)
                elif name == "items":
                    value = _dump_items(value)
                setattr(row, name, value)
            row.updated_at = _to_text(datetime.now(UTC))
            session.flush()
            return map_to_receipt(row)

    def _upsert(self, receipt: Receipt) -> Receipt | None:
        with self._session("upsert") as session:
            row = session.get(ReceiptRecord, receipt.id)
            if row is not None and row.user_id != receipt.user_id:
                logger.warning(f"Refusing to overwrite receipt {receipt.id} owned by another user")
                return None
            if row is None:
                row = ReceiptRecord(
                    id=receipt.id,
                    user_id=receipt.user_id,
                    created_at=_to_text(receipt.created_at),
                )
                session.add(row)

            row.store_name = receipt.store_name
            row.date = _to_text(receipt.date)
            row.total_amount = receipt.total_amount
            row.subtotal = receipt.subtotal
            row.tax_amount = receipt.tax_amount
            row.discount_amount = receipt.discount_amount
            row.items = _dump_items(receipt.items)
            row.image_url = receipt.image_url
            row.updated_at = _to_text(datetime.now(UTC))
            session.flush()
            return map_to_receipt(row)

    def _delete(self, receipt_id: str, user_id: str) -> None:
        with self._session("delete") as session:
            deleted = (
                session.query(ReceiptRecord)
                .filter(ReceiptRecord.id == receipt_id, ReceiptRecord.user_id == user_id)
                .delete(synchronize_session=False)
            )
            if deleted:
                logger.info(f"Deleted receipt {receipt_id} for user {user_id}")

    @staticmethod
    def _owned_row(session: Session, receipt_id: str, user_id: str) -> ReceiptRecord | None:
        return (
            session.query(ReceiptRecord)
            .filter(ReceiptRecord.id == receipt_id, ReceiptRecord.user_id == user_id)
            .first()
        )
