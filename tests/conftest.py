"""Pytest configuration and fixtures."""

from datetime import UTC, datetime

import fakeredis
import pytest
from fastapi.testclient import TestClient

from receipt_tracker.database import build_session_factory, init_db
from receipt_tracker.main import app
from receipt_tracker.schemas.receipt import ReceiptCreate, ReceiptItem
from receipt_tracker.services.auth import create_access_token
from receipt_tracker.services.local_cache import LocalCacheStore
from receipt_tracker.services.receipt_service import ReceiptService
from receipt_tracker.services.remote_store import RemoteReceiptStore

TEST_USER_ID = "user-123"
OTHER_USER_ID = "user-456"


class AuthHeaders(dict):
    """Dict subclass that also stores user_id."""

    def __init__(self, *args, user_id: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.user_id = user_id


@pytest.fixture
def session_factory(tmp_path):
    """Session factory over a fresh SQLite database file."""
    factory = build_session_factory(f"sqlite:///{tmp_path / 'receipts.db'}")
    init_db(bind=factory.kw["bind"])
    yield factory
    factory.kw["bind"].dispose()


@pytest.fixture
def redis_client():
    """In-memory Redis standing in for the local cache server."""
    client = fakeredis.FakeRedis(decode_responses=True)
    yield client
    client.flushall()


@pytest.fixture
def cache(redis_client):
    return LocalCacheStore(redis_client)


@pytest.fixture
def remote(session_factory):
    return RemoteReceiptStore(session_factory)


@pytest.fixture
def service(remote, cache):
    return ReceiptService(remote, cache)


@pytest.fixture
def make_receipt():
    """Build ReceiptCreate payloads with sensible defaults."""

    def _make(**overrides) -> ReceiptCreate:
        data = {
            "user_id": TEST_USER_ID,
            "store_name": "Walmart",
            "date": datetime(2024, 3, 2, 12, 0, tzinfo=UTC),
            "total_amount": 54.5,
            "subtotal": 50.0,
            "tax_amount": 4.5,
            "discount_amount": 0.0,
            "items": [ReceiptItem(name="Milk", price=3.5, quantity=2)],
        }
        data.update(overrides)
        return ReceiptCreate(**data)

    return _make


@pytest.fixture
def client(service):
    """Create a test client wired to the test service."""
    app.state.receipt_service = service
    with TestClient(app) as test_client:
        yield test_client
    app.state.receipt_service = None


@pytest.fixture
def auth_headers():
    """Auth headers carrying a token for the test user."""
    token = create_access_token(TEST_USER_ID)
    return AuthHeaders({"Authorization": f"Bearer {token}"}, user_id=TEST_USER_ID)


@pytest.fixture
def other_auth_headers():
    token = create_access_token(OTHER_USER_ID)
    return AuthHeaders({"Authorization": f"Bearer {token}"}, user_id=OTHER_USER_ID)
