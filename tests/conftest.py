import hashlib
import hmac
import os
from unittest.mock import AsyncMock, MagicMock

# Settings are read at import time, so they must be in place first
os.environ.setdefault('RAZORPAY_KEY_ID', 'rzp_test_key')
os.environ.setdefault('RAZORPAY_KEY_SECRET', 'test_secret')
os.environ.setdefault('JWT_SECRET_KEY', 'test-jwt-secret')
os.environ.setdefault('TICKET_PREFIX', 'TGIN')
os.environ.setdefault('TICKET_YEAR_TAG', '25')
os.environ.setdefault('LOG_LEVEL', 'WARNING')

import httpx  # noqa: E402
from mongomock_motor import AsyncMongoMockClient  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from ticketing.database import EVENTS, USERS, get_database  # noqa: E402
from ticketing.main import create_app  # noqa: E402
from ticketing.routes.payments import get_pdf_renderer  # noqa: E402
from ticketing.services import analytics  # noqa: E402
from ticketing.services.gateway import get_gateway  # noqa: E402
from ticketing.services.mailer import get_mailer  # noqa: E402
from ticketing.utils.auth_utils import create_access_token  # noqa: E402

TEST_SECRET = 'test_secret'
FAKE_PDF = b'%PDF-1.4 fake ticket'
EVENT_ID = 'evt-1'


def sign(order_id: str, payment_id: str, secret: str = TEST_SECRET) -> str:
    return hmac.new(secret.encode(), f'{order_id}|{payment_id}'.encode(), hashlib.sha256).hexdigest()


@pytest.fixture
def db():
    return AsyncMongoMockClient()['ticketing_test']


@pytest.fixture
def gateway():
    gw = MagicMock()
    gw.key_id = 'rzp_test_key'
    gw.create_order = AsyncMock(
        side_effect=lambda amount, currency, receipt: {
            'id': 'order_123',
            'amount': amount,
            'currency': currency,
            'receipt': receipt,
        }
    )
    gw.fetch_payment = AsyncMock(return_value={'id': 'pay_123', 'status': 'captured', 'amount': 150000, 'currency': 'INR'})
    return gw


@pytest.fixture
def mailer():
    m = MagicMock()
    m.send_booking_confirmation = AsyncMock(return_value=True)
    return m


@pytest.fixture
def render_pdf():
    return AsyncMock(return_value=FAKE_PDF)


@pytest.fixture(autouse=True)
def clear_analytics_cache():
    analytics.clear_cache()
    yield
    analytics.clear_cache()


@pytest.fixture
def app(db, gateway, mailer, render_pdf):
    application = create_app(with_lifespan=False)
    application.dependency_overrides[get_database] = lambda: db
    application.dependency_overrides[get_gateway] = lambda: gateway
    application.dependency_overrides[get_mailer] = lambda: mailer
    application.dependency_overrides[get_pdf_renderer] = lambda: render_pdf
    return application


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url='http://test') as test_client:
        yield test_client


@pytest.fixture
def seed_event(db):
    async def _seed(**overrides):
        event = {
            'id': EVENT_ID,
            'title': 'Neon Nights',
            'date': '2025-12-20',
            'time': '19:00',
            'venue': 'Arena',
            'is_multi_day': False,
            'passes': [{'id': 'pass-ga', 'name': 'General Admission', 'price': 1500}],
            'event_days': [],
        }
        event.update(overrides)
        await db[EVENTS].insert_one(dict(event))
        return event

    return _seed


@pytest.fixture
def auth_headers(db):
    async def _make(role: str = 'admin', username: str = None):
        username = username or f'{role}_user'
        await db[USERS].insert_one(
            {'id': f'{role}-id', 'username': username, 'email': f'{username}@example.com', 'role': role, 'password': 'x'}
        )
        token = create_access_token({'sub': username})
        return {'Authorization': f'Bearer {token}'}

    return _make


def verify_payload(payment_id: str = 'pay_123', order_id: str = 'order_123', signature: str = None, **event_overrides):
    event_details = {
        'id': EVENT_ID,
        'title': 'Neon Nights',
        'date': '2025-12-20',
        'time': '19:00',
        'venue': 'Arena',
        'passId': 'pass-ga',
        'passType': 'General Admission',
        'quantity': 1,
    }
    event_details.update(event_overrides)
    return {
        'razorpay_payment_id': payment_id,
        'razorpay_order_id': order_id,
        'razorpay_signature': signature if signature is not None else sign(order_id, payment_id),
        'eventDetails': event_details,
        'customerDetails': {'name': 'Asha Rao', 'email': 'asha@example.com', 'phone': '+91 98765 43210'},
        'discountDetails': {},
    }
