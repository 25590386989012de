import asyncio
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from mongomock_motor import AsyncMongoMockClient

from styledecor.core.config import Settings
from styledecor.core.error_messages import UpstreamFailure
from styledecor.main import create_app
from styledecor.utils.auth_utils import create_access_token


class FakeCheckout:
    """Stands in for Stripe Checkout; sessions are registered by the test."""

    def __init__(self):
        self.sessions = {}
        self.created = []
        self.fail_retrieve = False

    async def create_session(self, line_items, metadata, customer_email, success_url, cancel_url):
        session_id = f"cs_test_{len(self.created) + 1}"
        self.created.append(
            {
                "id": session_id,
                "line_items": line_items,
                "metadata": metadata,
                "customer_email": customer_email,
                "success_url": success_url,
                "cancel_url": cancel_url,
            }
        )
        return {"id": session_id, "url": f"https://checkout.stripe.test/{session_id}"}

    async def retrieve_session(self, session_id):
        if self.fail_retrieve:
            raise UpstreamFailure()
        return self.sessions[session_id]

    def complete(self, session_id, payment_intent, amount_total, metadata, customer_email, status="complete"):
        self.sessions[session_id] = {
            "id": session_id,
            "status": status,
            "payment_intent": payment_intent,
            "amount_total": amount_total,
            "customer_email": customer_email,
            "metadata": metadata,
        }


class YieldingCollection:
    """Wraps a collection so every write and lookup suspends first.

    The in-memory store never yields to the event loop on its own, so
    without this gathered calls would run one after another.
    """

    SUSPENDING = {
        "find_one",
        "insert_one",
        "update_one",
        "find_one_and_update",
        "delete_one",
        "delete_many",
        "count_documents",
    }

    def __init__(self, inner):
        self.inner = inner

    def __getattr__(self, name):
        attr = getattr(self.inner, name)
        if name not in self.SUSPENDING:
            return attr

        async def call(*args, **kwargs):
            await asyncio.sleep(0)
            return await attr(*args, **kwargs)

        return call


@pytest.fixture
def settings():
    return Settings(
        AUTH_PROVIDER="jwt",
        JWT_SECRET_KEY="test-secret",
        CREATE_INDEXES=False,
        REPAIR_DECORATOR_PROFILES=False,
        STRIPE_SECRET_KEY="sk_test_123",
        CLIENT_DOMAIN="http://localhost:5173",
    )


@pytest.fixture
def yielding():
    return YieldingCollection


@pytest.fixture
def db():
    return AsyncMongoMockClient()["styledecor_test"]


@pytest.fixture
def checkout():
    return FakeCheckout()


@pytest.fixture
def app(settings, db, checkout):
    return create_app(settings, db=db, checkout=checkout)


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def auth_header(settings):
    def make(email):
        return {"Authorization": f"Bearer {create_access_token({'email': email}, settings)}"}

    return make


@pytest.fixture
def add_user(db):
    async def add(email, role="customer", name=None):
        result = await db.users.insert_one(
            {
                "email": email,
                "name": name or email.split("@")[0].title(),
                "image": f"https://img.styledecor.io/{email.split('@')[0]}.png",
                "role": role,
                "created_at": datetime.now(timezone.utc),
            }
        )
        return str(result.inserted_id)

    return add


@pytest.fixture
def add_service(db):
    async def add(name="Wedding Stage", cost=100, category="wedding"):
        result = await db.services.insert_one(
            {
                "name": name,
                "category": category,
                "description": f"{name} decoration",
                "cost": cost,
                "unit": "per event",
                "image": "https://img.styledecor.io/stage.png",
                "rating": 4.5,
            }
        )
        return str(result.inserted_id)

    return add


@pytest.fixture
def add_booking(db):
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    counter = {"n": 0}

    async def add(email="alice@styledecor.io", status="pending", payment=False, **extra):
        counter["n"] += 1
        booking = {
            "serviceId": "svc",
            "serviceName": "Wedding Stage",
            "category": "wedding",
            "unit": "per event",
            "customer": {"name": "Alice", "email": email},
            "bookingDate": "2026-12-01",
            "location": "Dhaka",
            "price": 100,
            "payment": payment,
            "bookingStatus": status,
            "assignedDecorator": None,
            "createdAt": base + timedelta(minutes=counter["n"]),
        }
        booking.update(extra)
        result = await db.bookings.insert_one(booking)
        return str(result.inserted_id)

    return add
