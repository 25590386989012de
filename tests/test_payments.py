import asyncio

import pytest
from pymongo.errors import DuplicateKeyError

from styledecor.core.error_messages import BookingNotFound, PaymentIncomplete, ServiceNotFound
from styledecor.database import ensure_indexes
from styledecor.models.bookings import BookingStore, booking_key
from styledecor.models.services import ServiceStore
from styledecor.services.payments import PaymentReconciler


@pytest.fixture
def reconciler(db, checkout, settings):
    return PaymentReconciler(checkout, BookingStore(db), ServiceStore(db), settings)


def metadata(service_id, flow="create", **overrides):
    data = {
        "flow": flow,
        "serviceId": service_id,
        "customerName": "Alice",
        "customerEmail": "alice@styledecor.io",
        "bookingDate": "2026-12-01",
        "location": "Dhaka",
    }
    data.update(overrides)
    return data


async def test_checkout_session_prices_from_stored_service(reconciler, checkout, add_service):
    service_id = await add_service(cost=100)
    result = await reconciler.create_checkout_session(
        {
            "serviceId": service_id,
            "customer": {"name": "Alice", "email": "alice@styledecor.io"},
            "bookingDate": "2026-12-01",
            "location": "Dhaka",
        }
    )

    assert result == {"url": "https://checkout.stripe.test/cs_test_1", "sessionId": "cs_test_1"}
    created = checkout.created[0]
    assert created["line_items"][0]["price_data"]["unit_amount"] == 10000
    assert created["metadata"]["flow"] == "create"
    assert created["metadata"]["serviceId"] == service_id
    assert "{CHECKOUT_SESSION_ID}" in created["success_url"]


async def test_checkout_session_for_unknown_service(reconciler):
    with pytest.raises(ServiceNotFound):
        await reconciler.create_checkout_session(
            {
                "serviceId": "nope",
                "customer": {"email": "alice@styledecor.io"},
                "bookingDate": "2026-12-01",
                "location": "Dhaka",
            }
        )


async def test_create_on_confirm_inserts_paid_booking(db, reconciler, checkout, add_service):
    service_id = await add_service(cost=100)
    checkout.complete("cs_1", "pi_1", 10000, metadata(service_id), "alice@styledecor.io")

    result = await reconciler.confirm("cs_1")

    assert result["created"] is True
    booking = result["booking"]
    assert booking["transactionId"] == "pi_1"
    assert booking["payment"] is True
    assert booking["price"] == 100
    assert booking["bookingStatus"] == "pending"
    assert booking["serviceName"] == "Wedding Stage"
    assert booking["customer"] == {"name": "Alice", "email": "alice@styledecor.io"}


async def test_confirming_twice_returns_same_booking(db, reconciler, checkout, add_service):
    service_id = await add_service()
    checkout.complete("cs_1", "pi_1", 10000, metadata(service_id), "alice@styledecor.io")

    first = await reconciler.confirm("cs_1")
    second = await reconciler.confirm("cs_1")

    assert second["alreadyProcessed"] is True
    assert second["booking"]["_id"] == first["booking"]["_id"]
    assert second["transactionId"] == "pi_1"
    assert await db.bookings.count_documents({"transactionId": "pi_1"}) == 1


async def test_concurrent_confirmations_create_one_booking(db, reconciler, checkout, add_service):
    service_id = await add_service()
    checkout.complete("cs_1", "pi_1", 10000, metadata(service_id), "alice@styledecor.io")

    results = await asyncio.gather(*(reconciler.confirm("cs_1") for _ in range(3)))

    assert len({r["booking"]["_id"] for r in results}) == 1
    assert sum(r["created"] for r in results) == 1
    assert await db.bookings.count_documents({}) == 1


async def test_incomplete_session_creates_nothing(db, reconciler, checkout, add_service):
    service_id = await add_service()
    checkout.complete("cs_1", None, 10000, metadata(service_id), "alice@styledecor.io", status="open")

    with pytest.raises(PaymentIncomplete):
        await reconciler.confirm("cs_1")
    assert await db.bookings.count_documents({}) == 0


async def test_deleted_service_creates_nothing(db, reconciler, checkout):
    checkout.complete("cs_1", "pi_1", 10000, metadata("65f000000000000000000000"), "alice@styledecor.io")
    with pytest.raises(ServiceNotFound):
        await reconciler.confirm("cs_1")


async def test_confirm_existing_marks_booking_paid(db, reconciler, checkout, add_service, add_booking):
    service_id = await add_service(cost=100)
    booking_id = await add_booking(serviceId=service_id, price=1)
    checkout.complete(
        "cs_1", "pi_1", 10000, metadata(service_id, flow="confirm_existing"), "alice@styledecor.io"
    )

    result = await reconciler.confirm("cs_1")

    booking = result["booking"]
    assert booking["_id"] == booking_id
    assert booking["payment"] is True
    assert booking["transactionId"] == "pi_1"
    assert booking["price"] == 100
    assert booking["paymentDate"] is not None

    again = await reconciler.confirm("cs_1")
    assert again["alreadyProcessed"] is True
    assert again["booking"]["_id"] == booking_id


async def test_confirm_existing_without_booking(reconciler, checkout, add_service):
    service_id = await add_service()
    checkout.complete(
        "cs_1", "pi_1", 10000, metadata(service_id, flow="confirm_existing"), "alice@styledecor.io"
    )
    with pytest.raises(BookingNotFound):
        await reconciler.confirm("cs_1")


# HTTP surface


async def test_payment_success_scenario_via_api(client, db, checkout, add_service, auth_header):
    service_id = await add_service(cost=100)
    created = await client.post(
        "/bookings",
        json={
            "serviceId": service_id,
            "serviceName": "Wedding Stage",
            "customer": {"name": "Alice", "email": "alice@styledecor.io"},
            "bookingDate": "2026-12-01",
            "location": "Dhaka",
            "price": 100,
        },
    )
    booking_id = created.json()["_id"]

    response = await client.post(
        "/create-checkout-session",
        json={
            "serviceId": service_id,
            "customer": {"name": "Alice", "email": "alice@styledecor.io"},
            "bookingDate": "2026-12-01",
            "location": "Dhaka",
            "existingBooking": True,
        },
    )
    session_id = response.json()["sessionId"]
    checkout.complete(session_id, "pi_1", 10000, checkout.created[0]["metadata"], "alice@styledecor.io")

    response = await client.post("/payment-success", json={"sessionId": session_id})
    assert response.status_code == 200
    booking = response.json()["booking"]
    assert booking["_id"] == booking_id
    assert booking["payment"] is True
    assert booking["transactionId"] == "pi_1"
    assert booking["price"] == 100

    history = await client.get("/payments/history", headers=auth_header("alice@styledecor.io"))
    assert [b["_id"] for b in history.json()] == [booking_id]


async def test_provider_failure_surfaces_as_500(client, checkout):
    checkout.fail_retrieve = True
    response = await client.post("/payment-success", json={"sessionId": "cs_missing"})
    assert response.status_code == 500
    assert response.json() == {"message": "Internal server error"}


async def test_interleaved_confirmations_under_unique_index(db, checkout, settings, add_service, yielding):
    await ensure_indexes(db)
    service_id = await add_service()
    bookings = BookingStore(db)
    bookings.collection = yielding(db.bookings)
    reconciler = PaymentReconciler(checkout, bookings, ServiceStore(db), settings)
    checkout.complete("cs_1", "pi_1", 10000, metadata(service_id), "alice@styledecor.io")

    results = await asyncio.gather(*(reconciler.confirm("cs_1") for _ in range(3)))

    assert sorted((r["created"], r["alreadyProcessed"]) for r in results) == [
        (False, True),
        (False, True),
        (True, False),
    ]
    assert len({r["booking"]["_id"] for r in results}) == 1
    assert await db.bookings.count_documents({"transactionId": "pi_1"}) == 1


class LosingRaceCollection:
    """Simulates a concurrent insert winning between the upsert's match and insert."""

    def __init__(self, inner, winner):
        self.inner = inner
        self.winner = winner

    def __getattr__(self, name):
        return getattr(self.inner, name)

    async def update_one(self, *args, **kwargs):
        await self.inner.insert_one(dict(self.winner))
        raise DuplicateKeyError("E11000 duplicate key error collection: bookings index: transactionId_1")


async def test_insert_conflict_is_reported_as_already_processed(db, checkout, settings, add_service):
    service_id = await add_service()
    winner = {"transactionId": "pi_1", "payment": True, "bookingStatus": "pending", "price": 100}
    bookings = BookingStore(db)
    bookings.collection = LosingRaceCollection(db.bookings, winner)
    reconciler = PaymentReconciler(checkout, bookings, ServiceStore(db), settings)
    checkout.complete("cs_1", "pi_1", 10000, metadata(service_id), "alice@styledecor.io")

    result = await reconciler.confirm("cs_1")

    assert result["created"] is False
    assert result["alreadyProcessed"] is True
    assert await db.bookings.count_documents({"transactionId": "pi_1"}) == 1


async def test_mark_paid_refuses_a_transaction_already_bound(db, add_booking):
    await ensure_indexes(db)
    await add_booking(payment=True, transactionId="pi_1", location="Chittagong")
    unpaid = await add_booking(serviceId="svc")
    store = BookingStore(db)

    key = booking_key("svc", "alice@styledecor.io", "2026-12-01", "Dhaka")
    assert await store.mark_paid(key, "pi_1", 100) is None
    assert (await store.get(unpaid))["payment"] is False
