# styledecor/services/payments.py
"""Reconciles Stripe Checkout sessions with booking records.

Two flows are supported, chosen when the session is created and carried in
its metadata:

* ``create``: the booking only exists in the session metadata and is
  inserted when the payment is confirmed.
* ``confirm_existing``: an unpaid booking was stored beforehand and is
  marked paid on confirmation.

Everything written to a booking is read back from the session retrieved from
Stripe, never from the confirming request. The payment intent id is the
idempotency key: confirming the same session again returns the booking that
already carries it.
"""
import logging
from typing import Any, Dict

from styledecor.core.config import Settings
from styledecor.core.error_messages import BookingNotFound, PaymentIncomplete, ServiceNotFound
from styledecor.database import serialize_doc
from styledecor.models.bookings import booking_key

logger = logging.getLogger(__name__)

FLOW_CREATE = "create"
FLOW_CONFIRM_EXISTING = "confirm_existing"


def _payment_intent_id(session: Dict[str, Any]):
    intent = session.get("payment_intent")
    if isinstance(intent, dict):
        return intent.get("id")
    return intent


class PaymentReconciler:
    def __init__(self, checkout, bookings, services, settings: Settings):
        self.checkout = checkout
        self.bookings = bookings
        self.services = services
        self.settings = settings

    async def create_checkout_session(self, request: Dict[str, Any]) -> Dict[str, Any]:
        service = await self.services.get(request["serviceId"])
        if not service:
            raise ServiceNotFound()

        customer = request["customer"]
        flow = FLOW_CONFIRM_EXISTING if request.get("existingBooking") else FLOW_CREATE
        unit_amount = int(round(float(service["cost"]) * 100))
        product = {"name": service["name"]}
        if service.get("description"):
            product["description"] = service["description"]
        if service.get("image"):
            product["images"] = [service["image"]]

        session = await self.checkout.create_session(
            line_items=[
                {
                    "price_data": {
                        "currency": self.settings.CURRENCY,
                        "product_data": product,
                        "unit_amount": unit_amount,
                    },
                    "quantity": 1,
                }
            ],
            metadata={
                "flow": flow,
                "serviceId": str(service["_id"]),
                "customerName": customer.get("name") or "",
                "customerEmail": customer["email"],
                "bookingDate": request["bookingDate"],
                "location": request["location"],
            },
            customer_email=customer["email"],
            success_url=f"{self.settings.CLIENT_DOMAIN}/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{self.settings.CLIENT_DOMAIN}/services/{service['_id']}",
        )
        logger.info("Checkout session %s opened for %s (%s)", session.get("id"), customer["email"], flow)
        return {"url": session.get("url"), "sessionId": session.get("id")}

    async def confirm(self, session_id: str) -> Dict[str, Any]:
        session = await self.checkout.retrieve_session(session_id)
        metadata = session.get("metadata") or {}
        if metadata.get("flow") == FLOW_CONFIRM_EXISTING:
            return await self._confirm_existing(session, metadata)
        return await self._create_on_confirm(session, metadata)

    def _already_processed(self, booking: dict, transaction_id: str) -> Dict[str, Any]:
        logger.info("Payment %s already reconciled, returning booking %s", transaction_id, booking["_id"])
        return {
            "created": False,
            "alreadyProcessed": True,
            "transactionId": transaction_id,
            "booking": serialize_doc(booking),
        }

    async def _create_on_confirm(self, session: Dict[str, Any], metadata: Dict[str, Any]) -> Dict[str, Any]:
        transaction_id = _payment_intent_id(session)
        if transaction_id:
            existing = await self.bookings.find_by_transaction(transaction_id)
            if existing:
                return self._already_processed(existing, transaction_id)

        if session.get("status") != "complete" or not transaction_id:
            raise PaymentIncomplete()

        service = await self.services.get(metadata.get("serviceId", ""))
        if not service:
            raise ServiceNotFound()

        info = {
            "serviceId": str(service["_id"]),
            "serviceName": service.get("name"),
            "category": service.get("category"),
            "unit": service.get("unit"),
            "image": service.get("image"),
            "customer": {
                "name": metadata.get("customerName"),
                "email": session.get("customer_email") or metadata.get("customerEmail"),
            },
            "bookingDate": metadata.get("bookingDate"),
            "location": metadata.get("location"),
            "price": session.get("amount_total", 0) / 100,
        }
        created = await self.bookings.insert_paid_if_absent(transaction_id, info)
        booking = await self.bookings.find_by_transaction(transaction_id)
        if not created:
            return self._already_processed(booking, transaction_id)

        logger.info("Booking %s created from payment %s", booking["_id"], transaction_id)
        return {
            "created": True,
            "alreadyProcessed": False,
            "transactionId": transaction_id,
            "booking": serialize_doc(booking),
        }

    async def _confirm_existing(self, session: Dict[str, Any], metadata: Dict[str, Any]) -> Dict[str, Any]:
        transaction_id = _payment_intent_id(session)
        if transaction_id:
            existing = await self.bookings.find_by_transaction(transaction_id)
            if existing:
                return self._already_processed(existing, transaction_id)

        if session.get("status") != "complete" or not transaction_id:
            raise PaymentIncomplete()

        key = booking_key(
            metadata.get("serviceId"),
            session.get("customer_email") or metadata.get("customerEmail"),
            metadata.get("bookingDate"),
            metadata.get("location"),
        )
        booking = await self.bookings.mark_paid(key, transaction_id, session.get("amount_total", 0) / 100)
        if booking is None:
            # lost a race against a concurrent confirmation of the same payment
            existing = await self.bookings.find_by_transaction(transaction_id)
            if existing:
                return self._already_processed(existing, transaction_id)
            raise BookingNotFound()

        logger.info("Booking %s paid with %s", booking["_id"], transaction_id)
        return {
            "created": False,
            "alreadyProcessed": False,
            "transactionId": transaction_id,
            "booking": serialize_doc(booking),
        }
