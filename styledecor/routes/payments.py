# styledecor/routes/payments.py
from fastapi import APIRouter, Request

from styledecor.schemas.payments import CheckoutRequest, PaymentSuccess

payments_router = APIRouter(tags=["Payments"])


@payments_router.post("/create-checkout-session")
async def create_checkout_session(data: CheckoutRequest, request: Request):
    return await request.app.state.payments.create_checkout_session(data.model_dump())


# Called by the client after Stripe redirects back; safe to repeat
@payments_router.post("/payment-success")
async def payment_success(data: PaymentSuccess, request: Request):
    return await request.app.state.payments.confirm(data.sessionId)
