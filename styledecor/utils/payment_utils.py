# styledecor/utils/payment_utils.py
import logging
from typing import Any, Dict, List

import stripe
from starlette.concurrency import run_in_threadpool

from styledecor.core.config import Settings
from styledecor.core.error_messages import UpstreamFailure

logger = logging.getLogger(__name__)


def _as_dict(session: Any) -> Dict[str, Any]:
    if hasattr(session, "to_dict_recursive"):
        return session.to_dict_recursive()
    if hasattr(session, "to_dict"):
        return session.to_dict()
    return dict(session)


class StripeCheckout:
    """Thin async wrapper around Stripe Checkout sessions."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.api_key = settings.STRIPE_SECRET_KEY

    async def create_session(
        self,
        line_items: List[Dict[str, Any]],
        metadata: Dict[str, str],
        customer_email: str,
        success_url: str,
        cancel_url: str,
    ) -> Dict[str, Any]:
        try:
            session = await run_in_threadpool(
                stripe.checkout.Session.create,
                api_key=self.api_key,
                mode="payment",
                line_items=line_items,
                metadata=metadata,
                customer_email=customer_email,
                success_url=success_url,
                cancel_url=cancel_url,
            )
        except stripe.StripeError as e:
            logger.exception("Stripe session creation failed")
            raise UpstreamFailure() from e
        return _as_dict(session)

    async def retrieve_session(self, session_id: str) -> Dict[str, Any]:
        try:
            session = await run_in_threadpool(
                stripe.checkout.Session.retrieve, session_id, api_key=self.api_key
            )
        except stripe.StripeError as e:
            logger.exception("Stripe session retrieval failed for %s", session_id)
            raise UpstreamFailure() from e
        return _as_dict(session)
