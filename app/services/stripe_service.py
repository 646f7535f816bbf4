"""
Stripe integration: hosted checkout sessions for fines and webhook
signature verification.
"""
from typing import Optional

import stripe
import structlog
from fastapi.concurrency import run_in_threadpool

from app.core.config import settings
from app.models.fines import Fine

logger = structlog.get_logger(__name__)

stripe.api_key = settings.STRIPE_SECRET_KEY


class WebhookVerificationError(Exception):
    """Raised when an inbound webhook cannot be trusted."""


def to_minor_units(amount: float) -> int:
    """Stripe expects amounts in the currency's smallest unit (cents)."""
    return int(round(amount * 100))


async def create_checkout_session(fine: Fine) -> stripe.checkout.Session:
    """Create a hosted payment page for the full amount of a fine."""
    session = await run_in_threadpool(
        stripe.checkout.Session.create,
        payment_method_types=["card"],
        line_items=[
            {
                "price_data": {
                    "currency": settings.STRIPE_CURRENCY,
                    "product_data": {
                        "name": f"Fine Payment for Fine ID: {fine.fine_id}",
                    },
                    "unit_amount": to_minor_units(fine.amount),
                },
                "quantity": 1,
            }
        ],
        mode="payment",
        success_url=f"{settings.FRONTEND_URL}/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{settings.FRONTEND_URL}/payment-cancel",
        # Read back by the webhook to locate the fine
        metadata={
            "fine_id": str(fine.fine_id),
            "driver_id": str(fine.driver_id),
        },
    )

    logger.info(
        "checkout_session_created",
        fine_id=fine.fine_id,
        session_id=session.id,
        amount=fine.amount,
    )
    return session


def construct_webhook_event(payload: bytes, signature: Optional[str]) -> stripe.Event:
    """
    Verify the Stripe-Signature header against the raw request body and
    build the event from it.

    Raises:
        WebhookVerificationError: missing header, bad signature or a
        payload that is not valid JSON.
    """
    if not signature:
        raise WebhookVerificationError("Missing Stripe-Signature header")

    try:
        event = stripe.Webhook.construct_event(
            payload=payload,
            sig_header=signature,
            secret=settings.STRIPE_WEBHOOK_SECRET,
        )
    except stripe.SignatureVerificationError as e:
        raise WebhookVerificationError(f"Invalid webhook signature: {e}") from e
    except ValueError as e:
        raise WebhookVerificationError(f"Invalid webhook payload: {e}") from e

    logger.info("webhook_signature_verified", event_id=event.id, event_type=event.type)
    return event


async def get_receipt_url(payment_intent_id: Optional[str]) -> Optional[str]:
    """Receipt URL of the charge behind a checkout session, if Stripe has one."""
    if not payment_intent_id:
        return None

    try:
        intent = await run_in_threadpool(
            stripe.PaymentIntent.retrieve,
            payment_intent_id,
            expand=["latest_charge"],
        )
    except stripe.StripeError as e:
        logger.warning(
            "receipt_lookup_failed",
            payment_intent_id=payment_intent_id,
            error=str(e),
        )
        return None

    charge = intent.latest_charge
    if charge is None or isinstance(charge, str):
        return None
    return getattr(charge, "receipt_url", None)
