import stripe
import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import FineStatus, PaymentStatus, WebhookEventType
from app.core.database import aget_db
from app.core.security import authenticate_token, require_api_key
from app.models.fines import Fine
from app.models.payment import Payment
from app.schemas.payment import (
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    WebhookResponse,
)
from app.services.stripe_service import (
    WebhookVerificationError,
    construct_webhook_event,
    create_checkout_session,
    get_receipt_url,
    to_minor_units,
)

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["payment"])


@router.post("/driver/create-checkout-session", response_model=CheckoutSessionResponse)
async def create_fine_checkout_session(
    payload: CheckoutSessionRequest,
    db: AsyncSession = Depends(aget_db),
    token_payload: dict = Depends(authenticate_token),
):
    """Open a Stripe hosted checkout for an unpaid fine"""
    require_api_key(payload.api_key)

    fine = await db.get(Fine, payload.fine_id)
    if not fine:
        raise HTTPException(status_code=404, detail="Fine not found.")

    if fine.status == FineStatus.PAID:
        raise HTTPException(status_code=400, detail="This fine is already paid.")

    try:
        session = await create_checkout_session(fine)
    except stripe.StripeError as e:
        logger.error("checkout_session_failed", fine_id=fine.fine_id, error=str(e))
        raise HTTPException(status_code=500, detail="Failed to create checkout session.")

    return CheckoutSessionResponse(sessionId=session.id, url=session.url)


@router.post("/webhook", response_model=WebhookResponse)
async def stripe_webhook(request: Request, db: AsyncSession = Depends(aget_db)):
    """Stripe callback. The raw body is verified before anything is read from it."""
    raw_body = await request.body()
    signature = request.headers.get("stripe-signature")

    try:
        event = construct_webhook_event(raw_body, signature)
    except WebhookVerificationError as e:
        logger.warning("webhook_signature_verification_failed", error=str(e))
        raise HTTPException(status_code=400, detail="Webhook signature verification failed.")

    if event.type == WebhookEventType.CHECKOUT_SESSION_COMPLETED.value:
        await handle_checkout_completed(event.data.object.to_dict(), db)
    else:
        logger.warning("webhook_unhandled_event", event_id=event.id, event_type=event.type)

    return WebhookResponse(received=True)


async def handle_checkout_completed(session: dict, db: AsyncSession) -> None:
    """Mark the fine paid and record the payment, once per fine."""
    metadata = session.get("metadata") or {}
    try:
        fine_id = int(metadata.get("fine_id"))
    except (TypeError, ValueError):
        logger.warning(
            "checkout_completed_without_fine",
            session_id=session.get("id"),
            fine_id=metadata.get("fine_id"),
        )
        return

    fine = await db.get(Fine, fine_id)
    if fine is None:
        logger.warning("checkout_completed_unknown_fine", fine_id=fine_id, session_id=session.get("id"))
        return

    if fine.status == FineStatus.PAID:
        # Redelivered event
        logger.info("checkout_completed_fine_already_paid", fine_id=fine.fine_id)
        return

    amount_total = session.get("amount_total")
    if amount_total is not None and amount_total != to_minor_units(fine.amount):
        logger.warning(
            "checkout_amount_mismatch",
            fine_id=fine.fine_id,
            fine_amount=fine.amount,
            amount_total=amount_total,
        )

    receipt_url = await get_receipt_url(session.get("payment_intent"))

    fine.status = FineStatus.PAID
    db.add(Payment(
        fine_id=fine.fine_id,
        driver_id=fine.driver_id,
        amount=fine.amount,
        status=PaymentStatus.SUCCEEDED.value,
        receipt_url=receipt_url,
        stripe_session_id=session.get("id"),
    ))
    await db.commit()

    logger.info("fine_paid", fine_id=fine.fine_id, driver_id=fine.driver_id, amount=fine.amount)
