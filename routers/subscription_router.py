"""
Subscription Router - pricing, Stripe payment intents, payment confirmation,
payment history and the Stripe webhook
Webhook is defined FIRST to avoid middleware conflicts
"""

import logging
from fastapi import APIRouter, Request, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import stripe

from auth import get_current_user
from config import settings
from database import get_db
from database_models import User
from models.subscription import CreatePaymentIntentRequest, ConfirmPaymentRequest
from services.subscription_service import SubscriptionService, pricing_table

logger = logging.getLogger(__name__)

subscription_router = APIRouter(prefix="/api/subscriptions", tags=["subscriptions"])


# WEBHOOK ENDPOINT - MUST BE DEFINED FIRST TO AVOID MIDDLEWARE CONFLICTS
@subscription_router.post("/webhook")
async def stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """
    Handle Stripe webhook events with signature verification.

    Always returns 200 OK to Stripe to prevent retries.
    """
    webhook_secret = settings.stripe_webhook_secret
    if not webhook_secret:
        logger.error("STRIPE_WEBHOOK_SECRET environment variable is not set")
        return JSONResponse(
            status_code=200,
            content={"ok": False, "received": True, "error": "Webhook secret not configured"}
        )

    # Raw body is required for signature verification
    payload = await request.body()

    stripe_signature = request.headers.get("stripe-signature")
    if not stripe_signature:
        logger.error("Missing Stripe-Signature header")
        return JSONResponse(
            status_code=200,
            content={"ok": False, "received": True, "error": "Missing signature header"}
        )

    try:
        event = stripe.Webhook.construct_event(payload, stripe_signature, webhook_secret)
    except stripe.SignatureVerificationError as e:
        logger.error(f"Stripe webhook signature verification failed: {e}")
        return JSONResponse(
            status_code=200,
            content={"ok": False, "received": True, "error": "Invalid webhook signature"}
        )
    except ValueError as e:
        logger.error(f"Invalid webhook payload: {e}")
        return JSONResponse(
            status_code=200,
            content={"ok": False, "received": True, "error": "Invalid payload format"}
        )

    try:
        result = await SubscriptionService(db).process_webhook(event)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Webhook {event['type']} could not be stored: {e}", exc_info=True)
        result = {"error": "Storage failure", "is_error": True}
    if result.get("is_error"):
        logger.warning(f"Webhook {event['type']} not applied: {result.get('error')}")

    return JSONResponse(
        status_code=200,
        content={
            "ok": not result.get("is_error", True),
            "received": True,
            "event_type": event["type"]
        }
    )


@subscription_router.get("/pricing")
async def get_pricing():
    """Static pricing table in major currency units"""
    return pricing_table()


@subscription_router.post("/create-payment-intent")
async def create_payment_intent(
    request: CreatePaymentIntentRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a Stripe payment intent priced for the caller's role.

    Returns:
        {"clientSecret": str, "amount": float}
    """
    return await SubscriptionService(db).create_payment_intent(user, request.subscription_type)


@subscription_router.post("/confirm-payment")
async def confirm_payment(
    request: ConfirmPaymentRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Confirm a succeeded payment intent and activate the subscription.

    Returns:
        {"message": str, "subscriptionExpiryDate": ISO timestamp}
    """
    return await SubscriptionService(db).confirm_payment(
        user, request.payment_intent_id, request.subscription_type
    )


@subscription_router.get("/payment-history")
async def payment_history(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Last 10 payments, newest first"""
    return await SubscriptionService(db).payment_history(user)
