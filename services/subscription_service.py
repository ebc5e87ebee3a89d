"""
Subscription Service - role-based pricing, Stripe payment intents and
subscription activation
"""

import asyncio
import calendar
import logging
from datetime import datetime
from typing import Optional
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
import stripe

from config import settings
from crud.payment import PaymentRepository
from crud.user import UserRepository
from database_models import User
from models.enums import PaymentStatus, Role, SubscriptionStatus, SubscriptionType
from models.subscription import PaymentOut

logger = logging.getLogger(__name__)

# Initialize Stripe with runtime check
if settings.stripe_secret_key:
    stripe.api_key = settings.stripe_secret_key
else:
    logger.warning("STRIPE_SECRET_KEY is not set. Stripe functionality will be unavailable.")

HISTORY_LIMIT = 10


def price_in_cents(subscription_type: SubscriptionType, role: Role) -> int:
    """
    Amount charged in the smallest currency unit.

    First-time fees depend on the role; renewals are flat.
    """
    match SubscriptionType(subscription_type), Role(role):
        case SubscriptionType.FIRST_TIME, Role.STUDENT:
            return 100
        case SubscriptionType.FIRST_TIME, Role.GOVERNMENT_WORKER | Role.FAMILY:
            return 200
        case SubscriptionType.FIRST_TIME, Role.LANDLORD:
            return 300
        case SubscriptionType.MONTHLY_RENEWAL, _:
            return 100
    raise ValueError(f"No price for {subscription_type!r} and role {role!r}")


def pricing_table() -> dict:
    """Published prices in major currency units."""
    return {
        SubscriptionType.FIRST_TIME.value: {
            role.value: price_in_cents(SubscriptionType.FIRST_TIME, role) / 100 for role in Role
        },
        SubscriptionType.MONTHLY_RENEWAL.value: price_in_cents(SubscriptionType.MONTHLY_RENEWAL, Role.STUDENT) / 100,
    }


def add_one_month(start: datetime) -> datetime:
    """Same day next month, clamped to that month's last day (Jan 31 -> Feb 28/29)."""
    year = start.year + (start.month // 12)
    month = start.month % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return start.replace(year=year, month=month, day=day)


def _require_stripe() -> None:
    if not settings.stripe_secret_key:
        logger.error("STRIPE_SECRET_KEY is not set. Cannot reach the payment processor.")
        raise HTTPException(status_code=503, detail="Payment processing is not configured")


def _metadata_value(metadata, key: str) -> Optional[str]:
    if metadata is None:
        return None
    try:
        return metadata[key]
    except (KeyError, TypeError):
        return None


def _failed_payment_row(intent) -> dict:
    """
    Ledger values for a failed intent from a webhook payload.

    Raises:
        KeyError, TypeError, ValueError: when the payload lacks a usable id,
            amount, user id or subscription type
    """
    metadata = intent.get("metadata")
    user_id = _metadata_value(metadata, "user_id")
    subscription_type = _metadata_value(metadata, "subscription_type")
    if not user_id or not subscription_type:
        raise ValueError("metadata is incomplete")
    return {
        "user_id": int(user_id),
        "amount": intent["amount"] / 100,
        "currency": str(intent.get("currency") or settings.payment_currency).upper(),
        "subscription_type": SubscriptionType(subscription_type).value,
        "stripe_payment_intent_id": str(intent["id"]),
        "status": PaymentStatus.FAILED.value,
    }


class SubscriptionService:
    """
    Service class for the subscription workflow.
    Stripe is the source of truth for whether a charge succeeded.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the subscription service.

        Args:
            db: AsyncSession instance for database operations
        """
        self.db = db
        self.payments = PaymentRepository(db)
        self.users = UserRepository(db)

    async def create_payment_intent(self, user: User, subscription_type: SubscriptionType) -> dict:
        """
        Ask Stripe for a payment intent priced for the user's role.

        No local state changes; the returned client secret is handed to the
        browser, which confirms the card payment directly with Stripe.
        """
        try:
            amount = price_in_cents(subscription_type, user.role)
        except ValueError as e:
            raise HTTPException(status_code=400, detail="Invalid subscription type") from e

        _require_stripe()

        try:
            intent = await asyncio.to_thread(
                stripe.PaymentIntent.create,
                amount=amount,
                currency=settings.payment_currency,
                metadata={
                    "user_id": str(user.id),
                    "subscription_type": SubscriptionType(subscription_type).value,
                    "user_role": user.role,
                },
            )
        except stripe.StripeError as e:
            logger.error(f"Failed to create payment intent for user {user.id}: {e}", exc_info=True)
            raise HTTPException(status_code=502, detail="Payment processor error") from e

        logger.info(f"Created payment intent {intent.id} for user {user.id} ({amount} cents)")
        return {"clientSecret": intent.client_secret, "amount": amount / 100}

    async def confirm_payment(
        self,
        user: User,
        payment_intent_id: str,
        subscription_type: SubscriptionType,
        now: Optional[datetime] = None,
    ) -> dict:
        """
        Activate or extend the subscription once Stripe reports success.

        The ledger entry and the user update are committed together before
        returning, so a storage failure reaches the client as an error.

        Raises:
            HTTPException: 400 if the intent did not succeed, belongs to
                another account or subscription type, or was already
                recorded; 502 on processor errors
        """
        _require_stripe()

        try:
            intent = await asyncio.to_thread(stripe.PaymentIntent.retrieve, payment_intent_id)
        except stripe.StripeError as e:
            logger.error(f"Failed to retrieve payment intent {payment_intent_id}: {e}", exc_info=True)
            raise HTTPException(status_code=502, detail="Payment processor error") from e

        if intent.status != "succeeded":
            logger.info(f"Payment intent {payment_intent_id} not completed (status={intent.status})")
            raise HTTPException(status_code=400, detail="Payment not successful")

        subscription_type = SubscriptionType(subscription_type)
        metadata = getattr(intent, "metadata", None)

        owner_id = _metadata_value(metadata, "user_id")
        if owner_id is not None and owner_id != str(user.id):
            logger.warning(f"User {user.id} tried to confirm payment intent {payment_intent_id} owned by {owner_id}")
            raise HTTPException(status_code=400, detail="Payment does not belong to this account")

        paid_type = _metadata_value(metadata, "subscription_type")
        if paid_type is not None and paid_type != subscription_type.value:
            logger.warning(
                f"User {user.id} tried to confirm {paid_type} intent {payment_intent_id} as {subscription_type.value}"
            )
            raise HTTPException(status_code=400, detail="Subscription type does not match the payment")

        already = await self.payments.get_by_intent(payment_intent_id, status=PaymentStatus.COMPLETED.value)
        if already:
            raise HTTPException(status_code=400, detail="Payment has already been confirmed")

        start = now or datetime.utcnow()
        end = add_one_month(start)

        await self.payments.append({
            "user_id": user.id,
            "amount": intent.amount / 100,
            "currency": settings.payment_currency.upper(),
            "subscription_type": subscription_type.value,
            "stripe_payment_intent_id": payment_intent_id,
            "status": PaymentStatus.COMPLETED.value,
            "period_start": start,
            "period_end": end,
        })

        updates = {
            "subscription_status": SubscriptionStatus.ACTIVE.value,
            "subscription_expiry_date": end,
        }
        if subscription_type is SubscriptionType.FIRST_TIME:
            updates["first_time_payment"] = False
        await self.users.update_user(user, updates)
        # Ledger row and activation land together, before the client is told
        await self.db.commit()

        logger.info(f"Subscription for user {user.id} active until {end.isoformat()}")
        return {
            "message": "Payment confirmed and subscription activated",
            "subscriptionExpiryDate": end.isoformat(),
        }

    async def payment_history(self, user: User) -> list[dict]:
        payments = await self.payments.history_for_user(user.id, limit=HISTORY_LIMIT)
        return [
            PaymentOut.model_validate(p).model_dump(by_alias=True, mode="json")
            for p in payments
        ]

    async def process_webhook(self, event) -> dict:
        """
        Record processor-side outcomes that never reach confirm-payment.

        - payment_intent.payment_failed: append a failed ledger entry
        - charge.refunded: mark the completed entry for the intent refunded

        Returns:
            Normalized response: {"data": ..., "is_error": False} or {"error": str, "is_error": True}
        """
        event_type = event["type"]
        obj = event["data"]["object"]
        logger.info(f"Processing Stripe webhook event: {event_type}")

        if event_type == "payment_intent.payment_failed":
            try:
                row = _failed_payment_row(obj)
            except (KeyError, TypeError, ValueError) as e:
                return {"error": f"Unusable payment intent in event: {e!r}", "is_error": True}

            # Stripe redelivers events; one failed row per intent
            existing = await self.payments.get_by_intent(
                row["stripe_payment_intent_id"], status=PaymentStatus.FAILED.value
            )
            if existing:
                return {"data": existing.id, "is_error": False}

            user = await self.users.get_user_by_id(row["user_id"])
            if not user:
                return {"error": f"Unknown user {row['user_id']}", "is_error": True}
            payment = await self.payments.append(row)
            return {"data": payment.id, "is_error": False}

        if event_type == "charge.refunded":
            intent_id = obj.get("payment_intent")
            payment = await self.payments.get_by_intent(intent_id, status=PaymentStatus.COMPLETED.value) if intent_id else None
            if not payment:
                return {"error": f"No completed payment for intent {intent_id}", "is_error": True}
            await self.payments.set_status(payment, PaymentStatus.REFUNDED.value)
            return {"data": payment.id, "is_error": False}

        # Other event types are acknowledged without changes
        return {"data": None, "is_error": False}
