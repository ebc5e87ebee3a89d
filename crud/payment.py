"""
PaymentRepository - append-only access to the payment ledger
"""

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from database_models import Payment


class PaymentRepository:
    """
    Repository class for Payment ledger rows.
    Rows are never deleted; only status moves after insert.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def append(self, payment_data: dict) -> Payment:
        """
        Append a ledger entry.

        Args:
            payment_data: Dictionary with user_id, amount, subscription_type,
                stripe_payment_intent_id, status and optionally currency,
                period_start, period_end

        Returns:
            Created Payment object
        """
        payment = Payment(**payment_data)
        self.db.add(payment)
        await self.db.flush()
        await self.db.refresh(payment)
        return payment

    async def get_by_intent(self, payment_intent_id: str, status: Optional[str] = None) -> Optional[Payment]:
        query = select(Payment).where(Payment.stripe_payment_intent_id == payment_intent_id)
        if status is not None:
            query = query.where(Payment.status == status)
        result = await self.db.execute(query.order_by(Payment.id.desc()).limit(1))
        return result.scalar_one_or_none()

    async def set_status(self, payment: Payment, status: str) -> Payment:
        payment.status = status
        await self.db.flush()
        await self.db.refresh(payment)
        return payment

    async def history_for_user(self, user_id: int, limit: int = 10) -> list[Payment]:
        """Most recent payments first."""
        result = await self.db.execute(
            select(Payment)
            .where(Payment.user_id == user_id)
            .order_by(Payment.created_at.desc(), Payment.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
