"""
Subscription and payment request/response models
"""
from datetime import datetime
from typing import Optional
from pydantic import Field

from models.enums import SubscriptionType
from models.user import CamelModel


class CreatePaymentIntentRequest(CamelModel):
    subscription_type: SubscriptionType


class ConfirmPaymentRequest(CamelModel):
    payment_intent_id: str = Field(min_length=1)
    subscription_type: SubscriptionType


class PaymentOut(CamelModel):
    id: int
    amount: float
    currency: str
    subscription_type: str
    stripe_payment_intent_id: str
    status: str
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None
    created_at: datetime
