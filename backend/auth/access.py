"""
Access gate checks.

Each check takes an already authenticated user and returns a GateResult.
run_gates() applies checks in order and stops at the first failure, which
is how the route dependencies in auth.py chain authentication, the
subscription check and the role check.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, Optional

from models.enums import Role, SubscriptionStatus


@dataclass(frozen=True)
class GateResult:
    allowed: bool
    status_code: int = 200
    reason: Optional[str] = None


PASS = GateResult(allowed=True)


def has_active_subscription(user, now: Optional[datetime] = None) -> bool:
    """True only if the stored flag is active AND the expiry is still ahead."""
    if user.subscription_status != SubscriptionStatus.ACTIVE.value:
        return False
    if user.subscription_expiry_date is None:
        return False
    now = now or datetime.utcnow()
    return user.subscription_expiry_date > now


def effective_subscription_status(user, now: Optional[datetime] = None) -> str:
    """
    Subscription status as the gate sees it.

    - active with a future expiry: "active"
    - active flag but expiry passed: "expired"
    - otherwise the stored value
    """
    if has_active_subscription(user, now):
        return SubscriptionStatus.ACTIVE.value
    if user.subscription_status == SubscriptionStatus.ACTIVE.value:
        return SubscriptionStatus.EXPIRED.value
    return user.subscription_status


def check_subscription(user, now: Optional[datetime] = None) -> GateResult:
    if has_active_subscription(user, now):
        return PASS
    return GateResult(allowed=False, status_code=402, reason="Active subscription required")


def check_role(user, allowed_roles: Iterable[Role]) -> GateResult:
    allowed = {Role(r).value for r in allowed_roles}
    if user.role in allowed:
        return PASS
    return GateResult(
        allowed=False,
        status_code=403,
        reason=f"Role '{user.role}' is not allowed for this action",
    )


def run_gates(user, *gates: Callable[[object], GateResult]) -> GateResult:
    for gate in gates:
        result = gate(user)
        if not result.allowed:
            return result
    return PASS
