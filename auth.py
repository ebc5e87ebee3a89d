"""
Authentication routes and access-gate dependencies
"""

from datetime import datetime
from typing import Optional
from fastapi import APIRouter, HTTPException, Header, Depends, Cookie
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
import re
import logging

from database import get_db
from database_models import User
from crud.user import UserRepository
from auth_utils import hash_password, verify_password, create_jwt, decode_jwt
from backend.auth.access import (
    check_role,
    check_subscription,
    effective_subscription_status,
    run_gates,
)
from models.enums import Role
from models.user import RegisterRequest, LoginRequest, UserOut
from utils.security_utils import validate_password_strength

logger = logging.getLogger(__name__)

# Create auth router
auth_router = APIRouter(prefix="/api/auth", tags=["auth"])

# JWT expiration is 7 days = 604800 seconds
COOKIE_MAX_AGE = 604800


def validate_email(email: str) -> bool:
    """Validate email format"""
    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return re.match(pattern, email) is not None


def user_payload(user: User, now: Optional[datetime] = None) -> dict:
    """Public view of a user; the password hash never leaves the server."""
    data = UserOut.model_validate(user).model_dump(by_alias=True, mode="json")
    data["subscriptionStatus"] = effective_subscription_status(user, now)
    return data


def _token_response(user: User, status_code: int = 200) -> JSONResponse:
    token = create_jwt(str(user.id))
    response = JSONResponse(
        status_code=status_code,
        content={
            "ok": True,
            "token": token,
            "user": user_payload(user),
        }
    )
    response.set_cookie(
        key="auth_token",
        value=token,
        httponly=True,
        secure=True,
        samesite="Lax",
        max_age=COOKIE_MAX_AGE
    )
    return response


@auth_router.post("/register")
async def register(request: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """Create a new account with a role; subscription starts inactive"""
    if not validate_email(request.email):
        raise HTTPException(status_code=400, detail="Invalid email format")

    try:
        validate_password_strength(request.password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    user_repo = UserRepository(db)

    existing_user = await user_repo.get_user_by_email(request.email)
    if existing_user:
        raise HTTPException(status_code=400, detail="Email already registered")

    user = await user_repo.create_user({
        "name": request.name.strip(),
        "email": request.email.lower(),
        "phone": request.phone.strip(),
        "role": request.role.value,
        "hashed_password": hash_password(request.password),
    })
    # Committed before the token goes out
    await db.commit()
    logger.info(f"Registered user {user.id} with role {user.role}")

    return _token_response(user, status_code=201)


@auth_router.post("/login")
async def login(request: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Login and get JWT token"""
    user_repo = UserRepository(db)

    user = await user_repo.get_user_by_email(request.email)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if not verify_password(request.password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    return _token_response(user)


@auth_router.post("/logout")
async def logout():
    """Logout and clear auth token cookie"""
    response = JSONResponse(
        content={
            "ok": True,
            "message": "Logged out successfully"
        }
    )
    response.set_cookie(
        key="auth_token",
        value="",
        httponly=True,
        secure=True,
        samesite="Lax",
        max_age=0
    )
    return response


# Dependency for protected routes
async def get_current_user(
    auth_token: Optional[str] = Cookie(None),
    authorization: Optional[str] = Header(None, alias="Authorization"),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Dependency function to get current authenticated user.

    Authentication priority:
    1. Check auth_token cookie first (httpOnly cookie set by login/register)
    2. Fallback to Authorization header (Bearer token) for API consumers
    3. Raise 401 if neither is found
    """
    token = None
    if auth_token:
        token = auth_token
    elif authorization and authorization.startswith("Bearer "):
        token = authorization.replace("Bearer ", "").strip()

    if not token:
        raise HTTPException(status_code=401, detail="Missing authentication token")

    payload = decode_jwt(token)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user_id_str = payload.get("sub")
    if not user_id_str:
        raise HTTPException(status_code=401, detail="Invalid token payload")

    # JWT stores the id as a string
    try:
        user_id = int(user_id_str)
    except (ValueError, TypeError):
        raise HTTPException(status_code=401, detail="Invalid user ID in token")

    user = await UserRepository(db).get_user_by_id(user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    return user


def _enforce(user: User, *gates) -> User:
    result = run_gates(user, *gates)
    if not result.allowed:
        raise HTTPException(status_code=result.status_code, detail=result.reason)
    return user


async def require_active_subscription(user: User = Depends(get_current_user)) -> User:
    """Authenticated user with a paid, unexpired subscription."""
    return _enforce(user, check_subscription)


def require_roles(*roles: Role):
    """
    Full gate: authentication, then subscription, then role membership.

    Usage: user: User = Depends(require_roles(Role.LANDLORD))
    """
    async def dependency(user: User = Depends(get_current_user)) -> User:
        return _enforce(user, check_subscription, lambda u: check_role(u, roles))

    return dependency


@auth_router.get("/me")
async def get_current_user_info(user: User = Depends(get_current_user)):
    """Get current user information from JWT token"""
    return {"ok": True, "user": user_payload(user)}
