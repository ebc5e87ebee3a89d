"""
House renting backend - subscription-gated rental listings
Stripe for subscriptions, local disk for uploaded media
"""

from contextlib import asynccontextmanager
from pathlib import Path
import logging
import traceback

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from auth import auth_router
from routers.property_router import property_router
from routers.subscription_router import subscription_router
from routers.upload_router import upload_router
from backend.utils.errors import register_error_handlers
from database import init_db
from config import settings, UPLOAD_DIR

# Logging setup - write ALL events to /logs/app.log
LOGS_DIR = Path("./logs")
LOGS_DIR.mkdir(exist_ok=True)
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(LOGS_DIR / "app.log"),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)

# Keys the service can start without, but which disable features
REQUIRED_KEY_MAP = {
    "JWT_SECRET_KEY": settings.jwt_secret_key,
    "STRIPE_SECRET_KEY": settings.stripe_secret_key,
    "STRIPE_WEBHOOK_SECRET": settings.stripe_webhook_secret,
}


def check_env_keys() -> list[str]:
    """Log missing environment variables (non-fatal)"""
    missing = [key for key, value in REQUIRED_KEY_MAP.items() if not value]
    if missing:
        logger.warning(f"Startup check: Missing environment variables: {', '.join(missing)}")
    else:
        logger.info("Startup check: All critical environment variables are set")
    return missing


@asynccontextmanager
async def lifespan(app: FastAPI):
    check_env_keys()
    try:
        await init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise
    yield


app = FastAPI(title="House Renting API", lifespan=lifespan)


# Uncaught exception middleware - logs all unhandled exceptions and returns 500
class UncaughtExceptionMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(f"Uncaught exception: {e}\n{traceback.format_exc()}")
            return JSONResponse(
                status_code=500,
                content={"ok": False, "error": "Internal Server Error"}
            )


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses: X-Frame-Options, X-Content-Type-Options, HSTS in production"""
    async def dispatch(self, request, call_next):
        response = await call_next(request)

        if settings.env and settings.env.lower() == "production":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        response.headers["X-Frame-Options"] = "DENY"
        # Uploaded files are served with their stored type only
        response.headers["X-Content-Type-Options"] = "nosniff"

        return response


app.add_middleware(UncaughtExceptionMiddleware)
app.add_middleware(SecurityHeadersMiddleware)

# CORS MUST be near the bottom
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Serve uploaded files
UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=str(UPLOAD_DIR)), name="uploads")

app.include_router(auth_router)
app.include_router(property_router)
app.include_router(subscription_router)
app.include_router(upload_router)


@app.get("/api/health")
async def health():
    return {"ok": True}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
