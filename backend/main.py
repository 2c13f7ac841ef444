"""
Studio Booking API — FastAPI Application

Payment webhooks (Midtrans, Xendit), checkout creation, the sign-up
duplicate check, class-completion and reminder crons, transactional email,
and schedule import from Google Sheets.
"""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi import HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import Settings, settings
from domain.responses import error_body
from routes import admin, cron, emails, health, payments, profiles, webhooks
from services.email_service import EmailClient
from services.midtrans_service import MidtransClient
from services.sheets_service import SheetsClient
from services.xendit_service import XenditClient

# ── Logging ─────────────────────────────────────────────────────────

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ── Clients ─────────────────────────────────────────────────────────

def build_clients(app: FastAPI, config: Settings) -> None:
    """Construct the outbound clients once and attach them to app.state."""
    app.state.midtrans = MidtransClient(
        server_key=config.midtrans_server_key,
        client_key=config.midtrans_client_key,
        is_production=config.midtrans_is_production,
        app_url=config.app_url,
    )
    app.state.xendit = XenditClient(
        secret_key=config.xendit_secret_key,
        webhook_token=config.xendit_webhook_token,
        app_url=config.app_url,
        studio_name=config.studio_name,
    )
    app.state.email = EmailClient(
        api_key=config.resend_api_key,
        from_email=config.resend_from_email,
        app_url=config.app_url,
        studio_name=config.studio_name,
    )
    app.state.sheets = SheetsClient(
        service_account_email=config.google_service_account_email,
        private_key_pem=config.google_private_key_pem,
    )
    logger.info(
        f"Clients ready (midtrans={'production' if config.midtrans_is_production else 'sandbox'})"
    )


# ── Lifespan ────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: validate settings, create DB tables, build clients."""
    # Ensure data/ directory exists for SQLite
    os.makedirs("data", exist_ok=True)

    settings.validate_production_settings()

    from database import init_db
    await init_db()
    logger.info("Database initialized")

    build_clients(app, settings)

    yield  # app runs here

    from services.async_executor import shutdown_executor
    shutdown_executor()

    logger.info("Shutting down")


# ── App Factory ─────────────────────────────────────────────────────

app = FastAPI(
    title="Studio Booking API",
    description="Payments, reminders and schedule sync for a class-booking studio",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routes ──────────────────────────────────────────────────────────

app.include_router(health.router)
app.include_router(profiles.router)
app.include_router(payments.router)
app.include_router(webhooks.router)
app.include_router(cron.router)
app.include_router(emails.router)
app.include_router(admin.router)


# ── Exception Handlers ──────────────────────────────────────────────


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """
    Catch-all for unhandled exceptions.

    Never return raw exception details to clients; the full traceback is
    logged server-side. Webhook callers see a 500 and retry.
    """
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=error_body("internal_server_error", "Internal server error"),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    """
    Standardize HTTPException responses for frontend consumers.

    Keeps the original HTTP status code, but wraps the payload.
    """
    headers = getattr(exc, "headers", None)

    # DomainError carries structured error info
    if hasattr(exc, "message") and hasattr(exc, "details"):
        error_code = exc.__class__.__name__.replace("Error", "").lower()
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(error_code, exc.message, exc.details),
            headers=headers,
        )

    detail = exc.detail
    message = detail if isinstance(detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body("http_error", message, detail if not isinstance(detail, str) else None),
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content=error_body(
            "validation_error",
            "Request validation failed",
            jsonable_encoder(exc.errors()),
        ),
    )


# ── Entrypoint ──────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")
