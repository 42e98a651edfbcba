import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Import all models to ensure they're registered with SQLAlchemy Base
from . import (
    models,  # noqa: F401
    models_appointments,  # noqa: F401
    models_billing,  # noqa: F401
    models_calendar,  # noqa: F401
    models_envelopes,  # noqa: F401
    models_templates,  # noqa: F401
)
from .database import Base, engine
from .domain.appointments.public_router import router as booking_router
from .domain.appointments.router import router as appointments_router
from .domain.billing.invoices_router import router as invoices_router
from .domain.billing.payments_router import router as payments_router
from .domain.billing.proposals_router import public_router as public_proposals_router
from .domain.billing.proposals_router import router as proposals_router
from .domain.clients.router import router as clients_router
from .domain.envelopes.public_router import router as signing_router
from .domain.envelopes.router import router as envelopes_router
from .domain.galleries.router import assets_router
from .domain.galleries.router import public_router as public_galleries_router
from .domain.galleries.router import router as galleries_router
from .domain.inquiries.router import public_router as public_inquiries_router
from .domain.inquiries.router import router as inquiries_router
from .domain.templates.router import clauses_router, contract_templates_router, proposal_templates_router
from .routes.auth import router as auth_router
from .routes.oauth import router as oauth_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")
            raise

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="StudioDesk API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render errors as {success: false, message, ...extras}"""
    if isinstance(exc.detail, dict):
        body = {"success": False, **exc.detail}
        body.setdefault("message", "Request failed")
    else:
        body = {"success": False, "message": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(body), headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg"),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content={"success": False, "message": "Validation failed", "errors": errors},
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    try:
        response = await call_next(request)
        return response
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise


# CORS Configuration
# Credentials (session cookie) require explicit origins
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:3000,http://localhost:5173",
).split(",")

logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    expose_headers=["*"],
)

# Routes
app.include_router(auth_router)
app.include_router(oauth_router)
app.include_router(clients_router)
app.include_router(public_inquiries_router)
app.include_router(inquiries_router)
app.include_router(appointments_router)
app.include_router(booking_router)
app.include_router(envelopes_router)
app.include_router(signing_router)
app.include_router(proposals_router)
app.include_router(public_proposals_router)
app.include_router(invoices_router)
app.include_router(payments_router)
app.include_router(proposal_templates_router)
app.include_router(contract_templates_router)
app.include_router(clauses_router)
app.include_router(assets_router)
app.include_router(galleries_router)
app.include_router(public_galleries_router)


@app.get("/")
def root():
    return {"message": "StudioDesk API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}
