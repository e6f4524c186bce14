"""
OrderDesk - Main FastAPI Application.

REST API for the order lifecycle, correlative numbering, billing and
quantity-tier pricing.
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import time

from api.dependencies import close_document_store, init_document_store
from api.errors import order_desk_error_handler
from api.routes import billing, documents, health, orders, pricing
from orderdesk import __version__
from orderdesk.domain.exceptions import OrderDeskError
from orderdesk.infrastructure.logging import LOG_FORMAT, configure_logging
from orderdesk.settings import get_app_settings


# Setup logging
logging.basicConfig(
    level=configure_logging(get_app_settings().logging.level),
    format=LOG_FORMAT,
)
logger = logging.getLogger(__name__)


# =============================================================================
# CREATE FASTAPI APP
# =============================================================================

app = FastAPI(
    title="OrderDesk - Order Lifecycle API",
    description="""
    Retail/wholesale order desk.

    Features:
    - Correlative order numbers (ORD-001, ORD-002, ...)
    - Order lifecycle with a self-repairing status index
    - Invoice derivation, payments and collection follow-ups
    - Quantity-tier pricing quotes
    - RUC / DNI lookups
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


# =============================================================================
# CORS MIDDLEWARE
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)


# =============================================================================
# REQUEST LOGGING MIDDLEWARE
# =============================================================================

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests with timing."""
    start_time = time.time()

    logger.info(f"→ {request.method} {request.url.path}")

    response = await call_next(request)

    duration = time.time() - start_time
    logger.info(
        f"← {request.method} {request.url.path} "
        f"[{response.status_code}] ({duration:.3f}s)"
    )

    return response


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

app.add_exception_handler(OrderDeskError, order_desk_error_handler)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all uncaught exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc),
            "retry_safe": False,
            "repair_pending": False,
            "path": request.url.path,
        }
    )


# =============================================================================
# STARTUP/SHUTDOWN EVENTS
# =============================================================================

@app.on_event("startup")
async def startup_event():
    """Run on application startup."""
    logger.info("OrderDesk API starting up...")
    await init_document_store()
    logger.info("Swagger UI available at: /docs")


@app.on_event("shutdown")
async def shutdown_event():
    """Run on application shutdown."""
    await close_document_store()
    logger.info("OrderDesk API shutting down...")


# =============================================================================
# INCLUDE ROUTERS
# =============================================================================

app.include_router(health.router, tags=["Health"])
app.include_router(orders.router, prefix="/api/v1/orders", tags=["Orders"])
app.include_router(billing.router, prefix="/api/v1/billing", tags=["Billing"])
app.include_router(pricing.router, prefix="/api/v1/pricing", tags=["Pricing"])
app.include_router(documents.router, prefix="/api/v1/documents", tags=["Documents"])


# =============================================================================
# ROOT ENDPOINT
# =============================================================================

@app.get("/", tags=["Root"])
async def root():
    """API root endpoint."""
    return {
        "message": "OrderDesk - Order Lifecycle API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }
