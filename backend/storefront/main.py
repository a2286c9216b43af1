"""
Storefront Backend
FastAPI application entry point

- Rate limiting with SlowAPI (checkout has its own tighter limit)
- Domain errors rendered as {"success": false, "message": ..., ...}
- Error sanitization middleware for anything unhandled
- Health endpoint with DB ping
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.routes import admin_orders, cart, orders, products
from storefront.core.config import settings
from storefront.core.database import engine, get_db
from storefront.core.error_handler import ErrorSanitizationMiddleware, storefront_error_handler
from storefront.core.exceptions import StorefrontError
from storefront.core.rate_limit import limiter, rate_limit_exceeded_handler
from storefront.services.notifications import get_notification_service

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info(f"{settings.APP_NAME} started (environment={settings.ENVIRONMENT})")
    if not settings.SENDGRID_API_KEY:
        logger.warning("SENDGRID_API_KEY not set - order emails will be skipped")

    yield

    # Close HTTP clients to prevent connection leaks
    await get_notification_service().provider.close()
    await engine.dispose()
    logger.info(f"{settings.APP_NAME} shutting down")


app = FastAPI(
    lifespan=lifespan,
    title=f"{settings.APP_NAME} API",
    description="Order intake, inventory and catalog administration for the storefront.",
    version=settings.API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "Health", "description": "Health check endpoints"},
        {"name": "Products", "description": "Product catalog and variant management"},
        {"name": "Cart", "description": "Shopping cart operations"},
        {"name": "Orders", "description": "Checkout and order history"},
        {"name": "Admin - Orders", "description": "Order fulfillment and status management"},
    ],
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Domain errors
app.add_exception_handler(StorefrontError, storefront_error_handler)

# Error sanitization (catches unhandled exceptions)
app.add_middleware(ErrorSanitizationMiddleware)

# CORS - adjust origins for production
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(products.router, prefix="/api/products", tags=["Products"])
app.include_router(products.variants_router, prefix="/api/variants", tags=["Products"])
app.include_router(cart.router, prefix="/api/cart", tags=["Cart"])
app.include_router(orders.router, prefix="/api/orders", tags=["Orders"])
app.include_router(admin_orders.router, prefix="/api/admin/orders", tags=["Admin - Orders"])


@app.get("/", tags=["Health"])
async def root():
    return {
        "message": f"{settings.APP_NAME} API",
        "version": settings.API_VERSION,
        "status": "operational"
    }


@app.get("/health", tags=["Health"])
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check with an actual DB ping.
    Returns 503 if database is unreachable.
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    try:
        await db.execute(text("SELECT 1"))
        health_status["database"] = "connected"
    except Exception as e:
        logger.error(f"Health check DB ping failed: {e}")
        health_status["status"] = "unhealthy"
        health_status["database"] = "disconnected"
        return JSONResponse(status_code=503, content=health_status)

    return health_status
