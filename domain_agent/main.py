# domain_agent/main.py

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.middleware import SlowAPIMiddleware

from .config import settings
from .database import check_database_connection, dispose_engine
from .dependencies import get_notifier
from .error_handlers import register_exception_handlers
from .logging_config import get_logger, setup_logging
from .middleware import register_middleware
from .rate_limit import limiter

# Import routers
from .ai.router import router as ai_router
from .auth.router import router as auth_router
from .domains.router import router as domains_router
from .payments.router import router as payments_router
from .users.router import router as users_router

APP_VERSION = "1.0.0"

logger = get_logger(__name__)


def _redact(url):
    return url.split("@")[-1] if url else "Not configured"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events
    """
    # ========================================================================
    # STARTUP
    # ========================================================================
    logger.info("=" * 80)
    logger.info("Starting Domain Agent API")
    logger.info("=" * 80)

    logger.info(
        "Application configuration",
        extra={
            "extra_data": {
                "environment": settings.ENVIRONMENT,
                "log_level": settings.LOG_LEVEL,
                "database": _redact(settings.DATABASE_URL),
                "redis": _redact(settings.REDIS_URL),
                "namecheap_sandbox": settings.NAMECHEAP_SANDBOX,
                "gemini_model": settings.GEMINI_LLM_MODEL,
            }
        }
    )

    if await check_database_connection():
        logger.info("✓ Database connection successful")
    else:
        logger.error("✗ Database connection failed")
        raise RuntimeError("Database connection failed")

    if settings.REDIS_URL:
        import redis.asyncio as aioredis
        from redis.exceptions import RedisError

        redis_client = aioredis.from_url(settings.REDIS_URL)
        try:
            await redis_client.ping()
            logger.info("✓ Redis connection successful")
        except RedisError as e:
            logger.warning(f"⚠ Redis connection failed: {e}")
        finally:
            await redis_client.aclose()

    logger.info("=" * 80)
    logger.info("🚀 Domain Agent API is ready to accept requests")
    logger.info("=" * 80)

    yield

    # ========================================================================
    # SHUTDOWN
    # ========================================================================
    logger.info("Shutting down Domain Agent API")
    await get_notifier().drain()
    await dispose_engine()


# ============================================================================
# CREATE FASTAPI APP
# ============================================================================

# Setup logging BEFORE creating the app
setup_logging()

app = FastAPI(
    title="Domain Agent API",
    description="Domain search, purchase and management with AI-assisted naming",
    version=APP_VERSION,
    lifespan=lifespan,
)

# ============================================================================
# REGISTER MIDDLEWARE
# ============================================================================
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

register_middleware(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================================
# REGISTER EXCEPTION HANDLERS
# ============================================================================
register_exception_handlers(app)

# ============================================================================
# REGISTER ROUTERS
# ============================================================================

app.include_router(auth_router, prefix='/api')
app.include_router(domains_router, prefix='/api')
app.include_router(payments_router, prefix='/api')
app.include_router(ai_router, prefix='/api')
app.include_router(users_router, prefix='/api')

logger.info("All routers registered")

# ============================================================================
# HEALTH CHECK ENDPOINT
# ============================================================================

@app.get("/health")
@limiter.exempt
async def health_check():
    """Liveness plus database reachability, for load balancers"""
    database_ok = await check_database_connection()
    return JSONResponse(
        status_code=200 if database_ok else 503,
        content={
            "status": "healthy" if database_ok else "degraded",
            "database": "connected" if database_ok else "unavailable",
            "environment": settings.ENVIRONMENT,
            "version": APP_VERSION,
        },
    )


@app.get("/")
@limiter.exempt
async def root():
    return {
        "message": "Domain Agent API",
        "version": APP_VERSION,
        "docs": "/docs"
    }
