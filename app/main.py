

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.api.v1.dependencies import close_emitter
from app.api.v1.endpoints import booking, catalog, suggestions
from app.booking.catalog import CatalogError, get_catalog
from app.db.redis_client import close_redis, health_check

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ============================================================
# LIFESPAN
# ============================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        loaded = get_catalog()
        logger.info(f"✓ Catalog loaded: {len(loaded.search_destinations())} destinations")
    except CatalogError as e:
        logger.error(f"❌ Catalog failed to load: {e}")

    logger.info("🚀 Application startup complete")
    yield

    await close_emitter()
    await close_redis()
    logger.info("✅ Application shutdown complete")


# ============================================================
# FASTAPI APP SETUP
# ============================================================
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="""
    🌴 **Holiday Package Booking API**

    Guides a traveller from trip intent to a priced, paid holiday package.

    ## Features
    * 🧭 Step-by-step booking wizard with per-stage validation
    * 🏝️ Destinations, experiences and hotels catalog
    * 💰 Package pricing with party-size multipliers
    * 💳 Card checkout or bank transfer for large bookings
    * 📬 Milestone notifications to the operations team
    """,
    version=settings.VERSION,
    contact={"name": f"{settings.COMPANY_NAME} Team", "url": settings.FRONTEND_URL},
    license_info={"name": "Proprietary"},
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

# ============================================================
# CORS CONFIG
# ============================================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================
# API ROUTERS
# ============================================================
app.include_router(booking.router, prefix=settings.API_V1_STR)
app.include_router(catalog.router, prefix=settings.API_V1_STR)
app.include_router(suggestions.router, prefix=settings.API_V1_STR)


# ============================================================
# ROOT ENDPOINT
# ============================================================
@app.get("/")
def read_root():
    return {"message": f"Welcome to the {settings.PROJECT_NAME} API"}


@app.get("/health")
async def health():
    """Liveness plus session-store reachability."""
    redis_ok = await health_check() if settings.SESSION_BACKEND == "redis" else None
    return {
        "status": "ok" if redis_ok is not False else "degraded",
        "session_backend": settings.SESSION_BACKEND,
        "redis": redis_ok,
    }
