from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from app.base.config import settings
from app.base.dependencies import verify_api_key
from app.base.error_handlers import register_exception_handlers
from app.base.logging_config import app_logger as logger
from app.db.session import init_db
from app.routers import affinity, availability, bookings, data_gaps, rate_card


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info(f"🚀 {settings.PROJECT_NAME} {settings.APP_VERSION} starting (env={settings.ENVIRONMENT})")
    if not settings.GOOGLE_OAUTH_CONFIGURED:
        logger.warning("[Startup] Google OAuth client not configured; linked calendar tokens cannot be refreshed")
    yield


# --- FastAPI app instance ---
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.APP_VERSION,
    docs_url=None if settings.IS_PROD else "/docs",
    redoc_url=None if settings.IS_PROD else "/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# --- CORS config ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Prometheus metrics ---
if settings.ENABLE_PROMETHEUS:
    Instrumentator().instrument(app).expose(app)


# --- Logging middleware ---
@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(f"📥 {request.method} request to {request.url.path}")
    response = await call_next(request)
    logger.info(f"📤 Response: {response.status_code} for {request.url.path}")
    return response


# --- Exception handlers ---
register_exception_handlers(app)

# --- API Routers ---
secured = [Depends(verify_api_key)]
app.include_router(availability.router, prefix="/availability", dependencies=secured)
app.include_router(bookings.router, prefix="/bookings", dependencies=secured)
app.include_router(affinity.router, prefix="/affinity", dependencies=secured)
app.include_router(data_gaps.router, prefix="/data-gaps", dependencies=secured)
app.include_router(rate_card.router, prefix="/rate-card")


# --- System endpoints ---
@app.get("/health", tags=["System"])
def health_check():
    return {"status": "ok"}


@app.get("/version", tags=["System"])
def version_check():
    return {
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
    }
