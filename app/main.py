import asyncio
import logging
import time
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import TimeoutError as SQLAlchemyTimeoutError

from app import models  # noqa: F401  registers tables on Base.metadata
from app.api.v1.routes import router as api_router
from app.core.config import Settings, get_settings, parse_cors_origins
from app.core.database import Base, build_engine, build_session_factory
from app.core.logging import configure_logging
from app.middlewares.rate_limit import limiter
from app.utils.cache import TTLCache

logger = logging.getLogger(__name__)


async def _sweep_cache(cache: TTLCache, interval_seconds: int) -> None:
    while True:
        await asyncio.sleep(interval_seconds)
        removed = cache.cleanup()
        if removed:
            logger.debug("Cache sweep removed %s expired entries", removed)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    engine = build_engine(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.auto_create_tables:
            # Optional local fallback for fresh environments.
            try:
                Base.metadata.create_all(bind=engine)
            except Exception as exc:
                logger.warning("DB unavailable on startup, skipping table creation: %s", exc)

        sweeper = asyncio.create_task(_sweep_cache(app.state.cache, settings.cache_cleanup_interval_seconds))
        try:
            yield
        finally:
            sweeper.cancel()
            with suppress(asyncio.CancelledError):
                await sweeper
            engine.dispose()

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.cache = TTLCache(default_ttl=settings.price_query_cache_ttl_seconds)
    app.state.started_at = time.time()
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    @app.exception_handler(SQLAlchemyTimeoutError)
    async def sqlalchemy_timeout_handler(request, exc):
        logger.warning("Database pool timeout on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=503,
            content={"detail": "Service is busy. Please retry in a moment."},
        )

    allow_origins = parse_cors_origins(settings.cors_origins or "")
    logger.info("CORS allow_origins=%s", allow_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix=settings.api_v1_prefix)

    @app.get("/")
    def root():
        return {"status": "ok"}

    @app.get("/healthz")
    def healthz():
        # Liveness: process is up.
        return {
            "status": "ok",
            "uptime_seconds": int(max(0, time.time() - app.state.started_at)),
            "service": settings.app_name,
            "cached_entries": len(app.state.cache),
        }

    @app.get("/readyz")
    def readyz():
        # Readiness: database is reachable.
        db = app.state.session_factory()
        try:
            db.execute(text("SELECT 1"))
            return {
                "status": "ready",
                "uptime_seconds": int(max(0, time.time() - app.state.started_at)),
            }
        except Exception as exc:
            logger.warning("Readiness DB check failed: %s", exc)
            return JSONResponse(
                status_code=503,
                content={"status": "not_ready", "detail": "database_unavailable"},
            )
        finally:
            db.close()

    return app


app = create_app()
