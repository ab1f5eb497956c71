import os
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .config import Settings
from .db import Base, create_db_engine, create_session_factory
from .logging import setup_logging, RequestIdMiddleware, structlog
from .models import models  # noqa: F401
from .services.realtime import ChangeHub
from .auth.router import router as auth_router
from .routes.hindrances import router as hindrances_router
from .routes.project_records import router as project_records_router
from .routes.concrete import router as concrete_router
from .routes.manpower import router as manpower_router
from .routes.cashflow import router as cashflow_router
from .routes.site import router as site_router
from .routes.dashboard import router as dashboard_router
from .routes.realtime import router as realtime_router


logger = structlog.get_logger(__name__)


def _db_error_message(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()
    setup_logging(settings.log_level)
    app = FastAPI(title=settings.app_name)

    # Shared state: one engine, session factory and change hub per app
    engine = create_db_engine(settings.database_url)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.hub = ChangeHub()

    # Middlewares
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        message = _db_error_message(exc)
        logger.warning("db_integrity_error", path=request.url.path, error=message)
        return JSONResponse(status_code=409, content={"detail": message})

    @app.exception_handler(SQLAlchemyError)
    async def db_error_handler(request: Request, exc: SQLAlchemyError):
        message = _db_error_message(exc)
        logger.error("db_error", path=request.url.path, error=message)
        return JSONResponse(status_code=500, content={"detail": message})

    # Routers
    app.include_router(auth_router)
    app.include_router(hindrances_router)
    app.include_router(project_records_router)
    app.include_router(concrete_router)
    app.include_router(manpower_router)
    app.include_router(cashflow_router)
    app.include_router(site_router)
    app.include_router(dashboard_router)
    app.include_router(realtime_router)

    # Metrics
    if settings.enable_metrics:
        Instrumentator().instrument(app).expose(app)

    @app.get("/health")
    def health():
        db_ok = True
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.error("health_db_unreachable", error=str(e))
            db_ok = False
        return {"status": "ok" if db_ok else "degraded", "app": settings.app_name, "database": db_ok}

    @app.on_event("startup")
    def _startup():
        # Ensure local SQLite directory exists
        if settings.database_url.startswith("sqlite:///./"):
            os.makedirs(os.path.dirname(settings.database_url[len("sqlite:///"):]) or ".", exist_ok=True)
        if settings.auto_create_db:
            Base.metadata.create_all(bind=engine)
            logger.info("startup_tables_ready", tables=len(Base.metadata.tables))
        logger.info("startup", app=settings.app_name, environment=settings.environment)

    @app.on_event("shutdown")
    def _shutdown():
        engine.dispose()
        logger.info("shutdown")

    return app


app = create_app()
