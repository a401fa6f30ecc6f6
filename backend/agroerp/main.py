import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agroerp.config import Settings
from agroerp.core.cache import configure_report_cache
from agroerp.core.exceptions import register_exception_handlers
from agroerp.database import Base, build_engine, build_session_factory

import agroerp.models  # noqa: F401


@asynccontextmanager
async def lifespan(application: FastAPI):
    settings = application.state.settings

    # Ensure the SQLite directory exists before DB connection
    if settings.is_sqlite:
        db_path = settings.database_url.split("///")[-1]
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    engine = build_engine(settings.database_url)

    # Auto-create tables for SQLite in development
    if settings.is_sqlite:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    application.state.engine = engine
    application.state.session_factory = build_session_factory(engine)

    yield

    await engine.dispose()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    configure_report_cache(settings.report_cache_ttl_seconds)

    fastapi_app = FastAPI(
        title="AgroERP",
        description="Farm management: periods, works and inventory valuation",
        version="0.1.0",
        lifespan=lifespan,
    )
    fastapi_app.state.settings = settings

    # CORS
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routers
    from agroerp.auth.router import router as auth_router
    from agroerp.gestiones.router import router as gestiones_router
    from agroerp.valuation.router import router as valuation_router
    from agroerp.works.router import router as works_router
    from agroerp.audit.router import router as audit_router

    fastapi_app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
    fastapi_app.include_router(gestiones_router, prefix="/api/gestiones", tags=["gestiones"])
    fastapi_app.include_router(valuation_router, prefix="/api/valuations", tags=["valuations"])
    fastapi_app.include_router(works_router, prefix="/api/works", tags=["works"])
    fastapi_app.include_router(audit_router, prefix="/api/audit", tags=["audit"])

    # System endpoints
    @fastapi_app.get("/api/system/health")
    async def health():
        return {"data": {"status": "healthy"}}

    # Register exception handlers
    register_exception_handlers(fastapi_app)

    return fastapi_app


app = create_app()
