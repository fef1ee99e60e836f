import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, settings as default_settings
from .dependencies import EngineState, build_engine_state
from .exceptions import WelfareEngineError
from .routes.eligibility import router as eligibility_router
from .routes.schemes import router as schemes_router
from .routes.sessions import router as sessions_router
from .seed import seed_catalogue

# Configure logging
logging.basicConfig(level=default_settings.log_level.upper())
logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, state: Optional[EngineState] = None) -> FastAPI:
    """Build the API around one catalogue, session store and engine"""
    settings = settings or default_settings
    state = state or build_engine_state(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        await state.store.connect()
        if settings.seed_sample_schemes:
            await seed_catalogue(state.catalogue)
        sweeper = asyncio.create_task(
            state.sessions.run_sweeper(settings.session_sweep_interval_seconds, state.idle_threshold)
        )
        logger.info(f"{settings.app_name} started with {settings.storage_backend} storage")
        yield
        # Shutdown
        sweeper.cancel()
        try:
            await sweeper
        except asyncio.CancelledError:
            pass
        await state.store.close()
        logger.info(f"{settings.app_name} stopped")

    app = FastAPI(
        title=settings.app_name,
        description="Eligibility assessment and session context engine for welfare scheme discovery",
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan
    )
    app.state.engine_state = state

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(WelfareEngineError)
    async def engine_error_handler(request: Request, exc: WelfareEngineError):
        if exc.status_code >= 500:
            logger.error(f"{exc.code} on {request.url.path}: {exc.message}")
        content = {"error": exc.code, "detail": exc.message}
        current_version = getattr(exc, "current_version", None)
        if current_version is not None:
            content["current_version"] = current_version
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.get("/")
    async def root():
        return {"message": f"{settings.app_name} is running", "version": settings.app_version}

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        storage_ok = await state.store.health_check()
        return {
            "status": "healthy" if storage_ok else "degraded",
            "storage": settings.storage_backend,
            "active_sessions": len(state.sessions)
        }

    app.include_router(schemes_router, prefix=settings.api_prefix)
    app.include_router(sessions_router, prefix=settings.api_prefix)
    app.include_router(eligibility_router, prefix=settings.api_prefix)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("welfare_engine.main:app", host="0.0.0.0", port=8000, reload=True)
