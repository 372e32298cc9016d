from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from deepsearch import __version__
from deepsearch.api.routes.chat import router as chat_router
from deepsearch.api.routes.chats import router as chats_router
from deepsearch.api.routes.health import router as health_router
from deepsearch.utils.logger import api_logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: start config watcher in the main event loop
    if hasattr(app.state, "config_manager"):
        from deepsearch.api.deps import invalidate_orchestrator

        def on_config_change(new_config):
            api_logger.info(
                "Configuration changed, invalidating cached orchestrator",
                changed_keys=list(new_config.keys()),
            )
            invalidate_orchestrator()

        app.state.config_manager.register_change_callback(on_config_change)
        await app.state.config_manager.start_watching()
        api_logger.info("Config file watcher started with change callback")

    yield

    try:
        api_logger.info("Starting shutdown cleanup")
        from deepsearch.api.deps import dispose_store

        if hasattr(app.state, "config_manager"):
            try:
                await app.state.config_manager.stop_watching()
                api_logger.info("Config file watcher stopped")
            except asyncio.CancelledError:
                api_logger.debug("Config watcher stop cancelled, continuing cleanup")

        dispose_store()
        api_logger.info("Shutdown completed")
    except Exception as e:
        api_logger.error("Shutdown cleanup failed", exc_info=True, error=str(e))


def create_app() -> FastAPI:
    app = FastAPI(
        title="DeepSearch Server",
        description="Web-search chat agent with streamed, persisted conversations",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(chat_router)
    app.include_router(chats_router)
    app.include_router(health_router)

    @app.exception_handler(RequestValidationError)
    async def bad_request(request: Request, exc: RequestValidationError):
        api_logger.info(
            "Rejected invalid request body",
            path=request.url.path,
            error_count=len(exc.errors()),
        )
        return JSONResponse(
            status_code=400,
            content={"detail": jsonable_encoder(exc.errors())},
        )

    return app
