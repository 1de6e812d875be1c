# main.py
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.status import HTTP_400_BAD_REQUEST, HTTP_500_INTERNAL_SERVER_ERROR

from config import get_settings
from routers import tasks
from storage import TaskStore, open_store

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)


# --- App Lifecycle (Lifespan) ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Opens the configured task store on startup unless one was handed to create_app.
    """
    logger.info("Application starting up...")
    if app.state.store is None:
        app.state.store = open_store(get_settings().tasks_file)
    store = app.state.store
    logger.info("Serving %d tasks (persistence: %s)", len(store), store.file_path or "disabled")

    yield

    logger.info("Application shutting down...")


# --- FastAPI App Initialization ---
def create_app(store: Optional[TaskStore] = None) -> FastAPI:
    app = FastAPI(
        title="Task Service",
        description="CRUD over task records kept in memory and persisted to a JSON file.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.store = store

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.perf_counter()
        response = await call_next(request)
        elapsed = (time.perf_counter() - start_time) * 1000
        logger.info(
            "%s %s -> %s in %.2f ms",
            request.method,
            request.url.path,
            response.status_code,
            elapsed,
        )
        return response

    # Body validation failures are answered with 400.
    @app.exception_handler(RequestValidationError)
    async def invalid_body_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.debug("Rejected body on %s: %s", request.url.path, exc.errors())
        return JSONResponse(status_code=HTTP_400_BAD_REQUEST, content={"detail": "invalid body"})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception on path %s", request.url.path)
        return JSONResponse(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error", "path": request.url.path},
        )

    @app.get("/healthz", response_class=PlainTextResponse)
    async def health_check():
        """Health check endpoint for uptime monitoring."""
        return "ok"

    # --- Include API Routers ---
    app.include_router(tasks.router)

    return app


app = create_app()

# --- Main Entry Point ---
if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port)
