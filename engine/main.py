"""Entry point for the local storage engine API."""

import time
import uuid

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from common.exceptions import PathNotFoundError, StorageError
from common.logging_config import setup_logging
from engine.config import ENGINE_HOST, ENGINE_PORT
from engine.routes.asset_routes import router as asset_router
from engine.routes.snapshot_routes import router as snapshot_router
from engine.schemas.common import ErrorResponse
from engine.service_locator import get_engine, set_engine
from engine.storage_engine import build_engine_from_config

logger = setup_logging('engine')

app = FastAPI(
    title="NekoTick Storage Engine",
    description="Local-first persistence for application snapshots and image assets",
    version="1.0.0"
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Middleware to log all HTTP requests and responses.
    """
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    start_time = time.time()

    logger.info(
        f"Request started: {request.method} {request.url.path} [request_id={request_id}]"
    )

    response = await call_next(request)

    duration = time.time() - start_time

    logger.info(
        f"Request completed: {request.method} {request.url.path} "
        f"status={response.status_code} duration={duration:.3f}s [request_id={request_id}]"
    )

    response.headers["X-Request-ID"] = request_id

    return response


@app.on_event("startup")
async def startup_event():
    """
    Build the storage engine, sweep temp files and load asset indices.
    """
    logger.info("Storage engine API starting up...")

    engine = build_engine_from_config()
    await engine.startup()
    set_engine(engine)


@app.on_event("shutdown")
async def shutdown_event():
    """
    Flush the pending snapshot and release cached blobs.
    """
    logger.info("Storage engine API shutting down...")

    try:
        engine = get_engine()
    except RuntimeError:
        return

    await engine.shutdown()
    set_engine(None)


@app.exception_handler(PathNotFoundError)
async def path_not_found_handler(request: Request, exc: PathNotFoundError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(
        f"Path not found error: {exc} [request_id={request_id}] path={request.url.path}"
    )
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content=ErrorResponse(detail=str(exc), code="PATH_NOT_FOUND").model_dump()
    )


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(
        f"Storage error: {exc} [request_id={request_id}] path={request.url.path}",
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(detail=str(exc), code="STORAGE_ERROR").model_dump()
    )


app.include_router(asset_router)
app.include_router(snapshot_router)


@app.get("/")
async def root():
    """
    Root endpoint for health check.
    """
    engine = get_engine()
    return {
        "message": "NekoTick Storage Engine API",
        "status": "running",
        "platform": engine.backend.platform,
        "snapshot_state": engine.snapshots.state.value,
        "cached_blobs": len(engine.blob_cache),
    }


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    uvicorn.run(
        "engine.main:app",
        host=ENGINE_HOST,
        port=ENGINE_PORT,
    )


if __name__ == "__main__":
    main()
