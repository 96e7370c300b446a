"""SwipeMatch connection engine API."""

import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from swipematch.api import (
    browse_router,
    engagement_router,
    moderation_router,
    reports_router,
    swipes_router,
)
from swipematch.config import settings
from swipematch.errors import ConnectionEngineError
from swipematch.observability import get_logger, setup_logging

setup_logging(log_level=settings.log_level)
logger = get_logger(__name__)

app = FastAPI(
    title="SwipeMatch Connection Engine",
    description="Swipe matching, discovery ranking and relationship health",
    version="0.1.0",
)

app.include_router(swipes_router)
app.include_router(browse_router)
app.include_router(engagement_router)
app.include_router(reports_router)
app.include_router(moderation_router)


@app.exception_handler(ConnectionEngineError)
async def engine_error_handler(request: Request, exc: ConnectionEngineError) -> JSONResponse:
    """Map engine errors to their HTTP status."""
    logger.info(
        "request_rejected",
        path=request.url.path,
        error=type(exc).__name__,
        message=exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000

    logger.info(
        "http_request_completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(process_time, 2),
    )
    return response


@app.get("/healthz")
async def healthz() -> dict:
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
