"""FastAPI application main module.

This module defines the FastAPI application instance, the error handler that
turns VecRec exceptions into JSON responses, and the health endpoints. It is
also the entry point for running the API server.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src import __version__
from src.api.logging_config import RequestLoggingMiddleware, setup_logging
from src.api.metrics import metrics_service
from src.api.routes import recommend
from src.config import get_settings
from src.recommender.exceptions import VecRecException

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and try to load the model before serving."""
    settings = get_settings()
    setup_logging(settings.log_level)
    try:
        recommend.load_model_if_needed()
    except VecRecException as e:
        # Requests will retry the load; /status reports model_loaded=false
        logger.warning(f"Model not loaded at startup: {e.message}")
    yield


# Create FastAPI application instance
app = FastAPI(
    title="VecRec API",
    description="Real-time recommendations from implicit-feedback item vectors",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)

# Include routers
app.include_router(recommend.router)


@app.exception_handler(VecRecException)
async def vecrec_exception_handler(request: Request, exc: VecRecException) -> JSONResponse:
    """Render VecRec errors as ``{"error", "message", "details"}``."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        exc.message,
        extra={
            "path": str(request.url.path),
            "error_type": type(exc).__name__,
            "status_code": exc.status_code,
        },
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": type(exc).__name__,
            "message": exc.message,
            "details": exc.details,
        },
    )


@app.get("/ping")
def ping() -> Dict[str, str]:
    """Health check endpoint.

    Example:
        >>> response = client.get("/ping")
        >>> assert response.json() == {"status": "ok"}
    """
    return {"status": "ok"}


@app.get("/status")
def status() -> Dict[str, Any]:
    """Report whether a model is loaded, its size and request metrics."""
    model_status = recommend.get_model_status()
    model_status["metrics"] = metrics_service.get_metrics()
    return model_status


if __name__ == "__main__":
    import sys
    from pathlib import Path

    import uvicorn

    # Add project root to Python path for imports
    project_root = Path(__file__).parent.parent.parent
    sys.path.insert(0, str(project_root))

    settings = get_settings()
    uvicorn.run(
        "src.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
    )
