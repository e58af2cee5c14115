"""Main FastAPI application for the Taskboard backend."""
from fastapi import FastAPI, Request

from taskboard.api.errors import register_error_handlers
from taskboard.api.routes.auth import router as auth_router
from taskboard.api.routes.comment import router as comment_router
from taskboard.api.routes.task import router as task_router
from taskboard.core.config import settings
from taskboard.core.logging import configure_logging
from taskboard.core.middleware import RequestIDMiddleware
from taskboard.observability.client import init_opik, reset_opik
from taskboard.observability.tracing import trace

configure_logging(log_level=settings.log_level)

app = FastAPI(title=settings.app_name, version="0.1.0", debug=settings.debug)
app.add_middleware(RequestIDMiddleware)
register_error_handlers(app)
app.include_router(auth_router)
app.include_router(task_router)
app.include_router(comment_router)


@app.on_event("startup")
async def startup_observability() -> None:
    """Initialize observability backends after the event loop starts."""
    init_opik()


@app.on_event("shutdown")
async def shutdown_observability() -> None:
    reset_opik()


@app.get("/health", tags=["health"], summary="Readiness probe")
async def health_check(request: Request) -> dict[str, str]:
    """Return a simple status payload so automation can probe the API."""
    with trace("http.health_check", metadata={"route": "/health"}, request_id=request.state.request_id):
        return {"status": "ok"}
