"""FastAPI entrypoint for the StudyFlow scheduling backend."""
from fastapi import FastAPI, Request

from app.api.routes.focus import router as focus_router
from app.api.routes.goals import router as goals_router
from app.api.routes.jobs import router as jobs_router
from app.api.routes.planner import router as planner_router
from app.api.routes.recovery import router as recovery_router
from app.api.routes.task import router as task_router
from app.core.config import settings
from app.core.logging import configure_logging
from app.core.middleware import RequestIDMiddleware
from app.observability.client import init_opik
from app.observability.tracing import trace

configure_logging(log_level=settings.log_level)

app = FastAPI(title=settings.app_name, version="0.1.0")
app.add_middleware(RequestIDMiddleware)
app.include_router(goals_router)
app.include_router(task_router)
app.include_router(focus_router)
app.include_router(planner_router)
app.include_router(recovery_router)
app.include_router(jobs_router)


@app.on_event("startup")
async def startup_observability() -> None:
    init_opik()


@app.get("/health", tags=["health"], summary="Readiness check")
async def health_check(request: Request) -> dict[str, str]:
    with trace("http.health_check", metadata={"route": "/health"}, request_id=request.state.request_id):
        return {"status": "ok", "proposer": settings.recovery_proposer}
