import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app import db
from app.config import settings
from app.goals import schema
from app.goals.errors import GoalsError
from app.goals.router import categories_router
from app.goals.router import router as goals_router
from app.log import configure_logging

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.auto_create_schema:
        await db.apply_schema(schema.STATEMENTS)
    yield
    await db.engine.dispose()


app = FastAPI(title="GoalKernel", version="0.1.0", lifespan=lifespan)
app.include_router(goals_router)
app.include_router(categories_router)


@app.exception_handler(GoalsError)
async def goals_error_handler(request: Request, exc: GoalsError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.http_status, content={"error": exc.to_dict()})


@app.get("/")
async def root() -> dict:
    return {
        "status": "ok",
        "docs": "/docs",
        "health": "/health",
        "goals": {
            "list": "/goals",
            "detail": "/goals/{id}",
            "recompute": "/goals/{id}/recompute",
            "activities": "/goals/{id}/activities",
            "toggle": "/goals/{id}/activities/{activity_id}/toggle",
        },
        "categories": "/categories",
    }


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
