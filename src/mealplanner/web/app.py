"""
Meal Planner - FastAPI application.

Uses Supabase Auth for authentication (bearer token). Generation runs in
background tasks owned by the launcher; clients poll for status.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mealplanner import __version__
from mealplanner.config import settings
from mealplanner.errors import MealPlannerError
from mealplanner.web.routes import router as meal_generation_router

logger = logging.getLogger(__name__)

app = FastAPI(title="Meal Planner", version=__version__)


@app.on_event("startup")
async def startup_event():
    """Log configuration on startup."""
    from mealplanner.observability import enable_prompt_logging

    if settings.mealplanner_log_prompts:
        enable_prompt_logging(True)
    logger.info("Meal Planner starting up...")
    logger.info(f"  Environment: {settings.mealplanner_env}")
    logger.info(f"  Job store: {settings.resolved_store_backend}")
    logger.info(f"  Mock generator: {settings.use_mock_generator}")
    logger.info(f"  Prompt file logging: {settings.mealplanner_log_prompts}")


@app.on_event("shutdown")
async def shutdown_event():
    """Give in-flight generation jobs a chance to finish."""
    from mealplanner.generation.launcher import get_launcher

    await get_launcher().shutdown()


# CORS middleware for the browser frontend dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(MealPlannerError)
async def meal_planner_error_handler(request: Request, exc: MealPlannerError):
    """Map domain errors to their HTTP status and a JSON body."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(meal_generation_router, prefix="/api")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}
