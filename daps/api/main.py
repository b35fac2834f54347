"""
Daps API Server

FastAPI application for the athlete offer marketplace: athletes and their game
schedules, fan offers, and admin review.

Run locally with:
    uvicorn daps.api.main:app --reload
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
import logging
import os
import uvicorn
from slowapi import _rate_limit_exceeded_handler  # type: ignore
from slowapi.errors import RateLimitExceeded  # type: ignore

from daps.api.routes import router, limiter as routes_limiter
from daps.database import db
from daps.services import offer_service, redis_service
from daps.services.errors import DapsError

logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Shutdown order: pending emails may still read the database
SHUTDOWN_STEPS = (
    ("drain offer notifications", offer_service.drain_notifications),
    ("close redis", redis_service.close_redis_connection),
    ("dispose database engine", db.dispose_engine),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Daps API starting")
    try:
        await db.init_database()
        logger.info("Database tables ready")
    except Exception as e:
        # Serve anyway so /api/health can report the outage
        logger.error(f"Database initialization failed: {e}", exc_info=True)

    yield

    logger.info("Daps API stopping")
    for label, step in SHUTDOWN_STEPS:
        try:
            await step()
        except Exception as e:
            logger.error(f"Shutdown step '{label}' failed: {e}", exc_info=True)


app = FastAPI(
    title="Daps API",
    description="Athletes, their game schedules, and the offers fans send them",
    version="1.0.0",
    lifespan=lifespan,
)

app.state.limiter = routes_limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(DapsError)
async def daps_error_handler(request: Request, exc: DapsError):
    """Service errors that escape a route keep their status and message."""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


# Comma-separated list of frontend origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("ALLOWED_ORIGINS", "http://localhost:5175").split(","),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(router)

LANDING_PAGE = """<!DOCTYPE html>
<html>
<head><title>Daps API</title></head>
<body style="font-family: sans-serif; max-width: 720px; margin: 48px auto;">
<h1>Daps API</h1>
<p>The storefront is served separately. Useful links:</p>
<ul>
<li><a href="/docs">Interactive docs</a></li>
<li><a href="/api/health">Health</a></li>
<li><a href="/api/athletes">Athletes</a></li>
<li><a href="/api/teams">Supported teams</a></li>
</ul>
</body>
</html>
"""


@app.get("/", response_class=HTMLResponse)
async def root():
    return HTMLResponse(content=LANDING_PAGE)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
