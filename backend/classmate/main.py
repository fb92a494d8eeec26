import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from classmate.config import settings
from classmate.db import run_migrations
from classmate.routers import leaderboard, practice, profile

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("classmate")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("[ClassMate] Starting up (%s)...", settings.app_env)
    try:
        run_migrations()
    except Exception as e:
        logger.warning("[DB] Migration warning: %s", e)
    yield
    # Shutdown
    logger.info("[ClassMate] Shutting down.")


app = FastAPI(
    title="ClassMate — Practice & Rating API",
    version="0.1.0",
    description="Practice problems, Elo-style subject ratings, streaks and leaderboard",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(practice.router,     prefix="/practice",    tags=["Practice"])
app.include_router(leaderboard.router,  prefix="/leaderboard", tags=["Leaderboard"])
app.include_router(profile.router,      prefix="/profile",     tags=["Profile"])


@app.get("/health")
def health():
    return {"status": "ok"}
