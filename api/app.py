"""Main FastAPI application with modularized routes."""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.config import LOG_LEVEL
from api.database import init_db
from api.routes import content, questions, variants
from core.logging_setup import setup_console_logging

setup_console_logging(LOG_LEVEL)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Create tables on startup."""
    init_db()
    yield


app = FastAPI(title="Exam Content API", lifespan=lifespan)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(content.router)
app.include_router(questions.router)
app.include_router(variants.router)
