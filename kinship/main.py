import os
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from kinship.database import Base, engine
from kinship.config import settings
from kinship.core.errors import (
    AttachmentConflict,
    MediaValidationError,
    PersonNotFound,
    PersonValidationError,
)

# Import models so SQLAlchemy registers tables
from kinship.models import person  # noqa: F401

# Routers
from kinship.routers import media_files_router, media_router, person_router

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


# -----------------------
# AUTO-CREATE MEDIA FOLDERS
# -----------------------
def ensure_media_folders():
    """
    Create the local media root and the upload staging folder on startup.
    """
    for folder in (settings.LOCAL_MEDIA_PATH, settings.UPLOAD_TMP_PATH):
        os.makedirs(folder, exist_ok=True)


ensure_media_folders()

# -----------------------
# CREATE APP
# -----------------------
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Person records, genealogy lookups and per-person media.",
    version="1.0.0",
)
logger.info("Database: %s", engine.url.render_as_string(hide_password=True))

# -----------------------
# CORS
# -----------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -----------------------
# DATABASE TABLES
# -----------------------
Base.metadata.create_all(bind=engine)

# -----------------------
# LOCAL MEDIA FILES (signed tokens only)
# -----------------------
if settings.STORAGE_BACKEND == "local":
    app.include_router(media_files_router.router)


# -----------------------
# DOMAIN ERRORS → HTTP
# -----------------------
@app.exception_handler(PersonNotFound)
async def person_not_found_handler(request: Request, exc: PersonNotFound):
    return JSONResponse(status_code=404, content={"detail": exc.message})


@app.exception_handler(MediaValidationError)
async def media_validation_handler(request: Request, exc: MediaValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(PersonValidationError)
async def person_validation_handler(request: Request, exc: PersonValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(AttachmentConflict)
async def attachment_conflict_handler(request: Request, exc: AttachmentConflict):
    logger.error("%s", exc)
    return JSONResponse(
        status_code=409,
        content={"detail": "Person was updated concurrently, try again"},
    )


# -----------------------
# ROUTES
# -----------------------
app.include_router(person_router.router)
app.include_router(media_router.router)


# -----------------------
# HEALTH CHECK
# -----------------------
@app.get("/")
def root():
    return {"message": "Kinship API is running!"}
