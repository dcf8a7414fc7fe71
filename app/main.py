import logging
import os
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
)

logger = logging.getLogger(__name__)

from app.db.db import create_db_and_tables
from app.routers import admin, auth, claims, items, profile
from app.services.errors import ValidationError, WorkflowError
from app.utils.s3_service import StorageError


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    yield


app = FastAPI(title="Lost & Found API", lifespan=lifespan)

# CORS
_allowed = os.getenv("CORS_ALLOW_ORIGINS", "http://localhost:3000")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in _allowed.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError):
    body = {"detail": exc.message, "error": type(exc).__name__}

    if isinstance(exc, ValidationError):
        body["violations"] = [{"field": v.field, "message": v.message} for v in exc.violations]

    return JSONResponse(status_code=exc.status_code, content=body)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    return JSONResponse(status_code=502, content={"detail": "Image storage is unavailable"})


# Register routers
app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(profile.router, prefix="/profile", tags=["Profile"])
app.include_router(items.router, prefix="/items", tags=["Items"])
app.include_router(claims.router, prefix="/claims", tags=["Claims"])
app.include_router(admin.router, prefix="/admin", tags=["Admin"])


@app.get("/")
def root():
    return {"status": "ok"}
