import sys
from pathlib import Path

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(_PROJECT_ROOT))

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from salon.config import settings
from salon.database import close_pool, init_pool
from salon.errors import (
    FormatError,
    NotFound,
    SlotConflict,
    UpstreamFailure,
    VerificationMismatch,
)
from salon.routes.admin import router as admin_router
from salon.routes.availability import router as availability_router
from salon.routes.booking import router as booking_router
from salon.routes.cancel import router as cancel_router
from salon.routes.verify import router as verify_router
from salon.services.activity import activity

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)


@asynccontextmanager
async def lifespan(application: FastAPI):
    await init_pool(settings.database_url)
    yield
    await activity.drain()
    await close_pool()


app = FastAPI(title="Salon Booking API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(availability_router)
app.include_router(booking_router)
app.include_router(verify_router)
app.include_router(cancel_router)
app.include_router(admin_router)


@app.exception_handler(FormatError)
async def format_error(request: Request, exc: FormatError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(SlotConflict)
async def slot_conflict(request: Request, exc: SlotConflict):
    return JSONResponse(
        status_code=409,
        content={"detail": "Time slot is no longer available - please choose another time"},
    )


@app.exception_handler(VerificationMismatch)
async def verification_mismatch(request: Request, exc: VerificationMismatch):
    status_code = 403 if exc.reason == "phone" else 401
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.exception_handler(NotFound)
async def not_found(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(UpstreamFailure)
async def upstream_failure(request: Request, exc: UpstreamFailure):
    return JSONResponse(
        status_code=502, content={"detail": "Service temporarily unavailable, try again"},
    )


@app.get("/api/health")
async def health():
    return {"status": "ok"}


# Serve static files locally (Vercel uses @vercel/static instead)
_public_dir = _PROJECT_ROOT / "public"
if _public_dir.is_dir():
    app.mount("/", StaticFiles(directory=str(_public_dir), html=True), name="static")
