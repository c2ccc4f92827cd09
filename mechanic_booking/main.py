# mechanic_booking/main.py

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import catalog, config
from .database import SessionLocal, init_db
from .errors import AuthorizationError, BookingError, ConflictError, NotFoundError, ValidationError
from .routers import bookings, mechanics, profiles, reviews, services

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=config.LOG_LEVEL,
)
logger = logging.getLogger(__name__)

# ────────────────────────────── LIFESPAN ──────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if config.SEED_CATALOG:
        db = SessionLocal()
        try:
            catalog.seed_services(db)
        finally:
            db.close()
    yield


app = FastAPI(
    title="Mechanic Booking Service",
    description="On-demand mechanic bookings with row-level access policies",
    version="1.0.0",
    lifespan=lifespan,
)

# ────────────────────────────── CORS ──────────────────────────────

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ────────────────────────────── ERRORS ──────────────────────────────

STATUS_CODES = {
    ValidationError: 422,
    AuthorizationError: 403,
    NotFoundError: 404,
    ConflictError: 409,
}


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    status_code = next((code for cls, code in STATUS_CODES.items() if isinstance(exc, cls)), 400)
    body = {"detail": str(exc)}
    if isinstance(exc, ValidationError) and exc.field:
        body["field"] = exc.field
    return JSONResponse(status_code=status_code, content=body)


# ────────────────────────────── ROUTES ──────────────────────────────

@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(profiles.router)
app.include_router(services.router)
app.include_router(mechanics.router)
app.include_router(bookings.router)
app.include_router(reviews.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
