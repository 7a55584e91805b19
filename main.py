# main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

import config
from database import ensure_indexes
from errors import ErrorKind, InvalidTransitionError, ProfileRequired, StoreError

# Routes
from routes import (
    user_routes,
    profile_routes,
    veterinarian_routes,
    appointment_routes,
    message_routes,
    dashboard_routes,
    admin_routes
)

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

PROFILE_SETUP_PATH = "/profile/setup"

STORE_ERROR_STATUS = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
    ErrorKind.NETWORK: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.UNKNOWN: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    await ensure_indexes()
    logger.info("VetConnect API started.")
    yield


app = FastAPI(
    title="VetConnect",
    description="Veterinary appointment booking and messaging",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Error handlers ---

@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    return JSONResponse(
        status_code=STORE_ERROR_STATUS[exc.kind],
        content={"detail": exc.message, "kind": exc.kind.value},
    )


@app.exception_handler(InvalidTransitionError)
async def invalid_transition_handler(request: Request, exc: InvalidTransitionError):
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": str(exc), "current_status": exc.current, "requested_status": exc.target},
    )


@app.exception_handler(ProfileRequired)
async def profile_required_handler(request: Request, exc: ProfileRequired):
    """Not an error: send the caller to profile setup."""
    return RedirectResponse(PROFILE_SETUP_PATH, status_code=status.HTTP_303_SEE_OTHER)


# Include all routers
app.include_router(user_routes.router, prefix="/auth", tags=["Auth"])
app.include_router(profile_routes.router, prefix="/profile", tags=["Profile"])
app.include_router(veterinarian_routes.router, prefix="/veterinarians", tags=["Veterinarians"])
app.include_router(appointment_routes.router, prefix="/appointments", tags=["Appointments"])
app.include_router(message_routes.router, prefix="/messages", tags=["Messages"])
app.include_router(dashboard_routes.router, prefix="/dashboard", tags=["Dashboard"])
app.include_router(admin_routes.router, prefix="/admin", tags=["Admin"])


@app.get("/")
def read_root():
    return {"message": "VetConnect Service Running"}
