# barbershop/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .config import LOG_LEVEL
from .db import init_db
from .errors import SchedulingError
from .logging_config import setup_logging
from .routers import (
    appointments_routes,
    auth_routes,
    barbers_routes,
    notifications_routes,
    services_routes,
    users_routes,
)

setup_logging(LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Barbershop API started")
    yield


app = FastAPI(title="Barbershop API", lifespan=lifespan)

app.include_router(auth_routes.router)
app.include_router(users_routes.router)
app.include_router(services_routes.router)
app.include_router(barbers_routes.router)
app.include_router(appointments_routes.router)
app.include_router(notifications_routes.router)


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.reason, "error": exc.code},
    )


@app.exception_handler(SQLAlchemyError)
async def persistence_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception(f"Persistence failure on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal error, please try again", "error": "internal_error"},
    )


@app.get("/health")
def health_check():
    return {"status": "ok"}
