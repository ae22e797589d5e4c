import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from rentflow import __version__
from rentflow.core.config import get_settings
from rentflow.core.errors import RentflowError, InternalError, ValidationError
from rentflow.core.logger import configure_logging
from rentflow.api.middleware.request_log import RequestLogMiddleware
from rentflow.api.routers import (
    auth,
    users,
    assignments,
    properties,
    units,
    tenants,
    contracts,
    invoices,
    payments,
    payment_methods,
    terminations,
    settings as settings_router,
    dashboard,
    health,
)

settings = get_settings()

configure_logging(settings)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    description="Property management: contracts, invoices, payments and termination approvals",
    version=__version__,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.debug else settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Request log middleware - one line per API request
app.add_middleware(RequestLogMiddleware)


@app.exception_handler(RentflowError)
async def rentflow_error_handler(request: Request, exc: RentflowError):
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    error = ValidationError("Invalid request")
    content = error.to_dict()
    content["detail"] = jsonable_encoder(exc.errors(), custom_encoder={Exception: str})
    return JSONResponse(status_code=error.status_code, content=content)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    error = InternalError()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# Include routers
app.include_router(auth.router, prefix="/api")
app.include_router(users.router, prefix="/api")
app.include_router(assignments.router, prefix="/api")
app.include_router(properties.router, prefix="/api")
app.include_router(units.router, prefix="/api")
app.include_router(tenants.router, prefix="/api")
app.include_router(contracts.router, prefix="/api")
app.include_router(invoices.router, prefix="/api")
app.include_router(payments.router, prefix="/api")
app.include_router(payment_methods.router, prefix="/api")
app.include_router(terminations.router, prefix="/api")
app.include_router(settings_router.router, prefix="/api")
app.include_router(dashboard.router, prefix="/api")
app.include_router(health.router)


@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "version": __version__,
        "docs": "/docs" if settings.debug else None,
    }
