"""
Main FastAPI application entry point.
Sets up the API, middleware, error mapping and routes.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from banking.api import accounts, auth, transactions
from banking.core import errors
from banking.core.config import settings
from banking.core.logging_config import setup_logging
from banking.database import Base, engine

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Create database tables
Base.metadata.create_all(bind=engine)

# Initialize FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description=settings.DESCRIPTION,
    docs_url="/docs",  # Swagger UI
    redoc_url="/redoc"  # ReDoc UI
)

# CORS middleware (allows frontend to call API)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify exact origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Domain error -> HTTP status; subclasses fall back to their nearest listed base
STATUS_BY_ERROR = {
    errors.InvalidRequest: 400,
    errors.InvalidCredentials: 401,
    errors.Forbidden: 403,
    errors.NotFound: 404,
    errors.DuplicateIdentity: 409,
    errors.AccountNotActive: 409,
    errors.IllegalTransition: 409,
    errors.InsufficientFunds: 400,
    errors.SameAccount: 400,
    errors.CurrencyMismatch: 400,
    errors.OperationTimeout: 504,
    errors.InternalError: 500,
}


def status_for(exc: errors.BankingError) -> int:
    for error_type in type(exc).__mro__:
        if error_type in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[error_type]
    return 500


@app.exception_handler(errors.BankingError)
async def banking_error_handler(request: Request, exc: errors.BankingError):
    """Translate domain errors into JSON responses."""
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}", exc_info=exc)
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=headers,
    )


@app.get("/")
def root():
    """
    Root endpoint - service information.
    """
    return {
        "message": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "status": "running",
        "docs": "/docs",
        "endpoints": {
            "auth": f"{settings.API_V1_PREFIX}/auth",
            "accounts": f"{settings.API_V1_PREFIX}/accounts",
            "transactions": f"{settings.API_V1_PREFIX}/transactions"
        }
    }


@app.get("/health")
def health_check():
    """
    Health check endpoint for monitoring.
    """
    return {
        "status": "healthy",
        "database": "connected"
    }


# Include API routers
app.include_router(auth.router, prefix=settings.API_V1_PREFIX)
app.include_router(accounts.router, prefix=settings.API_V1_PREFIX)
app.include_router(transactions.router, prefix=settings.API_V1_PREFIX)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("banking.main:app", host="0.0.0.0", port=8000)
