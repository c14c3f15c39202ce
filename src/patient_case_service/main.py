"""Main FastAPI application for patient-case-service."""

import logging
import sys

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from patient_case_service import __version__
from patient_case_service.api.routes import auth_router, cases_router
from patient_case_service.config import settings
from patient_case_service.core.exceptions import CaseServiceException, ValidationException
from patient_case_service.infrastructure.database import db_client
from patient_case_service.models import HealthResponse

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Patient Case Service",
    description="Patient case records with investigation file attachments",
    version=__version__,
)

# Configure CORS (credentials needed for the session cookie)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CaseServiceException)
async def case_service_exception_handler(request: Request, exc: CaseServiceException):
    """Render service failures as structured errors."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.kind}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Render malformed request bodies in the same structured error shape."""
    message = "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    error = ValidationException(message)
    return JSONResponse(status_code=error.status_code, content={"error": error.to_dict()})


# Include routers
app.include_router(auth_router)
app.include_router(cases_router)

# Serve stored investigation files when they live on local disk
if settings.blob_storage_type.lower() == "local":
    app.mount(
        "/uploads",
        StaticFiles(directory=settings.upload_dir, check_dir=False),
        name="uploads",
    )


@app.on_event("startup")
async def startup():
    """Initialize database on startup."""
    logger.info(f"Starting {settings.service_name} on port {settings.port}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Case storage: {settings.case_storage_type}, blob storage: {settings.blob_storage_type}")

    if settings.case_storage_type.lower() != "sql":
        return

    try:
        await db_client.verify_connection()

        # Alembic migrations are the primary schema path; create_tables()
        # covers fresh local databases
        await db_client.create_tables()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


@app.on_event("shutdown")
async def shutdown():
    """Clean up resources on shutdown."""
    logger.info("Shutting down service")
    await db_client.close()


@app.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="""
Returns the health status of the Patient Case Service.

**Response Example**:
```json
{
  "status": "healthy",
  "service": "patient-case-service",
  "version": "1.0.0",
  "case_storage": "inmemory",
  "blob_storage": "local"
}
```

**Storage**: No database query (reports configured backends only)
**Authorization**: None required (public endpoint)
    """,
)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        service=settings.service_name,
        version=__version__,
        case_storage=settings.case_storage_type,
        blob_storage=settings.blob_storage_type,
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "patient_case_service.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.environment == "development",
    )
