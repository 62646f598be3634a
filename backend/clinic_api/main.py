from typing import Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
import time
from loguru import logger
import sys

from clinic_api.config import Settings, settings
from clinic_api.api.v1 import health, auth, patients, appointments, fees, diagnostics, files
from clinic_api.core.attachments import AttachmentManager
from clinic_api.core.credentials import ensure_doctor_account
from clinic_api.core.database import Database
from clinic_api.core.errors import ClinicError, PersistenceError
from clinic_api.core.notifications import InviteMailer, SendGridInviteMailer
from clinic_api.core.storage import S3StorageClient, StorageClient, StorageClientFactory
from clinic_api.models.schemas import ErrorResponse
from clinic_api.utils.prometheus_metrics import metrics

# Configure logging
logger.remove()
logger.add(
    sys.stdout,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    level="INFO" if not settings.debug else "DEBUG"
)

def _error_body(request: Request, status_code: int, message: str, details=None) -> dict:
    return ErrorResponse(
        message=message,
        status_code=status_code,
        path=request.url.path,
        details=details
    ).model_dump(exclude_none=True)

def _route_label(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)

def create_app(
    app_settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    storage: Optional[StorageClient] = None,
    mailer: Optional[InviteMailer] = None
) -> FastAPI:
    """Build the API with its store, object storage and mailer attached"""
    app_settings = app_settings or settings

    app = FastAPI(
        title="Clinic Administration API",
        description="Patients, appointments, fees and diagnostic files for a small clinic",
        version=app_settings.version,
        docs_url="/docs" if app_settings.debug else None,
        redoc_url="/redoc" if app_settings.debug else None,
        openapi_url="/openapi.json" if app_settings.debug else None
    )

    app.state.settings = app_settings
    app.state.db = database or Database(app_settings.database_url, echo=False)
    app.state.storage = storage or StorageClientFactory.create_client(app_settings)
    app.state.attachments = AttachmentManager(app.state.storage, app_settings)
    if mailer is None and app_settings.sendgrid_api_key:
        mailer = SendGridInviteMailer(app_settings.sendgrid_api_key, app_settings.invite_from_email)
    app.state.mailer = mailer

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request timing middleware
    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception as e:
            metrics.record_request(
                method=request.method,
                endpoint=_route_label(request),
                status_code="500",
                duration=time.time() - start_time
            )
            logger.error(f"Request failed: {request.method} {request.url.path} - {e}")
            raise

        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)
        metrics.record_request(
            method=request.method,
            endpoint=_route_label(request),
            status_code=str(response.status_code),
            duration=process_time
        )
        return response

    # Startup event
    @app.on_event("startup")
    async def startup_event():
        """Validate configuration and prepare the stores"""
        logger.info("Starting clinic API server...")
        app_settings.ensure_required()

        app.state.db.create_all()

        if isinstance(app.state.storage, S3StorageClient):
            await app.state.storage.ensure_bucket()

        if app_settings.bootstrap_doctor_email and app_settings.bootstrap_doctor_password:
            with app.state.db.session() as session:
                ensure_doctor_account(
                    session,
                    app_settings.bootstrap_doctor_email,
                    app_settings.bootstrap_doctor_password,
                    app_settings.bootstrap_doctor_name
                )

        logger.info("Clinic API server started successfully")

    # Shutdown event
    @app.on_event("shutdown")
    async def shutdown_event():
        """Cleanup on shutdown"""
        logger.info("Shutting down clinic API server...")
        app.state.db.dispose()

    # Exception handlers
    @app.exception_handler(ClinicError)
    async def clinic_exception_handler(request: Request, exc: ClinicError):
        """Handle domain errors"""
        if exc.status_code >= 500:
            logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.status_code, exc.message, exc.details)
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Malformed bodies and parameters are client errors"""
        details = [
            {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
            for error in exc.errors()
        ]
        return JSONResponse(status_code=400, content=_error_body(request, 400, "Invalid request", details))

    @app.exception_handler(SQLAlchemyError)
    async def database_exception_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
        error = PersistenceError()
        return JSONResponse(status_code=error.status_code, content=_error_body(request, error.status_code, error.message))

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle general exceptions"""
        logger.exception(f"Unhandled exception: {exc}")
        return JSONResponse(status_code=500, content=_error_body(request, 500, "Internal server error"))

    # Include routers
    app.include_router(health.router, prefix="/api/v1", tags=["Health"])
    app.include_router(auth.router, prefix="/api/v1", tags=["Authentication"])
    app.include_router(patients.router, prefix="/api/v1", tags=["Patients"])
    app.include_router(appointments.router, prefix="/api/v1", tags=["Appointments"])
    app.include_router(fees.router, prefix="/api/v1", tags=["Fees"])
    app.include_router(diagnostics.router, prefix="/api/v1", tags=["Diagnostics"])
    app.include_router(files.router, prefix="/api/v1", tags=["Files"])

    # Root endpoint
    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": "Clinic Administration API",
            "version": app_settings.version,
            "status": "running",
            "docs": "/docs" if app_settings.debug else "disabled",
            "health": "/api/v1/health"
        }

    return app

app = create_app()

if __name__ == "__main__":
    import uvicorn
    settings.ensure_required()
    uvicorn.run(
        "clinic_api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level="info"
    )
