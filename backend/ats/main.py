import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from .api import agency as agency_api
from .api import application as application_api
from .api import job as job_api
from .config import Settings, configure_logging
from .database import build_engine, build_session_factory, init_db
from .services.analysis import build_analysis_client
from .services.emailer import build_mailer
from .services.storage import LocalFileStorage
from .utils.error_handlers import AppError, DuplicateApplicationError, create_error_response, get_error_message

logger = logging.getLogger(__name__)

_default_origins = ["http://localhost:5173", "http://127.0.0.1:5173"]


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
        extra = {"already_applied": True} if isinstance(exc, DuplicateApplicationError) else {}
        return create_error_response(exc.status_code, exc.message, exc.details, **extra)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return create_error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = [
            {"loc": [str(p) for p in err.get("loc", ())], "msg": str(err.get("msg", ""))}
            for err in exc.errors()
        ]
        return create_error_response(400, get_error_message("validation_error"), details)

    @app.exception_handler(OperationalError)
    async def sqlalchemy_operational_error_handler(request: Request, exc: OperationalError):
        logger.exception("Database OperationalError: %s", exc)
        return create_error_response(503, get_error_message("database_error"))

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError):
        logger.exception("Database SQLAlchemyError: %s", exc)
        return create_error_response(500, get_error_message("database_error"))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception: %s", exc)
        return create_error_response(500, get_error_message("server_error"))


def create_app(settings: Settings | None = None, *, mailer=None, analysis_client=None) -> FastAPI:
    """
    Build the API with its own engine, session factory and collaborators.

    `mailer` / `analysis_client` override the ones built from settings (tests pass fakes).
    """
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    engine = build_engine(settings.database_url)
    init_db(engine)

    app = FastAPI(title="Desky ATS")
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.storage = LocalFileStorage(settings.upload_dir, settings.public_files_base_url)
    app.state.mailer = mailer if mailer is not None else build_mailer(settings)
    app.state.analysis_client = analysis_client if analysis_client is not None else build_analysis_client(settings)

    app.include_router(agency_api.router)
    app.include_router(job_api.router)
    app.include_router(application_api.router)
    _register_exception_handlers(app)

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {
            "status": "Backend running",
            "service": "Desky ATS",
        }

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[*_default_origins, *settings.frontend_origins],
        allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("shutdown")
    def on_shutdown() -> None:
        try:
            app.state.analysis_client.close()
        finally:
            app.state.engine.dispose()
        logger.info("Shutdown complete")

    logger.info("App ready (db=%s)", engine.url.get_backend_name())
    return app
