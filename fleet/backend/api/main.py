# fleet/backend/api/main.py

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import sessionmaker
from starlette.exceptions import HTTPException as StarletteHTTPException

from fleet.backend.config import Settings, load_settings
from fleet.backend.db.seed import seed_database
from fleet.backend.db.session import SessionLocal, init_db
from fleet.backend.services.email_service import EmailSender, SmtpEmailService
from fleet.backend.services.email_validation import EmailValidationService, EmailValidator
from fleet.backend.services.errors import (
    AuthenticationFailedError,
    DomainValidationError,
    EmailDeliveryError,
    PermissionDeniedError,
)
from fleet.backend.services.security import PasswordHasher, TokenService

from .routers import auth, machines, users

logger = logging.getLogger("fleet")

GENERIC_ERROR_MESSAGE = "An unexpected error occurred while processing your request"


def _configure_logging(level: str) -> None:
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=getattr(logging, level.upper(), logging.INFO),
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        )


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    msg = str(first.get("msg", "Invalid value")).removeprefix("Value error, ")
    return f"{loc}: {msg}" if loc else msg


def _register_exception_handlers(app: FastAPI) -> None:
    """
    Every error body is {"message": "..."}.
    """

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def _request_invalid(request: Request, exc: RequestValidationError) -> JSONResponse:
        message = _validation_message(exc)
        logger.warning("Rejected %s %s: %s", request.method, request.url.path, message)
        return JSONResponse(status_code=400, content={"message": message})

    @app.exception_handler(DomainValidationError)
    async def _domain_invalid(request: Request, exc: DomainValidationError) -> JSONResponse:
        logger.warning("Validation failed on %s %s: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=400, content={"message": exc.message})

    @app.exception_handler(AuthenticationFailedError)
    async def _unauthorized(request: Request, exc: AuthenticationFailedError) -> JSONResponse:
        logger.warning("Authentication failed on %s: %s", request.url.path, exc.message)
        return JSONResponse(
            status_code=401,
            content={"message": exc.message},
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(PermissionDeniedError)
    async def _forbidden(request: Request, exc: PermissionDeniedError) -> JSONResponse:
        return JSONResponse(status_code=403, content={"message": exc.message})

    @app.exception_handler(EmailDeliveryError)
    async def _email_failed(request: Request, exc: EmailDeliveryError) -> JSONResponse:
        logger.error("Email delivery failed during %s %s: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=500, content={"message": GENERIC_ERROR_MESSAGE})

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error during %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"message": GENERIC_ERROR_MESSAGE})


def create_app(
    settings: Settings | None = None,
    *,
    session_factory: sessionmaker | None = None,
    email_sender: EmailSender | None = None,
    email_validator: EmailValidator | None = None,
) -> FastAPI:
    settings = settings or load_settings()
    _configure_logging(settings.log_level)

    app = FastAPI(
        title="Machine Management API",
        description="Fleet dashboard API for industrial X-ray machines",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(machines.router, prefix="/api/machines", tags=["machines"])
    app.include_router(users.router, prefix="/api/users", tags=["users"])

    _register_exception_handlers(app)

    # shared, request-independent collaborators
    app.state.settings = settings
    app.state.session_factory = session_factory or SessionLocal
    app.state.password_hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    app.state.token_service = TokenService(settings)
    app.state.email_sender = email_sender or SmtpEmailService(settings)
    app.state.email_validator = email_validator or EmailValidationService()

    @app.get("/api/health", tags=["system"])
    def health() -> dict:
        return {"status": "ok"}

    @app.on_event("startup")
    def on_startup() -> None:
        """
        On startup:
          - create tables if they do not exist yet;
          - seed sample locations and machines when SEED_DATABASE is on.
        """
        factory: sessionmaker = app.state.session_factory
        init_db(factory.kw.get("bind"))

        if settings.seed_database:
            with factory() as session:
                seed_database(session)

    return app


app = create_app()
