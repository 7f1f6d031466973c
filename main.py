from __future__ import annotations
import datetime as dt
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.trustedhost import TrustedHostMiddleware
from starlette.responses import JSONResponse

from api_router import router
from card_utils.deck import UnknownCardError
from db.store import NotFoundError
from deps import ServiceContainer, build_container
from middleware import LoggingMiddleware, RequestIDMiddleware
from schemas import ErrorDetail, ErrorEnvelope, ErrorResponse
from services.ai_agent_services import AllProvidersExhausted, NoProviderConfigured, SubjectInputError
from services.speech_services import SpeechSynthesisError
from settings import (
    APP_NAME,
    APP_VERSION,
    CORS_ALLOW_ORIGINS,
    GZIP_MIN_SIZE,
    LOG_LEVEL,
    REQUEST_LOGGING,
    TRUSTED_HOSTS,
)

logging.basicConfig(level=LOG_LEVEL.upper(), format="[%(levelname)s] %(message)s")
logger = logging.getLogger(__name__)

DESCRIPTION = "Four Pillars profiles, manager compatibility matches and spirit card readings."


def _now() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat().replace("+00:00", "Z")


def _error(status_code: int, code: str, message: str, details=None) -> JSONResponse:
    err = ErrorEnvelope(code=code, message=message, details=details)
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=err).model_dump())


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("startup", extra={"app": APP_NAME, "version": APP_VERSION})
        owned = getattr(app.state, "container", None) is None
        if owned:
            app.state.container = build_container()
        yield
        if owned:
            app.state.container.shutdown(wait_for_jobs=True)
        logger.info("shutdown")

    app = FastAPI(
        title=APP_NAME,
        version=APP_VERSION,
        description=DESCRIPTION,
        lifespan=lifespan,
    )
    if container is not None:
        app.state.container = container

    # --- Middleware ---
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(LoggingMiddleware, mode=REQUEST_LOGGING)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ALLOW_ORIGINS or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=GZIP_MIN_SIZE)
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=TRUSTED_HOSTS or ["*"])

    # --- Exception handlers -> uniform envelope ---
    @app.exception_handler(StarletteHTTPException)
    async def on_http_exception(request: Request, exc: StarletteHTTPException):
        status_code = int(getattr(exc, "status_code", 500))
        detail = getattr(exc, "detail", None)
        message = detail if isinstance(detail, str) and detail else str(exc)

        if status_code == status.HTTP_400_BAD_REQUEST:
            code = "BAD_REQUEST"
        elif status_code == status.HTTP_404_NOT_FOUND:
            code = "NOT_FOUND"
        elif status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
            code = "METHOD_NOT_ALLOWED"
        elif status_code == status.HTTP_503_SERVICE_UNAVAILABLE:
            code = "SERVICE_UNAVAILABLE"
        else:
            code = f"HTTP_{status_code}"
        return _error(status_code, code, message)

    @app.exception_handler(RequestValidationError)
    async def on_validation_error(request: Request, exc: RequestValidationError):
        details = [
            ErrorDetail(field=".".join(str(p) for p in e.get("loc", ())), issue=e.get("msg"))
            for e in exc.errors()
        ]
        return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, "UNPROCESSABLE_ENTITY", "Validation error", details)

    @app.exception_handler(SubjectInputError)
    async def on_subject_input_error(request: Request, exc: SubjectInputError):
        return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, "INVALID_BIRTH_DATA", str(exc))

    @app.exception_handler(NotFoundError)
    async def on_not_found(request: Request, exc: NotFoundError):
        return _error(status.HTTP_404_NOT_FOUND, "NOT_FOUND", str(exc))

    @app.exception_handler(UnknownCardError)
    async def on_unknown_card(request: Request, exc: UnknownCardError):
        return _error(status.HTTP_400_BAD_REQUEST, "UNKNOWN_CARD", str(exc))

    @app.exception_handler(NoProviderConfigured)
    async def on_no_provider(request: Request, exc: NoProviderConfigured):
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, "NO_PROVIDER_CONFIGURED", str(exc))

    @app.exception_handler(AllProvidersExhausted)
    async def on_providers_exhausted(request: Request, exc: AllProvidersExhausted):
        details = [ErrorDetail(field=name, issue=str(err)) for name, err in exc.attempts]
        return _error(status.HTTP_502_BAD_GATEWAY, "PROVIDERS_EXHAUSTED", "All text providers failed", details)

    @app.exception_handler(SpeechSynthesisError)
    async def on_speech_error(request: Request, exc: SpeechSynthesisError):
        return _error(status.HTTP_502_BAD_GATEWAY, "SPEECH_FAILED", str(exc))

    @app.exception_handler(Exception)
    async def on_any_error(request: Request, exc: Exception):
        logger.exception("unhandled_error", extra={"path": request.url.path})
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "SERVER_ERROR", str(exc))

    @app.get("/")
    async def landing():
        return {"Welcome to Four Pillars Match": True, "ts": _now()}

    # --- Liveness/Readiness ---
    @app.get("/healthz")
    async def healthz():
        return {"ok": True, "ts": _now()}

    @app.get("/readyz")
    async def readyz(request: Request):
        container = getattr(request.app.state, "container", None)
        if container is None:
            return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"ready": False})
        return {
            "ready": True,
            "textProviders": [getattr(p, "name", type(p).__name__) for p in container.synthesizer.providers],
            "speech": container.speech.configured,
        }

    # --- Routes ---
    app.include_router(router)
    return app


app = create_app()


# Optional: dev run
if __name__ == "__main__":
    try:
        import uvicorn  # type: ignore
    except ImportError:
        raise SystemExit("Uvicorn is required. Install dependencies first.")
    uvicorn.run("main:app", host="127.0.0.1", port=8787, reload=True)
