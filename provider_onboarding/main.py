import logging
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from provider_onboarding.adapters import ProviderRegistry
from provider_onboarding.api.errors import error_body, status_for
from provider_onboarding.api.v1.router import router as v1_router
from provider_onboarding.config import settings
from provider_onboarding.errors import OnboardingError

logger = logging.getLogger("onboarding.api")

REQUEST_ID_HEADER = "X-Request-ID"


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _envelope(request: Request, status_code: int, content: dict) -> JSONResponse:
    """Every error body carries ``request_id``; the header repeats it."""

    request_id = _request_id(request)
    headers = {REQUEST_ID_HEADER: request_id} if request_id else None
    return JSONResponse(status_code=status_code, content={**content, "request_id": request_id}, headers=headers)


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return _envelope(request, exc.status_code, {"detail": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError):
        return _envelope(request, 422, {"detail": jsonable_encoder(exc.errors()), "code": "VALIDATION_ERROR"})

    @app.exception_handler(OnboardingError)
    async def onboarding_error(request: Request, exc: OnboardingError):
        status_code = status_for(exc)
        log = logger.error if status_code >= 500 else logger.info
        log(
            "onboarding_error request_id=%s code=%s status=%s message=%s",
            _request_id(request),
            exc.code,
            status_code,
            exc.message,
        )
        return _envelope(request, status_code, error_body(exc))

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.exception("unhandled_error request_id=%s path=%s", _request_id(request), request.url.path, exc_info=exc)
        return _envelope(request, 500, {"detail": "Internal Server Error"})


def create_app(providers: ProviderRegistry | None = None) -> FastAPI:
    """Build the API.

    ``providers`` overrides the external collaborators (tests pass fakes);
    otherwise they are built from settings once per app.
    """

    configure_logging()
    app = FastAPI(title="Provider Onboarding API")
    app.state.providers = providers or ProviderRegistry.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def tag_request(request: Request, call_next):
        """Reuse the caller's X-Request-ID (or mint one) and write one access line per request."""

        request.state.request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        started = time.perf_counter()
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request.state.request_id
        logger.info(
            "access %s %s status=%s request_id=%s elapsed_ms=%.1f",
            request.method,
            request.url.path,
            response.status_code,
            request.state.request_id,
            (time.perf_counter() - started) * 1000,
        )
        return response

    _register_error_handlers(app)

    @app.get("/health")
    async def health():
        return {"status": "ok", "service": "provider-onboarding"}

    app.include_router(v1_router, prefix="/api/v1")
    return app


app = create_app()
