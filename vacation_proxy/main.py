"""FastAPI application serving the parent portal."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import app_context
from .app.errors import ProxyError
from .app.routes.billing import router as billing_router
from .app.routes.enrollments import router as enrollments_router
from .app.routes.vacations import router as vacations_router
from .app.schemas.proxy import HealthResponse
from .app.services.vacations import get_vacation_repository
from .config import ProxyConfig, load_proxy_config
from .middleware_errors import UnhandledErrorMiddleware
from .middleware_security import SecurityHeadersMiddleware

load_dotenv()

logger = logging.getLogger("vacation_proxy")


def _describe_validation_errors(errors: Sequence[Dict[str, Any]]) -> str:
    parts = []
    for error in errors:
        location = ".".join(str(part) for part in error.get("loc", ()) if part not in {"body", "query"})
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "Invalid request: " + "; ".join(parts) if parts else "Invalid request"


async def handle_proxy_error(request: Request, exc: ProxyError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.payload)


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "error": _describe_validation_errors(exc.errors())},
    )


def create_app(config: Optional[ProxyConfig] = None) -> FastAPI:
    """Build the application; configuration is resolved once here."""

    config = config or load_proxy_config()
    app_context.configure(config=config)

    app = FastAPI(title="Enrollment & Vacation Proxy")
    app.state.config = config

    # Innermost, so its 500s pass through the CORS and security header middleware.
    app.add_middleware(UnhandledErrorMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.allowed_origins),
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ProxyError, handle_proxy_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)

    app.include_router(enrollments_router)
    app.include_router(vacations_router)
    app.include_router(billing_router)

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse()

    @app.on_event("startup")
    def prepare_vacation_store() -> None:
        get_vacation_repository().ensure_schema()
        logger.info("Vacation store ready")

    return app


def run() -> None:  # pragma: no cover - process entry point
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    config = load_proxy_config()
    logger.info("Proxy server listening on port %s", config.port)
    uvicorn.run(create_app(config), host="0.0.0.0", port=config.port)


if __name__ == "__main__":  # pragma: no cover
    run()
