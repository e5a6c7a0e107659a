"""Map domain exceptions to HTTP responses.

Protean's own exceptions (validation, not found, invalid operation) go
through ``register_exception_handlers``; the marketplace-specific ones are
mapped here.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from ordering.exceptions import PaymentProviderError, PersistenceError
from pricing.errors import ConfigurationError

logger = structlog.get_logger(__name__)


def install_error_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)

    @app.exception_handler(ConfigurationError)
    async def configuration_error(request: Request, exc: ConfigurationError):
        logger.error("Configuration error", path=request.url.path, errors=exc.messages)
        return JSONResponse(status_code=500, content={"error": "configuration_error", "errors": exc.messages})

    @app.exception_handler(PaymentProviderError)
    async def payment_provider_error(request: Request, exc: PaymentProviderError):
        return JSONResponse(status_code=502, content={"error": "payment_provider_error", "detail": str(exc)})

    @app.exception_handler(PersistenceError)
    async def persistence_error(request: Request, exc: PersistenceError):
        return JSONResponse(status_code=500, content={"error": "checkout_failed", "detail": str(exc)})
