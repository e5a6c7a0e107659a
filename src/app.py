"""Marketplace FastAPI application.

Processes commands synchronously via HTTP inside the ordering domain
context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ordering.domain import ordering
from ordering.utils.logging import add_context, clear_context, configure_logging

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# PROTEAN_ENV selects the domain.toml overlay.
configure_logging()
ordering.init()


def _configure_gateways() -> None:
    """Register the hosted payment page gateway when its credentials are set."""
    base_url = os.getenv("HOSTED_PAYMENTS_URL")
    if not base_url:
        return

    from ordering.configuration.setting import current_config
    from ordering.payment.gateway import set_gateway
    from ordering.payment.gateway.hosted_adapter import HostedCheckoutGateway

    with ordering.domain_context():
        timeout = current_config().payment_timeout_seconds

    set_gateway(
        HostedCheckoutGateway(
            base_url=base_url,
            api_key=os.getenv("HOSTED_PAYMENTS_API_KEY", ""),
            webhook_secret=os.getenv("HOSTED_PAYMENTS_WEBHOOK_SECRET", ""),
            timeout=timeout,
        ),
        method="hosted",
    )


_configure_gateways()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Marketplace API",
    description="Pricing, multi-seller checkout and payment reconciliation",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the ordering domain context for each request."""
    add_context(path=request.url.path, method=request.method)
    try:
        with ordering.domain_context():
            return await call_next(request)
    finally:
        clear_context()


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from ordering.api import ALL_ROUTERS, install_error_handlers  # noqa: E402

for router in ALL_ROUTERS:
    app.include_router(router)

install_error_handlers(app)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domains": {"ordering": {"name": ordering.name}}})
