"""FastAPI application for the piece funding billing service.

Provides:
- Health checks
- The Stripe webhook receiver

Runs on AWS Lambda through Mangum, or locally through uvicorn.
"""

import logging
import os
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum

from piecefund import __version__
from piecefund.utils.logging import configure_logging
from piecefund_api.exceptions import register_exception_handlers
from piecefund_api.middleware.correlation import CorrelationIdMiddleware
from piecefund_api.routes.health import router as health_router
from piecefund_api.routes.webhooks import router as webhooks_router

configure_logging(logging.INFO)

app = FastAPI(
    title="Piece Funding Billing API",
    description="Stripe webhook reconciliation for donations and subscriptions",
    version=__version__,
)


def _allowed_origins() -> list[str]:
    raw = os.environ.get("CORS_ALLOWED_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)

register_exception_handlers(app)

app.include_router(health_router, prefix="/api")
# Stripe is configured with this path directly, outside the /api prefix
app.include_router(webhooks_router)


@app.get("/api/ping")
async def ping() -> dict[str, Any]:
    """Root health check endpoint at /api/ping."""
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
        "service": "piecefund-billing",
    }


# Lambda handler. Mangum waits for background tasks before returning, so
# reconciliation finishes inside the same invocation.
handler = Mangum(app, lifespan="off")


def run_server(host: str = "0.0.0.0", port: int = 8080, reload: bool = True) -> None:
    """Run the FastAPI server.

    Args:
        host: Host to bind to (default: 0.0.0.0)
        port: Port to listen on (default: 8080)
        reload: Enable hot reload for development (default: True)
    """
    import uvicorn

    if reload:
        uvicorn.run("piecefund_api.main:app", host=host, port=port, reload=True, reload_dirs=["src"])
    else:
        uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
