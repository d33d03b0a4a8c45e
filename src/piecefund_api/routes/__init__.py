"""API routes package.

- health: Health check endpoints
- webhooks: Stripe webhook receiver

Routers are registered in main.py.
"""

from piecefund_api.routes.health import router as health_router
from piecefund_api.routes.webhooks import router as webhooks_router

__all__ = [
    "health_router",
    "webhooks_router",
]
