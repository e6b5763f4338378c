"""Route modules for the relay service."""

from smsrelay.routes.inbound import router as inbound_router
from smsrelay.routes.status import router as status_router


def include_all_routes(app):
    """Include all route modules in the app."""
    app.include_router(inbound_router)
    app.include_router(status_router)
