"""
FastAPI application factory.

* Registers routes for bookings, the public catalogue, admin and the driver
  portal.
* Starts / stops the background notification worker via lifespan events.
* Applies rate-limiting middleware and the JSON error mapping.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.api.errors import register_error_handlers
from src.api.middleware import limiter
from src.api.routes import admin, bookings, driver, public
from src.config import settings
from src.infrastructure.database import dispose_engine
from src.infrastructure.redis_client import close_redis
from src.workers import notifier as _notifier

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the notification worker on startup; stop on shutdown."""
    await _notifier.start_notification_loop()
    yield
    await _notifier.stop_notification_loop()
    await close_redis()
    await dispose_engine()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Limo Booking API",
        description=(
            "Books chauffeured rides: prices trips from admin-managed "
            "settings, charges the card through Stripe or Authorize.Net, "
            "and tracks each booking from request to completion."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    register_error_handlers(app)

    # Routers
    app.include_router(bookings.router, prefix="/api/v1")
    app.include_router(public.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")
    app.include_router(admin.drivers_router, prefix="/api/v1")
    app.include_router(driver.router, prefix="/api/v1")

    return app
