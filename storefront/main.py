import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from storefront.context import AppContext
from storefront.core.config import Settings
from storefront.middleware.errors import install_error_handlers
from storefront.middleware.idempotency import install_idempotency
from storefront.routers import admin, cart, checkout, clients, health, products, reports, sales, suppliers

log = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, ctx: Optional[AppContext] = None) -> FastAPI:
    settings = settings or (ctx.settings if ctx is not None else Settings())
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    ctx = ctx or AppContext(settings)
    # Crea tablas faltantes (desarrollo)
    ctx.create_schema()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        ctx.close()

    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)
    app.state.ctx = ctx

    install_idempotency(app, ttl=settings.idempotency_ttl)
    install_error_handlers(app)

    app.include_router(health.router)
    app.include_router(cart.router)
    app.include_router(checkout.router)
    app.include_router(products.router)
    app.include_router(suppliers.router)
    app.include_router(admin.router)
    app.include_router(clients.router)
    app.include_router(sales.router)
    app.include_router(reports.router)

    log.info("%s %s ready (env=%s)", settings.app_name, settings.app_version, settings.app_env)
    return app


def main():
    import uvicorn

    uvicorn.run("storefront.main:create_app", factory=True, host="127.0.0.1", port=8010)


if __name__ == "__main__":
    main()
