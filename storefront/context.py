"""
Contexto de la aplicación: se construye una vez al arrancar y se pasa a los
handlers vía dependencias de FastAPI (request.app.state.ctx).
"""
from decimal import Decimal

from fastapi import Request

from storefront.core.config import Settings
from storefront.db import Base, make_engine, make_session_factory
from storefront.services.cart import CartStore
from storefront.services.checkout import CheckoutSession
from storefront.services.gateway import DataGateway
from storefront.services.storage import JsonFileStorage


class AppContext:
    def __init__(self, settings: Settings, engine=None, storage=None):
        self.settings = settings
        self.engine = engine or make_engine(settings.database_url)
        self.session_factory = make_session_factory(self.engine)
        self.storage = storage or JsonFileStorage(settings.storage_file)
        self.cart = CartStore(self.storage, key=settings.cart_storage_key)
        self.gateway = DataGateway(self.session_factory)
        self.checkout = CheckoutSession(
            self.cart,
            self.gateway,
            shipping_fee=Decimal(str(settings.shipping_fee)),
            timeout=settings.order_submit_timeout,
            audit_file=settings.audit_file,
        )

    def create_schema(self) -> None:
        # importa modelos antes de create_all
        from storefront.models import catalog, clients, payment, sales  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def close(self) -> None:
        self.checkout.close()
        self.engine.dispose()


def get_context(request: Request) -> AppContext:
    return request.app.state.ctx


def get_db(request: Request):
    db = get_context(request).session_factory()
    try:
        yield db
    finally:
        db.close()
