from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from storefront.context import AppContext
from storefront.core.config import Settings
from storefront.core.schemas import CartCandidate, PaymentMethodOut
from storefront.main import create_app
from storefront.models.catalog import Product, Supplier
from storefront.models.payment import PaymentMethod


def candidate(pid="P1", price="10", stock=5, name=None):
    return CartCandidate(
        product_id=pid, name=name or f"Produto {pid}", unit_price=Decimal(price),
        image_ref=f"https://cdn.test/{pid}.jpg", available_stock=stock,
    )


def method(id=1, kind="pix", pct="0", options=None, active=True):
    if kind in ("cartao_credito", "cartao_debito"):
        details = {"kind": kind, "brand": "Visa"}
    elif kind == "pix":
        details = {"kind": "pix", "pix_key": "loja@test.com"}
    else:
        details = {"kind": "boleto", "issuing_bank": "Itaú"}
    return PaymentMethodOut(
        id=id, kind=kind, details=details, installment_options=options or [],
        adjustment_percent=Decimal(pct), active=active,
    )


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url="sqlite://",
        storage_file=str(tmp_path / "storage.json"),
        audit_file=str(tmp_path / "checkout_audit.jsonl"),
        order_submit_timeout=5.0,
    )


@pytest.fixture
def ctx(settings):
    c = AppContext(settings)
    c.create_schema()
    yield c
    c.close()


@pytest.fixture
def client(ctx):
    return TestClient(create_app(ctx=ctx))


@pytest.fixture
def catalog(ctx):
    """Proveedor, dos productos y tres formas de pago (una inactiva)."""
    db = ctx.session_factory()
    try:
        sup = Supplier(name="Fornecedor Teste", email="f@test.com", person_type="juridica")
        db.add(sup)
        db.commit()
        coffee = Product(short_description="Café 500g", company_code="CAF-1",
                         last_sale_price=Decimal("40.00"), stock_qty=3,
                         images=["https://cdn.test/cafe.jpg"], supplier_id=sup.id)
        mug = Product(short_description="Caneca", company_code="CAN-1",
                      last_sale_price=Decimal("25.50"), stock_qty=0, supplier_id=sup.id)
        credit = PaymentMethod(kind="cartao_credito", details={"brand": "Visa"},
                               installment_options=[1, 2, 3], adjustment_percent=Decimal("0"))
        pix = PaymentMethod(kind="pix", details={"pix_key": "loja@test.com"},
                            installment_options=[], adjustment_percent=Decimal("-5"))
        boleto = PaymentMethod(kind="boleto", details={"issuing_bank": "Itaú"},
                               installment_options=[], adjustment_percent=Decimal("0"), active=False)
        db.add_all([coffee, mug, credit, pix, boleto])
        db.commit()
        return {
            "supplier_id": sup.id, "coffee_id": coffee.id, "mug_id": mug.id,
            "credit_id": credit.id, "pix_id": pix.id, "boleto_id": boleto.id,
        }
    finally:
        db.close()


def checkout_form(payment_method_id, **overrides):
    form = {
        "customer": {"name": "Maria Silva", "cpf": "123.456.789-00",
                     "email": "maria@test.com", "phone": "11 99999-0000"},
        "address": {"cep": "01310-100", "street": "Av. Paulista", "number": "1000",
                    "complement": "", "neighborhood": "Bela Vista", "city": "São Paulo",
                    "state": "SP"},
        "payment_method_id": payment_method_id,
        "installments": 1,
    }
    form.update(overrides)
    return form
