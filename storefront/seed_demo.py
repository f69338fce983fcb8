from decimal import Decimal

from sqlalchemy.orm import Session

from storefront.context import AppContext
from storefront.core.config import Settings
from storefront.models.catalog import Product, Supplier
from storefront.models.clients import Client
from storefront.models.payment import PaymentMethod


def get_or_create(session: Session, model, defaults=None, **kwargs):
    inst = session.query(model).filter_by(**kwargs).first()
    if inst:
        return inst, False
    params = dict(kwargs)
    if defaults:
        params.update(defaults)
    inst = model(**params)
    session.add(inst)
    session.commit()
    session.refresh(inst)
    return inst, True


def seed(ctx: AppContext) -> dict:
    ctx.create_schema()
    db: Session = ctx.session_factory()
    try:
        # Proveedor demo
        sup, _ = get_or_create(
            db, Supplier, name="Distribuidora Demo Ltda",
            defaults={"email": "contato@demo.com.br", "tax_id": "12345678000199",
                      "person_type": "juridica", "phones": ["+55 11 4000-0000"]},
        )

        # Productos demo
        prod, _ = get_or_create(
            db, Product, company_code="CAF-001",
            defaults={"short_description": "Café Especial 500g", "last_sale_price": Decimal("39.90"),
                      "last_purchase_price": Decimal("22.00"), "stock_qty": 50,
                      "images": ["https://cdn.demo/cafe.jpg"], "supplier_id": sup.id},
        )
        get_or_create(
            db, Product, company_code="CAN-002",
            defaults={"short_description": "Caneca Esmaltada", "last_sale_price": Decimal("59.00"),
                      "last_purchase_price": Decimal("30.00"), "stock_qty": 8,
                      "images": [], "supplier_id": sup.id},
        )

        # Cliente demo (las ventas con este CPF quedan vinculadas)
        get_or_create(
            db, Client, tax_id="12345678900",
            defaults={"name": "Maria Silva", "person_type": "fisica", "emails": ["maria.com.br"],
                      "phones": ["+55 11 99999-0000"]},
        )

        # Formas de pago
        get_or_create(
            db, PaymentMethod, kind="cartao_credito",
            defaults={"details": {"brand": "Visa", "processing_fee_percent": "2.5"},
                      "installment_options": [1, 2, 3, 6], "adjustment_percent": Decimal("0")},
        )
        get_or_create(
            db, PaymentMethod, kind="pix",
            defaults={"details": {"pix_key": "loja@demo.com.br", "bank": "Banco do Brasil"},
                      "installment_options": [], "adjustment_percent": Decimal("-5")},
        )
        get_or_create(
            db, PaymentMethod, kind="boleto",
            defaults={"details": {"issuing_bank": "Itaú", "due_days": 3, "issuance_fee": "2.50"},
                      "installment_options": [], "adjustment_percent": Decimal("0")},
        )
        return {"supplier_id": sup.id, "product_id": prod.id}
    finally:
        db.close()


def main():
    ctx = AppContext(Settings())
    try:
        ids = seed(ctx)
        print(f"Seed OK | supplier_id={ids['supplier_id']} product_id={ids['product_id']}")
    finally:
        ctx.close()


if __name__ == "__main__":
    main()
