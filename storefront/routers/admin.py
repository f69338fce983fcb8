from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.context import get_db
from storefront.core.errors import NotFound
from storefront.core.schemas import PaymentMethodIn, ProductIn, SupplierIn
from storefront.models.catalog import Product, Supplier
from storefront.models.payment import PaymentMethod
from storefront.models.sales import Sale
from storefront.routers.checkout import serialize_payment_method
from storefront.services.catalog import (
    get_product,
    get_supplier,
    save_product,
    save_supplier,
    search_products,
    serialize_product,
    serialize_supplier,
)
from storefront.services.gateway import to_payment_method_out

router = APIRouter(prefix="/admin", tags=["admin"])


# ---------- PRODUCTOS ----------
@router.get("/products", summary="Productos (incluye sin stock)")
def admin_products(q: Optional[str] = None, supplier_id: Optional[int] = None,
                   db: Session = Depends(get_db)):
    rows = search_products(db, q=q, supplier_id=supplier_id, in_stock=False)
    return {"count": len(rows), "products": [serialize_product(p) for p in rows]}


@router.post("/products")
def create_product(payload: ProductIn, db: Session = Depends(get_db)):
    return serialize_product(save_product(db, payload))


@router.get("/products/{product_id}")
def admin_product(product_id: int, db: Session = Depends(get_db)):
    return serialize_product(get_product(db, product_id))


@router.put("/products/{product_id}")
def update_product(product_id: int, payload: ProductIn, db: Session = Depends(get_db)):
    return serialize_product(save_product(db, payload, get_product(db, product_id)))


@router.delete("/products/{product_id}")
def delete_product(product_id: int, db: Session = Depends(get_db)):
    db.delete(get_product(db, product_id))
    db.commit()
    return {"ok": True, "deleted": product_id}


# ---------- PROVEEDORES ----------
@router.get("/suppliers")
def admin_suppliers(db: Session = Depends(get_db)):
    rows = db.query(Supplier).order_by(Supplier.name).all()
    return {"count": len(rows), "suppliers": [serialize_supplier(s) for s in rows]}


@router.post("/suppliers")
def create_supplier(payload: SupplierIn, db: Session = Depends(get_db)):
    return serialize_supplier(save_supplier(db, payload))


@router.put("/suppliers/{supplier_id}")
def update_supplier(supplier_id: int, payload: SupplierIn, db: Session = Depends(get_db)):
    return serialize_supplier(save_supplier(db, payload, get_supplier(db, supplier_id)))


@router.delete("/suppliers/{supplier_id}")
def delete_supplier(supplier_id: int, db: Session = Depends(get_db)):
    s = get_supplier(db, supplier_id)
    if db.query(Product).filter_by(supplier_id=supplier_id).first():
        raise HTTPException(status_code=409, detail="supplier_has_products")
    db.delete(s)
    db.commit()
    return {"ok": True, "deleted": supplier_id}


# ---------- FORMAS DE PAGO ----------
def _get_method(db: Session, method_id: int) -> PaymentMethod:
    pm = db.get(PaymentMethod, method_id)
    if pm is None:
        raise NotFound(f"payment method {method_id}")
    return pm


def _apply_method(pm: PaymentMethod, payload: PaymentMethodIn) -> None:
    pm.kind = payload.kind
    pm.details = payload.details.model_dump(mode="json", exclude={"kind"})
    pm.installment_options = list(payload.installment_options)
    pm.adjustment_percent = payload.adjustment_percent
    pm.active = payload.active


@router.get("/payment-methods", summary="Todas las formas de pago")
def admin_payment_methods(db: Session = Depends(get_db)):
    rows = db.query(PaymentMethod).order_by(PaymentMethod.kind, PaymentMethod.id).all()
    return {"count": len(rows), "methods": [serialize_payment_method(to_payment_method_out(pm)) for pm in rows]}


@router.post("/payment-methods")
def create_payment_method(payload: PaymentMethodIn, db: Session = Depends(get_db)):
    pm = PaymentMethod()
    _apply_method(pm, payload)
    db.add(pm)
    db.commit()
    db.refresh(pm)
    return serialize_payment_method(to_payment_method_out(pm))


@router.put("/payment-methods/{method_id}")
def update_payment_method(method_id: int, payload: PaymentMethodIn, db: Session = Depends(get_db)):
    pm = _get_method(db, method_id)
    _apply_method(pm, payload)
    db.commit()
    db.refresh(pm)
    return serialize_payment_method(to_payment_method_out(pm))


@router.delete("/payment-methods/{method_id}")
def delete_payment_method(method_id: int, db: Session = Depends(get_db)):
    pm = _get_method(db, method_id)
    if db.query(Sale).filter_by(payment_method_id=method_id).first():
        # con ventas asociadas solo se desactiva
        raise HTTPException(status_code=409, detail="payment_method_in_use")
    db.delete(pm)
    db.commit()
    return {"ok": True, "deleted": method_id}
