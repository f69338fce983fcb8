"""Vista de proveedores en la tienda y gestión de productos propios del proveedor."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.core.schemas import ProductIn
from storefront.models.catalog import Supplier
from storefront.services.catalog import (
    get_product,
    get_supplier,
    save_product,
    search_products,
    serialize_product,
    serialize_supplier,
)
from storefront.context import get_db

router = APIRouter(prefix="/suppliers", tags=["suppliers"])


@router.get("")
def list_suppliers(db: Session = Depends(get_db)):
    rows = db.query(Supplier).order_by(Supplier.name).all()
    return {"count": len(rows), "suppliers": [serialize_supplier(s) for s in rows]}


@router.get("/{supplier_id}")
def supplier_detail(supplier_id: int, db: Session = Depends(get_db)):
    return serialize_supplier(get_supplier(db, supplier_id))


@router.get("/{supplier_id}/products")
def supplier_products(supplier_id: int, db: Session = Depends(get_db)):
    get_supplier(db, supplier_id)
    rows = search_products(db, supplier_id=supplier_id, in_stock=False)
    return {"count": len(rows), "products": [serialize_product(p) for p in rows]}


@router.post("/{supplier_id}/products")
def create_supplier_product(supplier_id: int, payload: ProductIn, db: Session = Depends(get_db)):
    # el proveedor solo da de alta productos propios
    payload = payload.model_copy(update={"supplier_id": supplier_id})
    return serialize_product(save_product(db, payload))


@router.put("/{supplier_id}/products/{product_id}")
def update_supplier_product(supplier_id: int, product_id: int, payload: ProductIn,
                            db: Session = Depends(get_db)):
    p = get_product(db, product_id, supplier_id=supplier_id)
    payload = payload.model_copy(update={"supplier_id": supplier_id})
    return serialize_product(save_product(db, payload, p))


@router.delete("/{supplier_id}/products/{product_id}")
def delete_supplier_product(supplier_id: int, product_id: int, db: Session = Depends(get_db)):
    p = get_product(db, product_id, supplier_id=supplier_id)
    db.delete(p)
    db.commit()
    return {"ok": True, "deleted": product_id}
