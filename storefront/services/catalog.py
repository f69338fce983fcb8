"""Consultas y serialización de productos y proveedores (compartidas por los routers)."""
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.core.errors import Conflict, NotFound
from storefront.core.schemas import CartCandidate, ProductIn, SupplierIn
from storefront.models.catalog import Product, Supplier


def serialize_product(p: Product) -> dict:
    return {
        "id": p.id,
        "supplier_code": p.supplier_code,
        "company_code": p.company_code,
        "supplier_description": p.supplier_description,
        "short_description": p.short_description,
        "detailed_description": p.detailed_description,
        "weight_kg": float(p.weight_kg or 0),
        "height_m": float(p.height_m or 0),
        "width_m": float(p.width_m or 0),
        "length_m": float(p.length_m or 0),
        "storage_guidance": p.storage_guidance,
        "last_purchase_price": float(p.last_purchase_price or 0),
        "last_sale_price": float(p.last_sale_price or 0),
        "stock_qty": int(p.stock_qty or 0),
        "sold_qty_year": int(p.sold_qty_year or 0),
        "images": list(p.images or []),
        "supplier_id": p.supplier_id,
    }


def serialize_supplier(s: Supplier) -> dict:
    return {
        "id": s.id, "name": s.name, "email": s.email, "phones": list(s.phones or []),
        "tax_id": s.tax_id, "person_type": s.person_type, "address": s.address,
    }


def search_products(
    db: Session,
    q: Optional[str] = None,
    supplier_id: Optional[int] = None,
    in_stock: bool = True,
) -> List[Product]:
    query = db.query(Product)
    if in_stock:
        query = query.filter(Product.stock_qty > 0)
    if supplier_id is not None:
        query = query.filter(Product.supplier_id == supplier_id)
    if q:
        like = f"%{q.strip()}%"
        query = query.filter(or_(
            Product.short_description.ilike(like),
            Product.detailed_description.ilike(like),
            Product.company_code.ilike(like),
        ))
    return query.order_by(Product.short_description, Product.id).all()


def get_product(db: Session, product_id: int, supplier_id: Optional[int] = None) -> Product:
    p = db.get(Product, product_id)
    if p is None or (supplier_id is not None and p.supplier_id != supplier_id):
        raise NotFound(f"product {product_id}")
    return p


def get_supplier(db: Session, supplier_id: int) -> Supplier:
    s = db.get(Supplier, supplier_id)
    if s is None:
        raise NotFound(f"supplier {supplier_id}")
    return s


def save_product(db: Session, payload: ProductIn, product: Optional[Product] = None) -> Product:
    if payload.supplier_id is not None:
        get_supplier(db, payload.supplier_id)
    if product is None:
        product = Product()
        db.add(product)
    for field, value in payload.model_dump().items():
        setattr(product, field, value)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict("company_code_exists") from exc
    db.refresh(product)
    return product


def save_supplier(db: Session, payload: SupplierIn, supplier: Optional[Supplier] = None) -> Supplier:
    if supplier is None:
        supplier = Supplier()
        db.add(supplier)
    data = payload.model_dump(mode="json")
    for field, value in data.items():
        setattr(supplier, field, value)
    db.commit()
    db.refresh(supplier)
    return supplier


def cart_candidate(p: Product) -> CartCandidate:
    images = list(p.images or [])
    return CartCandidate(
        product_id=str(p.id),
        name=p.short_description,
        unit_price=p.last_sale_price or 0,
        image_ref=images[0] if images else "",
        available_stock=int(p.stock_qty or 0),
    )
