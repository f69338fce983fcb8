from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.context import get_db
from storefront.services.catalog import get_product, search_products, serialize_product

router = APIRouter(prefix="/products", tags=["storefront"])


@router.get("", summary="Catálogo (solo con stock por defecto)")
def list_products(
    q: Optional[str] = None,
    supplier_id: Optional[int] = None,
    include_out_of_stock: bool = False,
    db: Session = Depends(get_db),
):
    rows = search_products(db, q=q, supplier_id=supplier_id, in_stock=not include_out_of_stock)
    return {"count": len(rows), "products": [serialize_product(p) for p in rows]}


@router.get("/{product_id}", summary="Detalle de producto")
def product_detail(product_id: int, db: Session = Depends(get_db)):
    return serialize_product(get_product(db, product_id))
