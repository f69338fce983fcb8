from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.context import get_db
from storefront.core.errors import NotFound
from storefront.core.schemas import SaleStatusIn
from storefront.models.sales import SALE_STATUSES, Sale

router = APIRouter(prefix="/admin/sales", tags=["admin", "sales"])


def serialize_sale(s: Sale):
    return {
        "sale_id": s.id, "status": s.status, "customer": s.customer, "items": s.items,
        "subtotal": float(s.subtotal or 0), "adjustment_total": float(s.adjustment_total or 0),
        "shipping_total": float(s.shipping_total or 0), "total": float(s.total or 0),
        "client_id": s.client_id, "payment_method_id": s.payment_method_id, "payment_kind": s.payment_kind,
        "installments": s.installments,
        "per_installment_amount": float(s.per_installment_amount) if s.per_installment_amount is not None else None,
        "card_last4": s.card_last4, "delivery": s.delivery,
        "idempotency_key": s.idempotency_key,
        "created_at": s.created_at.isoformat() if s.created_at else None,
    }


def _get_sale(db: Session, sale_id: int) -> Sale:
    s = db.get(Sale, sale_id)
    if s is None:
        raise NotFound(f"sale {sale_id}")
    return s


@router.get("")
def list_sales(status: Optional[str] = None, client_id: Optional[int] = None, limit: int = 100,
               db: Session = Depends(get_db)):
    if status is not None and status not in SALE_STATUSES:
        raise HTTPException(status_code=422, detail=f"unknown status {status}")
    limit = max(1, min(1000, limit))
    query = db.query(Sale)
    if status:
        query = query.filter(Sale.status == status)
    if client_id is not None:
        query = query.filter(Sale.client_id == client_id)
    rows = query.order_by(Sale.id.desc()).limit(limit).all()
    return {"count": len(rows), "sales": [serialize_sale(s) for s in rows]}


@router.get("/{sale_id}")
def sale_detail(sale_id: int, db: Session = Depends(get_db)):
    return serialize_sale(_get_sale(db, sale_id))


@router.put("/{sale_id}/status")
def update_status(sale_id: int, payload: SaleStatusIn, db: Session = Depends(get_db)):
    s = _get_sale(db, sale_id)
    s.status = payload.status
    db.commit()
    db.refresh(s)
    return serialize_sale(s)
