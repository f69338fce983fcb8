from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import List, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.context import AppContext, get_context, get_db
from storefront.models.catalog import Product, Supplier
from storefront.models.clients import Client
from storefront.models.sales import Sale
from storefront.services.pricing import money

router = APIRouter(prefix="/reports", tags=["reports"])


def month_bounds(d: date) -> Tuple[date, date]:
    first = d.replace(day=1)
    nxt = (first + timedelta(days=32)).replace(day=1)
    return first, nxt - timedelta(days=1)


def _between(model, date_from: date, date_to: date):
    # date_to inclusivo: hasta el final del día
    start = datetime.combine(date_from, datetime.min.time())
    end = datetime.combine(date_to + timedelta(days=1), datetime.min.time())
    return (model.created_at >= start) & (model.created_at < end)


def _sales_in(db: Session, date_from: date, date_to: date) -> List[Sale]:
    return db.query(Sale).filter(_between(Sale, date_from, date_to)).order_by(Sale.id).all()


def _billed(sales: List[Sale]) -> List[Sale]:
    # canceladas no cuentan en facturación
    return [s for s in sales if s.status != "cancelada"]


def _gross(sales: List[Sale]) -> Decimal:
    return sum((money(s.total or 0) for s in sales), money(0))


def growth(current, previous) -> float:
    """Variación % contra el período anterior; 0 si el anterior está vacío."""
    if not previous:
        return 0.0
    return round(float((Decimal(str(current)) - Decimal(str(previous))) / Decimal(str(previous)) * 100), 1)


def _period(date_from: Optional[date], date_to: Optional[date]) -> Tuple[date, date]:
    # sin fechas: el mes corriente; con una sola, el mes de esa fecha
    if date_from is None:
        date_from = month_bounds(date_to or datetime.utcnow().date())[0]
    if date_to is None:
        date_to = month_bounds(date_from)[1]
    if date_to < date_from:
        raise HTTPException(status_code=422, detail="date_to before date_from")
    return date_from, date_to


@router.get("/sales/summary")
def sales_summary(date_from: Optional[date] = None, date_to: Optional[date] = None,
                  db: Session = Depends(get_db)):
    """
    Resumen de ventas del período (por defecto el mes corriente) comparado con el
    mes calendario anterior a date_from. Las canceladas cuentan en by_status pero
    no en la facturación.
    """
    date_from, date_to = _period(date_from, date_to)
    sales = _sales_in(db, date_from, date_to)
    billed = _billed(sales)
    gross = _gross(billed)

    prev_from, prev_to = month_bounds(date_from.replace(day=1) - timedelta(days=1))
    prev_billed = _billed(_sales_in(db, prev_from, prev_to))
    prev_gross = _gross(prev_billed)

    by_status = {}
    by_kind = {}
    by_client = {}
    for s in sales:
        by_status[s.status] = by_status.get(s.status, 0) + 1
    for s in billed:
        total = money(s.total or 0)
        by_kind[s.payment_kind] = by_kind.get(s.payment_kind, money(0)) + total
        if s.client_id is not None:
            orders, amount = by_client.get(s.client_id, (0, money(0)))
            by_client[s.client_id] = (orders + 1, amount + total)

    names = {}
    if by_client:
        names = {c.id: c.name for c in db.query(Client).filter(Client.id.in_(list(by_client))).all()}
    top_clients = sorted(by_client.items(), key=lambda kv: (-kv[1][1], kv[0]))[:5]

    top = (
        db.query(Product)
        .filter(Product.sold_qty_year > 0)
        .order_by(Product.sold_qty_year.desc(), Product.id)
        .limit(5)
        .all()
    )
    cnt = len(billed)
    return {
        "period": {"from": date_from.isoformat(), "to": date_to.isoformat()},
        "sales_count": cnt,
        "gross_total": float(gross),
        "avg_ticket": float(money(gross / cnt)) if cnt > 0 else 0.0,
        "previous_period": {
            "from": prev_from.isoformat(), "to": prev_to.isoformat(),
            "sales_count": len(prev_billed), "gross_total": float(prev_gross),
        },
        "growth": {
            "sales_count_pct": growth(cnt, len(prev_billed)),
            "gross_total_pct": growth(gross, prev_gross),
        },
        "by_status": by_status,
        "by_payment_kind": [{"kind": k, "amount": float(v)} for k, v in sorted(by_kind.items())],
        "new_clients": db.query(Client).filter(_between(Client, date_from, date_to)).count(),
        "top_clients": [{"id": cid, "name": names.get(cid, ""), "orders": orders, "amount": float(amount)}
                        for cid, (orders, amount) in top_clients],
        "top_products": [{"id": p.id, "short_description": p.short_description,
                          "sold_qty_year": int(p.sold_qty_year or 0)} for p in top],
    }


@router.get("/dashboard")
def dashboard(db: Session = Depends(get_db)):
    first, last = month_bounds(datetime.utcnow().date())
    month_sales = _billed(_sales_in(db, first, last))
    return {
        "products": db.query(Product).count(),
        "clients": db.query(Client).count(),
        "suppliers": db.query(Supplier).count(),
        "sales": db.query(Sale).count(),
        "month_sales_count": len(month_sales),
        "month_gross_total": float(_gross(month_sales)),
    }


@router.get("/products/low-stock")
def low_stock(threshold: Optional[int] = None, ctx: AppContext = Depends(get_context),
              db: Session = Depends(get_db)):
    limit = ctx.settings.low_stock_threshold if threshold is None else threshold
    rows = (
        db.query(Product)
        .filter(Product.stock_qty < limit)
        .order_by(Product.stock_qty, Product.id)
        .all()
    )
    return {
        "threshold": limit,
        "count": len(rows),
        "products": [{"id": p.id, "short_description": p.short_description,
                      "stock_qty": int(p.stock_qty or 0)} for p in rows],
    }
