"""Clientes del back office y su vínculo con las ventas (por CPF / CNPJ)."""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.core.errors import Conflict, NotFound
from storefront.core.schemas import ClientIn, only_digits
from storefront.models.clients import Client


def serialize_client(c: Client) -> dict:
    return {
        "id": c.id,
        "name": c.name,
        "tax_id": c.tax_id,
        "person_type": c.person_type,
        "emails": list(c.emails or []),
        "phones": list(c.phones or []),
        "mailing_address": c.mailing_address,
        "delivery_address": c.delivery_address,
        "receiving_hours": c.receiving_hours or "",
        "delivery_notes": c.delivery_notes or "",
        "payment_info": c.payment_info,
        "first_purchase_at": c.first_purchase_at.isoformat() if c.first_purchase_at else None,
        "last_purchase_at": c.last_purchase_at.isoformat() if c.last_purchase_at else None,
        "largest_purchase": float(c.largest_purchase) if c.largest_purchase is not None else None,
        "created_at": c.created_at.isoformat() if c.created_at else None,
    }


def search_clients(db: Session, q: Optional[str] = None) -> List[Client]:
    query = db.query(Client)
    if q:
        conds = [Client.name.ilike(f"%{q.strip()}%")]
        digits = only_digits(q)
        if digits:
            conds.append(Client.tax_id.like(f"%{digits}%"))
        query = query.filter(or_(*conds))
    return query.order_by(Client.name, Client.id).all()


def get_client(db: Session, client_id: int) -> Client:
    c = db.get(Client, client_id)
    if c is None:
        raise NotFound(f"client {client_id}")
    return c


def find_by_tax_id(db: Session, tax_id: Optional[str]) -> Optional[Client]:
    digits = only_digits(tax_id)
    if not digits:
        return None
    return db.query(Client).filter_by(tax_id=digits).first()


def save_client(db: Session, payload: ClientIn, client: Optional[Client] = None) -> Client:
    if client is None:
        client = Client()
        db.add(client)
    for field, value in payload.model_dump(mode="json").items():
        setattr(client, field, value)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict("tax_id_exists") from exc
    db.refresh(client)
    return client


def register_purchase(client: Client, total: Decimal, when: Optional[datetime] = None) -> None:
    """Primera / última compra y mayor compra del cliente (sin commit)."""
    when = when or datetime.utcnow()
    if client.first_purchase_at is None:
        client.first_purchase_at = when
    client.last_purchase_at = when
    if client.largest_purchase is None or Decimal(str(client.largest_purchase)) < total:
        client.largest_purchase = total
