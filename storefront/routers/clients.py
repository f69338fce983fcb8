from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.context import get_db
from storefront.core.errors import Conflict, NotFound
from storefront.core.schemas import ClientIn
from storefront.models.sales import Sale
from storefront.services.clients import (
    find_by_tax_id,
    get_client,
    save_client,
    search_clients,
    serialize_client,
)

router = APIRouter(prefix="/admin/clients", tags=["admin", "clients"])


@router.get("")
def list_clients(q: Optional[str] = None, db: Session = Depends(get_db)):
    rows = search_clients(db, q=q)
    return {"count": len(rows), "clients": [serialize_client(c) for c in rows]}


@router.get("/by-tax-id/{tax_id}", summary="Buscar cliente por CPF / CNPJ")
def client_by_tax_id(tax_id: str, db: Session = Depends(get_db)):
    c = find_by_tax_id(db, tax_id)
    if c is None:
        raise NotFound(f"client {tax_id}")
    return serialize_client(c)


@router.get("/{client_id}")
def client_detail(client_id: int, db: Session = Depends(get_db)):
    return serialize_client(get_client(db, client_id))


@router.post("")
def create_client(payload: ClientIn, db: Session = Depends(get_db)):
    return serialize_client(save_client(db, payload))


@router.put("/{client_id}")
def update_client(client_id: int, payload: ClientIn, db: Session = Depends(get_db)):
    return serialize_client(save_client(db, payload, get_client(db, client_id)))


@router.delete("/{client_id}")
def delete_client(client_id: int, db: Session = Depends(get_db)):
    c = get_client(db, client_id)
    if db.query(Sale).filter_by(client_id=client_id).first():
        raise Conflict("client_has_sales")
    db.delete(c)
    db.commit()
    return {"ok": True, "deleted": client_id}
