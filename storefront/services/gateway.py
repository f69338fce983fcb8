"""
Acceso a datos para el checkout: formas de pago activas y alta de pedidos.

El alta es idempotente por `idempotency_key` (columna única en sale): si la
clave ya existe se devuelve el pedido original marcado como replay. Si el CPF
del comprador coincide con un cliente registrado, la venta queda vinculada.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.core.errors import SubmissionFailure
from storefront.core.schemas import (
    CREDIT_CARD,
    InstallmentOption,
    OrderReceipt,
    OrderSnapshot,
    OrderTotals,
    PaymentMethodOut,
)
from storefront.models.catalog import Product
from storefront.models.payment import PaymentMethod
from storefront.models.sales import Sale
from storefront.services.clients import find_by_tax_id, register_purchase

log = logging.getLogger(__name__)


def to_payment_method_out(pm: PaymentMethod) -> PaymentMethodOut:
    details = dict(pm.details or {})
    details["kind"] = pm.kind
    return PaymentMethodOut(
        id=pm.id,
        kind=pm.kind,
        details=details,
        installment_options=list(pm.installment_options or []),
        adjustment_percent=Decimal(str(pm.adjustment_percent or 0)),
        active=bool(pm.active),
    )


def _receipt(sale: Sale, replay: bool) -> OrderReceipt:
    # el replay devuelve los mismos totales que la respuesta original
    credit = sale.payment_kind == CREDIT_CARD
    per_installment = sale.per_installment_amount
    return OrderReceipt(
        sale_id=sale.id,
        status=sale.status,
        idempotency_key=sale.idempotency_key,
        totals=OrderTotals(
            subtotal=Decimal(str(sale.subtotal)),
            shipping_fee=Decimal(str(sale.shipping_total)),
            adjustment_amount=Decimal(str(sale.adjustment_total)),
            grand_total=Decimal(str(sale.total)),
            installment_count=sale.installments if credit else None,
            per_installment_amount=Decimal(str(per_installment)) if per_installment is not None else None,
            installment_plan=[InstallmentOption(**o) for o in (sale.installment_plan or [])],
        ),
        replay=replay,
    )


def _product_pk(product_id: str) -> Optional[int]:
    try:
        return int(product_id)
    except (TypeError, ValueError):
        return None


class DataGateway:
    def __init__(self, session_factory):
        self._session_factory = session_factory

    def active_payment_methods(self) -> List[PaymentMethodOut]:
        db: Session = self._session_factory()
        try:
            rows = (
                db.query(PaymentMethod)
                .filter(PaymentMethod.active.is_(True))
                .order_by(PaymentMethod.kind, PaymentMethod.id)
                .all()
            )
            return [to_payment_method_out(pm) for pm in rows]
        finally:
            db.close()

    def payment_method(self, method_id: int) -> Optional[PaymentMethodOut]:
        db: Session = self._session_factory()
        try:
            pm = db.get(PaymentMethod, method_id)
            return to_payment_method_out(pm) if pm else None
        finally:
            db.close()

    def create_order(self, snapshot: OrderSnapshot, idempotency_key: str) -> OrderReceipt:
        db: Session = self._session_factory()
        try:
            dup = db.query(Sale).filter_by(idempotency_key=idempotency_key).first()
            if dup:
                log.info("order replay for key %s -> sale %s", idempotency_key, dup.id)
                return _receipt(dup, replay=True)

            t = snapshot.totals
            sale = Sale(
                customer=snapshot.customer.model_dump(mode="json"),
                items=[l.model_dump(mode="json") for l in snapshot.lines],
                subtotal=t.subtotal,
                adjustment_total=t.adjustment_amount,
                shipping_total=t.shipping_fee,
                total=t.grand_total,
                payment_method_id=snapshot.payment_method_id,
                payment_kind=snapshot.payment_kind,
                installments=snapshot.installments,
                per_installment_amount=t.per_installment_amount,
                installment_plan=[o.model_dump(mode="json") for o in t.installment_plan],
                card_last4=snapshot.card_last4,
                delivery=snapshot.address.model_dump(mode="json"),
                status="pendente",
                idempotency_key=idempotency_key,
            )
            # venta vinculada al cliente registrado con el mismo CPF / CNPJ
            client = find_by_tax_id(db, snapshot.customer.cpf)
            if client is not None:
                sale.client_id = client.id
                register_purchase(client, t.grand_total)
            db.add(sale)

            # Baja de stock y acumulado anual de vendidos
            for line in snapshot.lines:
                pk = _product_pk(line.product_id)
                p = db.get(Product, pk) if pk is not None else None
                if p is None:
                    continue
                p.stock_qty = max(0, int(p.stock_qty or 0) - line.quantity)
                p.sold_qty_year = int(p.sold_qty_year or 0) + line.quantity

            db.commit()
            db.refresh(sale)
            log.info("order created sale=%s total=%s key=%s", sale.id, sale.total, idempotency_key)
            return _receipt(sale, replay=False)
        except IntegrityError:
            # otra petición con la misma clave ganó la carrera
            db.rollback()
            dup = db.query(Sale).filter_by(idempotency_key=idempotency_key).first()
            if dup:
                return _receipt(dup, replay=True)
            raise SubmissionFailure("order_rejected", idempotency_key=idempotency_key)
        except SQLAlchemyError as exc:
            db.rollback()
            log.exception("order submission failed")
            raise SubmissionFailure("order_submission_failed", idempotency_key=idempotency_key) from exc
        finally:
            db.close()
