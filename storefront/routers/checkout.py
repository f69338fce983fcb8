from typing import Optional

from fastapi import APIRouter, Depends, Header

from storefront.context import AppContext, get_context
from storefront.core.schemas import CheckoutForm, OrderReceipt, OrderTotals, PaymentMethodOut, QuoteIn
from storefront.services.postal import lookup_postal_code

router = APIRouter(prefix="/checkout", tags=["checkout"])


def serialize_payment_method(m: PaymentMethodOut):
    return {
        "id": m.id, "kind": m.kind, "details": m.details.model_dump(mode="json"),
        "installment_options": list(m.installment_options),
        "adjustment_percent": float(m.adjustment_percent), "active": m.active,
    }


def _serialize_totals(t: OrderTotals):
    return {
        "subtotal": float(t.subtotal),
        "shipping_fee": float(t.shipping_fee),
        "adjustment_amount": float(t.adjustment_amount),
        "grand_total": float(t.grand_total),
        "installment_count": t.installment_count,
        "per_installment_amount": (float(t.per_installment_amount)
                                   if t.per_installment_amount is not None else None),
        "installment_plan": [{"count": o.count, "amount": float(o.amount)} for o in t.installment_plan],
    }


def _serialize_receipt(r: OrderReceipt):
    return {"sale_id": r.sale_id, "status": r.status, "idempotency_key": r.idempotency_key,
            "totals": _serialize_totals(r.totals), "replay": r.replay}


@router.get("/payment-methods", summary="Formas de pago activas")
def payment_methods(ctx: AppContext = Depends(get_context)):
    methods = ctx.checkout.payment_methods()
    return {"count": len(methods), "methods": [serialize_payment_method(m) for m in methods]}


@router.get("/state", summary="Estado del checkout y clave de idempotencia vigente")
def checkout_state(ctx: AppContext = Depends(get_context)):
    return {"state": ctx.checkout.state.value, "idempotency_key": ctx.checkout.idempotency_key}


@router.post("/quote", summary="Totales del pedido con la forma de pago elegida")
def quote(payload: QuoteIn, ctx: AppContext = Depends(get_context)):
    totals = ctx.checkout.quote(payload.payment_method_id, payload.installments)
    return _serialize_totals(totals)


@router.post("/missing-fields", summary="Campos que impiden finalizar")
def missing(payload: CheckoutForm, ctx: AppContext = Depends(get_context)):
    fields = ctx.checkout.missing_fields(payload)
    return {"missing": fields, "can_submit": ctx.checkout.can_submit(payload),
            "state": ctx.checkout.state.value}


@router.post("/orders", summary="Finalizar pedido")
def submit_order(
    payload: CheckoutForm,
    ctx: AppContext = Depends(get_context),
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key"),
):
    receipt = ctx.checkout.submit(payload, idempotency_key=idempotency_key)
    return _serialize_receipt(receipt)


@router.get("/postal-code/{cep}", summary="Buscar dirección por CEP")
def postal_code(cep: str, ctx: AppContext = Depends(get_context)):
    s = ctx.settings
    addr = lookup_postal_code(cep, s.postal_lookup_url, timeout=s.postal_lookup_timeout)
    return addr.model_dump()
