"""
Calculadora de totales del pedido. Funciones puras: mismas entradas, mismo resultado.

    subtotal    = sum(unit_price * quantity)
    ajuste      = subtotal * adjustment_percent / 100     (0 sin forma de pago)
    total       = subtotal + frete - ajuste
    parcela(n)  = total / n                              (solo cartão de crédito)

El ajuste se RESTA tal cual viene firmado: con -5% el total sube 5% del subtotal.
Así se comporta la tienda en producción con los datos cargados hoy; no invertir
el signo sin migrar antes los porcentajes guardados.
"""
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional

from storefront.core.errors import InvalidInstallments
from storefront.core.schemas import CREDIT_CARD, CartLine, InstallmentOption, OrderTotals, PaymentMethodOut
from storefront.services.cart import lines_total

DEFAULT_SHIPPING_FEE = Decimal("15.90")


def money(v) -> Decimal:
    return (v.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
            if isinstance(v, Decimal) else Decimal(str(v)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def adjustment_for(subtotal: Decimal, method: Optional[PaymentMethodOut]) -> Decimal:
    if method is None:
        return Decimal("0.00")
    return money(subtotal * Decimal(str(method.adjustment_percent)) / Decimal("100"))


def offers_installments(method: Optional[PaymentMethodOut]) -> bool:
    return bool(method and method.kind == CREDIT_CARD and method.installment_options)


def installment_plan(method: Optional[PaymentMethodOut], grand_total: Decimal) -> List[InstallmentOption]:
    if not offers_installments(method):
        return []
    return [InstallmentOption(count=n, amount=money(grand_total / n)) for n in method.installment_options]


def validate_installments(method: Optional[PaymentMethodOut], count: Optional[int]) -> int:
    """Devuelve el número de parcelas efectivo o lanza InvalidInstallments."""
    if count is None:
        return 1
    if offers_installments(method):
        if count == 1 or count in method.installment_options:
            return count
        raise InvalidInstallments(f"installments {count} not offered")
    if count != 1:
        raise InvalidInstallments("installments only allowed for credit card")
    return 1


def compute_totals(
    lines: Iterable[CartLine],
    method: Optional[PaymentMethodOut] = None,
    shipping_fee=DEFAULT_SHIPPING_FEE,
    installments: Optional[int] = None,
) -> OrderTotals:
    subtotal = money(lines_total(lines))
    shipping = money(shipping_fee)
    adjustment = adjustment_for(subtotal, method)
    grand_total = subtotal + shipping - adjustment

    count = validate_installments(method, installments)
    plan = installment_plan(method, grand_total)
    per_installment = money(grand_total / count) if offers_installments(method) else None

    return OrderTotals(
        subtotal=subtotal,
        shipping_fee=shipping,
        adjustment_amount=adjustment,
        grand_total=grand_total,
        installment_count=count if offers_installments(method) else None,
        per_installment_amount=per_installment,
        installment_plan=plan,
    )
