"""
Checkout: estados EDITING y SUBMITTING.

- EDITING: el formulario se puede editar; enviar exige campos obligatorios,
  forma de pago activa y carrito no vacío.
- SUBMITTING: hay un alta en curso; un segundo envío se rechaza (doble click).

Éxito: se vacía el carrito, se cierra la vista del carrito y se genera una
clave nueva para el siguiente pedido. Fallo o timeout: se vuelve a EDITING con
el carrito intacto y la MISMA clave, así el reintento no duplica el pedido.
"""
from __future__ import annotations

import logging
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from storefront.core.errors import (
    CheckoutInProgress,
    CheckoutValidationError,
    InvalidInstallments,
    NotFound,
    SubmissionFailure,
    SubmissionTimeout,
)
from storefront.core.schemas import (
    CARD_KINDS,
    CheckoutForm,
    OrderReceipt,
    OrderSnapshot,
    OrderTotals,
    PaymentMethodOut,
    only_digits,
)
from storefront.services.pricing import DEFAULT_SHIPPING_FEE, compute_totals
from storefront.utils.atomic_file import append_jsonl_atomic

log = logging.getLogger(__name__)

_REQUIRED_CUSTOMER = ("name", "cpf", "email", "phone")
_REQUIRED_ADDRESS = ("cep", "street", "number", "neighborhood", "city", "state")
_REQUIRED_CARD = ("number", "holder_name", "expiry", "cvv")


class CheckoutState(str, Enum):
    EDITING = "editing"
    SUBMITTING = "submitting"


def new_idempotency_key() -> str:
    return uuid.uuid4().hex


def missing_fields(form: CheckoutForm, method: Optional[PaymentMethodOut]) -> List[str]:
    """Campos que bloquean el envío, en el orden en que aparecen en el formulario."""
    missing = [f"customer.{f}" for f in _REQUIRED_CUSTOMER if not getattr(form.customer, f).strip()]
    missing += [f"address.{f}" for f in _REQUIRED_ADDRESS if not getattr(form.address, f).strip()]
    if form.payment_method_id is None:
        missing.append("payment_method_id")
    elif method is None or not method.active:
        missing.append("payment_method_id")
    elif method.kind in CARD_KINDS:
        card = form.card
        missing += [f"card.{f}" for f in _REQUIRED_CARD if card is None or not getattr(card, f).strip()]
    return missing


def card_last4(form: CheckoutForm) -> Optional[str]:
    if form.card is None:
        return None
    digits = only_digits(form.card.number)
    return digits[-4:] if len(digits) >= 4 else None


class CheckoutSession:
    def __init__(
        self,
        cart,
        gateway,
        shipping_fee=DEFAULT_SHIPPING_FEE,
        timeout: float = 15.0,
        audit_file: Optional[str] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self.cart = cart
        self.gateway = gateway
        self.shipping_fee = shipping_fee
        self.timeout = timeout
        self.audit_file = audit_file
        self._executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="checkout")
        self._lock = threading.Lock()
        self.state = CheckoutState.EDITING
        self.idempotency_key = new_idempotency_key()

    # ---------- consultas ----------
    def payment_methods(self) -> List[PaymentMethodOut]:
        return self.gateway.active_payment_methods()

    def _active_method(self, method_id: Optional[int]) -> Optional[PaymentMethodOut]:
        if method_id is None:
            return None
        method = self.gateway.payment_method(method_id)
        if method is None or not method.active:
            return None
        return method

    def quote(self, method_id: Optional[int] = None, installments: Optional[int] = None) -> OrderTotals:
        method = self._active_method(method_id)
        if method_id is not None and method is None:
            raise NotFound(f"payment method {method_id}")
        return compute_totals(self.cart.lines, method, self.shipping_fee, installments)

    def missing_fields(self, form: CheckoutForm) -> List[str]:
        return missing_fields(form, self._active_method(form.payment_method_id))

    def can_submit(self, form: CheckoutForm) -> bool:
        return (
            self.state is CheckoutState.EDITING
            and self.cart.total_item_count() > 0
            and not self.missing_fields(form)
        )

    # ---------- envío ----------
    def _build_snapshot(self, form: CheckoutForm) -> OrderSnapshot:
        method = self._active_method(form.payment_method_id)
        fields = missing_fields(form, method)
        lines = self.cart.lines
        if not lines:
            fields.append("cart")
        if fields:
            raise CheckoutValidationError(fields)
        try:
            totals = compute_totals(lines, method, self.shipping_fee, form.installments)
        except InvalidInstallments as exc:
            raise CheckoutValidationError(["installments"], str(exc)) from exc
        return OrderSnapshot(
            customer=form.customer,
            address=form.address,
            lines=lines,
            totals=totals,
            payment_method_id=method.id,
            payment_kind=method.kind,
            installments=totals.installment_count or 1,
            card_last4=card_last4(form) if method.kind in CARD_KINDS else None,
        )

    def submit(self, form: CheckoutForm, idempotency_key: Optional[str] = None) -> OrderReceipt:
        with self._lock:
            if self.state is CheckoutState.SUBMITTING:
                raise CheckoutInProgress("checkout_in_progress")
            snapshot = self._build_snapshot(form)
            key = idempotency_key or self.idempotency_key
            self.state = CheckoutState.SUBMITTING

        try:
            future = self._executor.submit(self.gateway.create_order, snapshot, key)
            try:
                receipt = future.result(timeout=self.timeout)
            except FutureTimeout as exc:
                # el alta sigue su curso; reintentar con la misma clave es seguro
                raise SubmissionTimeout("order_submission_timeout", idempotency_key=key) from exc

            self.cart.clear()
            self.cart.set_open(False)
            with self._lock:
                if key == self.idempotency_key:
                    self.idempotency_key = new_idempotency_key()
        except SubmissionFailure as exc:
            log.warning("checkout failed key=%s: %s", key, exc.message)
            self._audit("failed", key, snapshot, error=exc.message)
            raise
        finally:
            with self._lock:
                self.state = CheckoutState.EDITING

        self._audit("submitted", key, snapshot, sale_id=receipt.sale_id, replay=receipt.replay)
        return receipt

    def _audit(self, kind: str, key: str, snapshot: OrderSnapshot, **extra) -> None:
        if not self.audit_file:
            return
        ev = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "kind": kind,
            "idempotency_key": key,
            "grand_total": str(snapshot.totals.grand_total),
            "payment_method_id": snapshot.payment_method_id,
            **extra,
        }
        try:
            append_jsonl_atomic(self.audit_file, ev)
        except OSError:
            # no rompemos el checkout si la auditoría falla
            log.exception("checkout audit write failed")

    def close(self) -> None:
        self._executor.shutdown(wait=False)
