import json
import threading
import time
from decimal import Decimal

import pytest
from conftest import candidate, checkout_form, method

from storefront.core.errors import (
    CheckoutInProgress,
    CheckoutValidationError,
    NotFound,
    SubmissionFailure,
    SubmissionTimeout,
)
from storefront.core.schemas import CheckoutForm, OrderReceipt
from storefront.services.cart import CartStore
from storefront.services.checkout import CheckoutSession, CheckoutState
from storefront.services.storage import MemoryStorage


class FakeGateway:
    def __init__(self, methods, fail=False, delay=0.0):
        self.methods = {m.id: m for m in methods}
        self.fail = fail
        self.delay = delay
        self.orders = {}
        self.calls = 0
        self.started = threading.Event()
        self.release = None

    def active_payment_methods(self):
        return [m for m in self.methods.values() if m.active]

    def payment_method(self, method_id):
        return self.methods.get(method_id)

    def create_order(self, snapshot, key):
        self.calls += 1
        self.started.set()
        if self.release is not None:
            self.release.wait(5)
        if self.delay:
            time.sleep(self.delay)
        if self.fail:
            raise SubmissionFailure(idempotency_key=key)
        if key in self.orders:
            sale_id, _ = self.orders[key]
            return OrderReceipt(sale_id=sale_id, status="pendente", idempotency_key=key,
                                totals=snapshot.totals, replay=True)
        sale_id = len(self.orders) + 1
        self.orders[key] = (sale_id, snapshot)
        return OrderReceipt(sale_id=sale_id, status="pendente", idempotency_key=key,
                            totals=snapshot.totals)


@pytest.fixture
def cart():
    c = CartStore(MemoryStorage())
    c.add_item(candidate("P1", price="100", stock=5))
    return c


def _session(cart, gateway, tmp_path=None, timeout=5.0):
    audit = str(tmp_path / "audit.jsonl") if tmp_path else None
    return CheckoutSession(cart, gateway, timeout=timeout, audit_file=audit)


def _form(method_id, **kw):
    return CheckoutForm.model_validate(checkout_form(method_id, **kw))


def test_submit_blocked_without_payment_method(cart):
    s = _session(cart, FakeGateway([method(1)]))
    form = _form(None)
    assert s.missing_fields(form) == ["payment_method_id"]
    assert s.can_submit(form) is False
    with pytest.raises(CheckoutValidationError) as ei:
        s.submit(form)
    assert ei.value.fields == ["payment_method_id"]


def test_inactive_method_counts_as_missing(cart):
    s = _session(cart, FakeGateway([method(1, active=False)]))
    assert "payment_method_id" in s.missing_fields(_form(1))


def test_card_fields_required_for_card_methods(cart):
    s = _session(cart, FakeGateway([method(1, kind="cartao_debito")]))
    assert s.missing_fields(_form(1)) == ["card.number", "card.holder_name", "card.expiry", "card.cvv"]


def test_required_fields_listed(cart):
    s = _session(cart, FakeGateway([method(1)]))
    form = CheckoutForm(payment_method_id=1)
    missing = s.missing_fields(form)
    assert "customer.name" in missing and "address.cep" in missing
    assert "address.complement" not in missing


def test_empty_cart_cannot_be_submitted():
    s = _session(CartStore(MemoryStorage()), FakeGateway([method(1)]))
    with pytest.raises(CheckoutValidationError) as ei:
        s.submit(_form(1))
    assert ei.value.fields == ["cart"]


def test_successful_submit_clears_cart_and_rotates_key(cart, tmp_path):
    gw = FakeGateway([method(1, kind="pix", pct="-5")])
    s = _session(cart, gw, tmp_path)
    key = s.idempotency_key

    receipt = s.submit(_form(1))
    assert receipt.sale_id == 1
    assert receipt.totals.grand_total == Decimal("120.90")
    assert cart.lines == [] and cart.is_open is False
    assert s.state is CheckoutState.EDITING
    assert s.idempotency_key != key

    _, snapshot = gw.orders[key]
    assert snapshot.lines[0].product_id == "P1"
    assert snapshot.payment_kind == "pix" and snapshot.card_last4 is None

    events = [json.loads(l) for l in (tmp_path / "audit.jsonl").read_text().splitlines()]
    assert events[-1]["kind"] == "submitted" and events[-1]["sale_id"] == 1


def test_card_snapshot_keeps_only_last4(cart):
    gw = FakeGateway([method(1, kind="cartao_credito", options=[1, 2])])
    s = _session(cart, gw)
    card = {"number": "4111 1111 1111 1234", "holder_name": "MARIA S", "expiry": "12/30", "cvv": "123"}
    s.submit(_form(1, card=card, installments=2), idempotency_key="k-card")
    _, snapshot = gw.orders["k-card"]
    assert snapshot.card_last4 == "1234"
    assert snapshot.installments == 2
    assert "4111" not in snapshot.model_dump_json()


def test_failure_keeps_cart_and_key(cart, tmp_path):
    gw = FakeGateway([method(1)], fail=True)
    s = _session(cart, gw, tmp_path)
    key = s.idempotency_key

    with pytest.raises(SubmissionFailure) as ei:
        s.submit(_form(1))
    assert ei.value.idempotency_key == key
    assert cart.total_item_count() == 1
    assert s.state is CheckoutState.EDITING
    assert s.idempotency_key == key

    # reintento con la misma clave: un solo pedido
    gw.fail = False
    first = s.submit(_form(1))
    assert first.idempotency_key == key
    assert len(gw.orders) == 1


def test_timeout_is_retriable(cart):
    gw = FakeGateway([method(1)], delay=0.5)
    s = _session(cart, gw, timeout=0.05)
    with pytest.raises(SubmissionTimeout) as ei:
        s.submit(_form(1))
    assert ei.value.retriable is True
    assert cart.total_item_count() == 1
    assert s.state is CheckoutState.EDITING
    s.close()


def test_double_submit_rejected_while_in_flight(cart):
    gw = FakeGateway([method(1)])
    gw.release = threading.Event()
    s = _session(cart, gw)
    result = {}

    t = threading.Thread(target=lambda: result.setdefault("r", s.submit(_form(1))))
    t.start()
    assert gw.started.wait(2)
    assert s.state is CheckoutState.SUBMITTING
    with pytest.raises(CheckoutInProgress):
        s.submit(_form(1))

    gw.release.set()
    t.join(5)
    assert result["r"].sale_id == 1
    assert gw.calls == 1


def test_quote_uses_selected_method(cart):
    s = _session(cart, FakeGateway([method(7, kind="cartao_credito", options=[1, 2])]))
    totals = s.quote(7, 2)
    assert totals.grand_total == Decimal("115.90")
    assert totals.per_installment_amount == Decimal("57.95")
    with pytest.raises(NotFound):
        s.quote(99)
