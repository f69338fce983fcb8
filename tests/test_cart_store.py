import json
from decimal import Decimal

from conftest import candidate

from storefront.core.errors import StorageUnavailable
from storefront.services.cart import CartStore
from storefront.services.storage import JsonFileStorage, MemoryStorage


def _cart(storage=None):
    return CartStore(storage or MemoryStorage(), key="cart")


def test_add_same_product_three_times_merges():
    cart = _cart()
    for _ in range(3):
        cart.add_item(candidate("P1", price="10", stock=5))

    lines = cart.lines
    assert len(lines) == 1
    assert lines[0].quantity == 3
    assert cart.total_price() == Decimal("30")


def test_add_clamps_to_available_stock():
    cart = _cart()
    for _ in range(3):
        cart.add_item(candidate("P1", stock=3))
    cart.add_item(candidate("P1", stock=3))
    assert cart.lines[0].quantity == 3


def test_merge_count_is_min_of_adds_and_stock():
    for adds in range(1, 8):
        cart = _cart()
        for _ in range(adds):
            cart.add_item(candidate("P1", stock=4))
        matching = [l for l in cart.lines if l.product_id == "P1"]
        assert len(matching) == 1
        assert matching[0].quantity == min(adds, 4)


def test_add_opens_cart_view():
    cart = _cart()
    assert cart.is_open is False
    cart.add_item(candidate("P1"))
    assert cart.is_open is True
    cart.set_open(False)
    assert cart.is_open is False


def test_add_without_stock_creates_no_line():
    cart = _cart()
    assert cart.add_item(candidate("P1", stock=0)) is None
    assert cart.lines == []


def test_set_quantity_never_exceeds_stock():
    cart = _cart()
    cart.add_item(candidate("P1", stock=4))
    for q in (1, 3, 4, 5, 100):
        cart.set_quantity("P1", q)
        assert cart.lines[0].quantity == min(q, 4)


def test_set_quantity_zero_removes_line():
    cart = _cart()
    cart.add_item(candidate("P1", stock=5))
    cart.add_item(candidate("P1", stock=5))
    cart.add_item(candidate("P2", stock=5))
    assert cart.total_item_count() == 3

    cart.set_quantity("P1", 0)
    assert [l.product_id for l in cart.lines] == ["P2"]
    assert cart.total_item_count() == 1

    cart.set_quantity("P2", -3)
    assert cart.lines == []


def test_set_quantity_unknown_id_is_noop():
    cart = _cart()
    cart.add_item(candidate("P1"))
    cart.set_quantity("nope", 2)
    assert [(l.product_id, l.quantity) for l in cart.lines] == [("P1", 1)]


def test_remove_unknown_id_leaves_cart_unchanged():
    cart = _cart()
    cart.add_item(candidate("P1"))
    cart.add_item(candidate("P2", price="2.50"))
    before = cart.lines

    cart.remove_item("unknown-id")
    assert cart.lines == before


def test_totals_follow_lines():
    cart = _cart()
    cart.add_item(candidate("P1", price="19.90", stock=10))
    cart.add_item(candidate("P1", price="19.90", stock=10))
    cart.add_item(candidate("P2", price="0.35", stock=10))
    cart.set_quantity("P2", 7)

    lines = cart.lines
    assert cart.total_item_count() == sum(l.quantity for l in lines) == 9
    assert cart.total_price() == sum(l.unit_price * l.quantity for l in lines) == Decimal("42.25")


def test_clear_empties_cart():
    cart = _cart()
    cart.add_item(candidate("P1"))
    cart.clear()
    assert cart.lines == []
    assert cart.total_item_count() == 0
    assert cart.total_price() == 0


def test_round_trip_through_file_storage(tmp_path):
    storage = JsonFileStorage(tmp_path / "storage.json")
    cart = _cart(storage)
    cart.add_item(candidate("P1", price="12.34", stock=9))
    cart.add_item(candidate("P2", price="5", stock=2))
    cart.set_quantity("P1", 4)

    reloaded = _cart(JsonFileStorage(tmp_path / "storage.json"))
    assert [(l.product_id, l.quantity, l.unit_price) for l in reloaded.lines] == [
        ("P1", 4, Decimal("12.34")),
        ("P2", 1, Decimal("5")),
    ]


def test_every_mutation_rewrites_storage(tmp_path):
    path = tmp_path / "storage.json"
    cart = _cart(JsonFileStorage(path))
    cart.add_item(candidate("P1"))
    assert len(json.loads(path.read_text())["cart"]) == 1
    cart.remove_item("P1")
    assert json.loads(path.read_text())["cart"] == []


def test_corrupted_storage_starts_empty(tmp_path):
    path = tmp_path / "storage.json"
    path.write_text("{not json", encoding="utf-8")
    cart = _cart(JsonFileStorage(path))
    assert cart.lines == []

    # la siguiente mutación vuelve a dejar un archivo válido
    cart.add_item(candidate("P1"))
    assert json.loads(path.read_text())["cart"][0]["product_id"] == "P1"


def test_invalid_payload_starts_empty():
    storage = MemoryStorage({"cart": json.dumps([{"product_id": "P1", "quantity": "many"}])})
    assert _cart(storage).lines == []


def test_unparseable_price_starts_empty():
    for price in (None, "abc", [1]):
        line = {"product_id": "P1", "name": "Produto P1", "unit_price": price,
                "image_ref": "", "available_stock": 5, "quantity": 1}
        storage = MemoryStorage({"cart": json.dumps([line])})
        cart = _cart(storage)
        assert cart.lines == []

        # sigue operativo
        cart.add_item(candidate("P2"))
        assert [l.product_id for l in cart.lines] == ["P2"]


class _BrokenStorage:
    def get(self, key):
        raise StorageUnavailable("disk gone")

    def set(self, key, value):
        raise StorageUnavailable("disk gone")


def test_storage_failures_keep_memory_state():
    cart = _cart(_BrokenStorage())
    cart.add_item(candidate("P1"))
    cart.add_item(candidate("P1"))
    assert cart.lines[0].quantity == 2
