def _post(client, path, json=None):
    r = client.post(path, json=json)
    return r.status_code, r.json()


def _item(pid="P1", price=10, stock=5):
    return {"product_id": pid, "name": f"Produto {pid}", "unit_price": price,
            "image_ref": "", "available_stock": stock}


def test_cart_starts_empty(client):
    r = client.get("/cart")
    assert r.status_code == 200
    assert r.json() == {"items": [], "total_items": 0, "total_price": 0.0, "is_open": False}


def test_add_three_times_then_totals(client):
    for _ in range(3):
        st, js = _post(client, "/cart/items", _item())
        assert st == 200
    assert js["total_items"] == 3
    assert js["total_price"] == 30.0
    assert js["is_open"] is True
    assert js["items"][0]["line_total"] == 30.0


def test_quantity_update_clamp_and_remove(client):
    _post(client, "/cart/items", _item("P1", stock=3))
    _post(client, "/cart/items", _item("P2", price=2.5))

    js = client.put("/cart/items/P1", json={"quantity": 10}).json()
    assert js["items"][0]["quantity"] == 3

    js = client.put("/cart/items/P1", json={"quantity": 0}).json()
    assert [i["product_id"] for i in js["items"]] == ["P2"]

    js = client.delete("/cart/items/unknown-id").json()
    assert js["total_items"] == 1

    js = client.delete("/cart").json()
    assert js["items"] == []


def test_negative_price_rejected(client):
    st, _ = _post(client, "/cart/items", _item(price=-1))
    assert st == 422


def test_garbage_price_rejected(client):
    for price in ("abc", None):
        st, _ = _post(client, "/cart/items", _item(price=price))
        assert st == 422
    assert client.get("/cart").json()["items"] == []


def test_add_from_catalog_product(client, catalog):
    st, js = _post(client, f"/cart/items/from-product/{catalog['coffee_id']}")
    assert st == 200
    line = js["items"][0]
    assert line["product_id"] == str(catalog["coffee_id"])
    assert line["unit_price"] == 40.0
    assert line["available_stock"] == 3
    assert line["image_ref"] == "https://cdn.test/cafe.jpg"

    st, js = _post(client, "/cart/items/from-product/9999")
    assert st == 404


def test_cart_survives_restart(ctx, client):
    _post(client, "/cart/items", _item("P9", price=7, stock=2))
    _post(client, "/cart/items", _item("P9", price=7, stock=2))

    from storefront.services.cart import CartStore

    reloaded = CartStore(ctx.storage, key=ctx.settings.cart_storage_key)
    assert [(l.product_id, l.quantity) for l in reloaded.lines] == [("P9", 2)]


def test_open_flag(client):
    js = client.post("/cart/open", json={"open": True}).json()
    assert js["is_open"] is True
    js = client.post("/cart/open", json={"open": False}).json()
    assert js["is_open"] is False
