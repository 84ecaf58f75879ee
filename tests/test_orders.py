from pathlib import Path

import pytest

def _item(**kw):
    item = {
        "productName": "Desk organizer",
        "material": "PLA",
        "size": "M",
        "quantity": 2,
        "unitPrice": 10,
        "totalPrice": 20,
    }
    item.update(kw)
    return item

def _order_body(*items, subtotal=20, shipping=5, tax=0, total=25):
    return {"items": list(items) or [_item()], "subtotal": subtotal, "shipping": shipping, "tax": tax, "total": total}

@pytest.fixture
def product(client, admin_headers):
    r = client.post(
        "/products",
        json={"name": "Desk organizer", "basePrice": 10, "category": "home"},
        headers=admin_headers,
    )
    assert r.status_code == 201, r.text
    return r.json()["product"]

@pytest.fixture
def order(client, user_headers):
    r = client.post("/orders", json=_order_body(), headers=user_headers)
    assert r.status_code == 201, r.text
    return r.json()["order"]

def test_create_catalog_order(client, user_headers, product):
    r = client.post("/orders", json=_order_body(_item(productId=product["id"], color="red")), headers=user_headers)
    assert r.status_code == 201
    order = r.json()["order"]
    assert order["status"] == "pending" and order["total"] == 25.0
    item = order["items"][0]
    assert item["productId"] == product["id"]
    assert item["color"] == "red"
    assert item["isCustom"] is False
    assert item["productImage"] is None
    assert item["customFile"] is None

@pytest.mark.parametrize("body", [
    {"items": [], "subtotal": 0, "shipping": 0, "tax": 0, "total": 0},
    _order_body(total=-1),
    _order_body(_item(quantity=0)),
    _order_body(_item(unitPrice=-3)),
    _order_body(_item(productName="")),
    _order_body(_item(material="x" * 51)),
])
def test_create_order_validation(client, user_headers, body):
    assert client.post("/orders", json=body, headers=user_headers).status_code == 400

def test_unknown_product(client, user_headers):
    r = client.post("/orders", json=_order_body(_item(productId="ghost")), headers=user_headers)
    assert r.status_code == 400
    assert "ghost" in r.json()["detail"]

def test_order_with_custom_file(client, custom_file, user_headers, admin_headers):
    cf = custom_file(user_headers)
    body = _order_body(_item(customFileId=cf["id"], productName="part.stl", size="custom"))
    r = client.post("/orders", json=body, headers=user_headers)
    assert r.status_code == 201
    item = r.json()["order"]["items"][0]
    assert item["isCustom"] is True
    assert item["customFile"]["id"] == cf["id"]

    again = client.post("/orders", json=body, headers=user_headers)
    assert again.status_code == 400
    assert again.json()["code"] == "conflict"

    r = client.get(f"/orders/{r.json()['order']['id']}", headers=admin_headers)
    assert r.json()["order"]["items"][0]["customFile"]["file"]["downloadUrl"].endswith("/download")

def test_custom_file_listed_twice(client, custom_file, user_headers):
    cf = custom_file(user_headers)
    body = _order_body(_item(customFileId=cf["id"]), _item(customFileId=cf["id"]))
    assert client.post("/orders", json=body, headers=user_headers).json()["code"] == "conflict"

def test_custom_file_of_another_user(client, custom_file, user_headers, other_headers):
    cf = custom_file(user_headers)
    r = client.post("/orders", json=_order_body(_item(customFileId=cf["id"])), headers=other_headers)
    assert r.status_code == 403
    r = client.post("/orders", json=_order_body(_item(customFileId="ghost")), headers=other_headers)
    assert r.status_code == 404

def test_list_orders_scoped(client, user_headers, other_headers, admin_headers):
    for headers in (user_headers, user_headers, other_headers):
        client.post("/orders", json=_order_body(), headers=headers)
    mine = client.get("/orders", headers=user_headers).json()
    assert mine["total"] == 2 and mine["limit"] == 50
    everything = client.get("/orders?limit=2", headers=admin_headers).json()
    assert everything["total"] == 3 and len(everything["items"]) == 2
    assert client.get("/orders?status=shipped", headers=admin_headers).json()["total"] == 0

def test_get_order_of_another_user(client, order, other_headers, admin_headers):
    assert client.get(f"/orders/{order['id']}", headers=other_headers).status_code == 403
    assert client.get(f"/orders/{order['id']}", headers=admin_headers).status_code == 200
    assert client.get("/orders/ghost", headers=admin_headers).status_code == 404

def test_customer_cannot_ship(client, order, user_headers):
    r = client.put(f"/orders/{order['id']}", json={"status": "shipped"}, headers=user_headers)
    assert r.status_code == 403
    assert r.json()["detail"] == "You can only cancel orders"

def test_customer_can_cancel(client, order, user_headers):
    r = client.put(
        f"/orders/{order['id']}",
        json={"status": "cancelled", "trackingNumber": "ZZ1"},
        headers=user_headers,
    )
    assert r.status_code == 200
    body = r.json()["order"]
    assert body["status"] == "cancelled"
    assert body["trackingNumber"] is None

def test_other_customer_cannot_cancel(client, order, other_headers):
    r = client.put(f"/orders/{order['id']}", json={"status": "cancelled"}, headers=other_headers)
    assert r.status_code == 403

def test_admin_ships_with_tracking(client, order, admin_headers):
    r = client.put(
        f"/orders/{order['id']}",
        json={"status": "shipped", "trackingNumber": " LK123 ", "estimatedDelivery": "2026-11-02T10:00:00Z"},
        headers=admin_headers,
    )
    assert r.status_code == 200
    body = r.json()["order"]
    assert body["status"] == "shipped"
    assert body["trackingNumber"] == "LK123"
    assert body["estimatedDelivery"].startswith("2026-11-02")

    cleared = client.put(f"/orders/{order['id']}", json={"trackingNumber": ""}, headers=admin_headers)
    assert cleared.json()["order"]["trackingNumber"] is None

def test_admin_unknown_status(client, order, admin_headers):
    r = client.put(f"/orders/{order['id']}", json={"status": "lost"}, headers=admin_headers)
    assert r.status_code == 400
    r = client.put(f"/orders/{order['id']}", json={"trackingNumber": "x" * 101}, headers=admin_headers)
    assert r.status_code == 400

def test_only_admin_deletes(client, order, user_headers, admin_headers):
    assert client.delete(f"/orders/{order['id']}", headers=user_headers).status_code == 403
    assert client.delete(f"/orders/{order['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/orders/{order['id']}", headers=admin_headers).status_code == 404

def test_delete_order_releases_custom_file(client, quoted, user_headers, admin_headers, storage):
    q = quoted(user_headers)
    file_id = q["customFile"]["file"]["id"]
    on_disk = storage / q["customFile"]["file"]["url"].lstrip("/")
    assert on_disk.exists()
    order = client.post(f"/quote-requests/{q['id']}/create-order", json={}, headers=user_headers).json()["order"]

    r = client.delete(f"/orders/{order['id']}", headers=admin_headers)
    assert r.status_code == 200
    assert not Path(on_disk).exists()
    assert client.get(f"/admin/files/{file_id}", headers=admin_headers).status_code == 404
    assert client.get(f"/quote-requests/{q['id']}", headers=admin_headers).status_code == 404
