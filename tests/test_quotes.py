import json

import pytest

from fabnest.quotes import service as quote_service
from fabnest.shared.config import settings

def _put(client, qid, headers, **body):
    return client.put(f"/quote-requests/{qid}", json=body, headers=headers)

def test_custom_file_requires_model(client, upload, user_headers, png_bytes):
    img = upload(user_headers, filename="a.png", data=png_bytes(), file_type="image").json()["file"]
    r = client.post(
        "/upload/custom-order",
        json={"fileId": img["id"], "material": "PLA", "quality": "standard"},
        headers=user_headers,
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "File must be a 3D model"

def test_custom_file_rejects_someone_elses_upload(client, upload, user_headers, other_headers):
    f = upload(user_headers).json()["file"]
    r = client.post(
        "/upload/custom-order",
        json={"fileId": f["id"], "material": "PLA", "quality": "standard"},
        headers=other_headers,
    )
    assert r.status_code == 403

def test_custom_file_hides_download_link_from_customer(custom_file, user_headers):
    cf = custom_file(user_headers)
    assert cf["file"]["downloadUrl"] is None
    assert cf["orderItemId"] is None

def test_new_quote_is_pending(quote, user_headers):
    q = quote(user_headers)
    assert q["status"] == "pending"
    assert q["requestedPrice"] is None
    assert q["piSendAttempted"] is False and q["piSent"] is False

def test_duplicate_quote_conflicts(client, custom_file, user_headers):
    cf = custom_file(user_headers)
    assert client.post("/quote-requests", json={"customFileId": cf["id"]}, headers=user_headers).status_code == 201
    r = client.post("/quote-requests", json={"customFileId": cf["id"]}, headers=user_headers)
    assert r.status_code == 400
    assert r.json() == {"detail": "Quote request already exists for this file", "code": "conflict"}

def test_quote_for_someone_elses_custom_file(client, custom_file, user_headers, other_headers):
    cf = custom_file(user_headers)
    r = client.post("/quote-requests", json={"customFileId": cf["id"]}, headers=other_headers)
    assert r.status_code == 403
    r = client.post("/quote-requests", json={"customFileId": "missing"}, headers=other_headers)
    assert r.status_code == 404

def test_list_is_scoped_and_paginated(client, quote, user_headers, other_headers, admin_headers):
    quote(user_headers)
    quote(user_headers)
    quote(other_headers)

    mine = client.get("/quote-requests", headers=user_headers).json()
    assert mine["total"] == 2 and len(mine["items"]) == 2
    assert all(q["customFile"]["file"]["downloadUrl"] is None for q in mine["items"])

    everything = client.get("/quote-requests?limit=500", headers=admin_headers).json()
    assert everything["total"] == 3 and everything["limit"] == 100
    assert all(q["customFile"]["file"]["downloadUrl"].endswith("/download") for q in everything["items"])

    page = client.get("/quote-requests?limit=0&offset=-5", headers=admin_headers).json()
    assert (page["limit"], page["offset"], len(page["items"])) == (1, 0, 1)

    assert client.get("/quote-requests?status=quoted", headers=admin_headers).json()["total"] == 0

def test_get_quote_owner_or_admin(client, quote, user_headers, other_headers, admin_headers):
    q = quote(user_headers)
    assert client.get(f"/quote-requests/{q['id']}", headers=user_headers).status_code == 200
    assert client.get(f"/quote-requests/{q['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/quote-requests/{q['id']}", headers=other_headers).status_code == 403

def test_price_moves_quote_to_quoted(client, quote, user_headers, admin_headers, admin):
    q = quote(user_headers)
    r = _put(client, q["id"], admin_headers, requestedPrice=45)
    assert r.status_code == 200
    body = r.json()["quoteRequest"]
    assert body["status"] == "quoted"
    assert body["requestedPrice"] == 45.0
    assert body["quotedAt"] is not None
    assert body["adminId"] == admin.id
    assert body["piSendAttempted"] is False

def test_only_admin_updates(client, quote, user_headers):
    q = quote(user_headers)
    assert _put(client, q["id"], user_headers, requestedPrice=10).status_code == 403

def test_quoted_requires_price(client, quote, user_headers, admin_headers):
    q = quote(user_headers)
    r = _put(client, q["id"], admin_headers, status="quoted")
    assert r.status_code == 400
    assert r.json()["code"] == "validation_error"

def test_zero_is_a_price(client, quote, user_headers, admin_headers):
    q = quote(user_headers)
    r = _put(client, q["id"], admin_headers, requestedPrice=0, status="quoted")
    assert r.json()["quoteRequest"]["status"] == "quoted"

@pytest.mark.parametrize("body", [{"requestedPrice": -1}, {"status": "shipped"}, {"adminNotes": "   "}])
def test_invalid_updates(client, quote, user_headers, admin_headers, body):
    q = quote(user_headers)
    assert _put(client, q["id"], admin_headers, **body).status_code == 400

def test_admin_cannot_accept_directly(client, quoted, user_headers, admin_headers):
    q = quoted(user_headers)
    r = _put(client, q["id"], admin_headers, status="accepted")
    assert r.status_code == 400
    assert r.json()["code"] == "conflict"

def test_cannot_return_to_pending(client, quoted, user_headers, admin_headers):
    q = quoted(user_headers)
    r = _put(client, q["id"], admin_headers, status="pending")
    assert r.json()["code"] == "conflict"

def test_rejected_is_terminal(client, quote, user_headers, admin_headers):
    q = quote(user_headers)
    assert _put(client, q["id"], admin_headers, status="rejected").json()["quoteRequest"]["status"] == "rejected"
    for body in ({"requestedPrice": 10}, {"status": "quoted"}, {"adminNotes": "again"}):
        r = _put(client, q["id"], admin_headers, **body)
        assert r.status_code == 400 and r.json()["code"] == "conflict"

def test_requote_keeps_quoted(client, quoted, user_headers, admin_headers):
    q = quoted(user_headers, price=45)
    body = _put(client, q["id"], admin_headers, requestedPrice=60, adminNotes=" rush job ").json()["quoteRequest"]
    assert body["status"] == "quoted"
    assert body["requestedPrice"] == 60.0
    assert body["adminNotes"] == "rush job"

def test_send_pi_requires_price_and_changes_nothing(client, quote, user_headers, admin_headers):
    q = quote(user_headers)
    r = _put(client, q["id"], admin_headers, sendPI=True, adminNotes="hello")
    assert r.status_code == 400
    after = client.get(f"/quote-requests/{q['id']}", headers=admin_headers).json()["quoteRequest"]
    assert after["adminNotes"] is None
    assert after["piSendAttempted"] is False

def test_send_pi_dry_run_is_recorded(client, quote, user_headers, admin_headers, outbox):
    q = quote(user_headers)
    r = _put(client, q["id"], admin_headers, requestedPrice=45, adminNotes="Matte finish", sendPI=True)
    assert r.status_code == 200
    body = r.json()["quoteRequest"]
    assert body["piSendAttempted"] is True
    assert body["piSent"] is True
    assert body["piSentAt"] is not None
    assert body["piLastError"] is None
    assert body["adminName"] == "Admin"

    [saved] = list(outbox.glob("pi-email-*.json"))
    message = json.loads(saved.read_text(encoding="utf-8"))
    assert message["to"] == "alice@example.com"
    assert message["subject"] == "Proforma Invoice - part.stl"
    assert "LKR 45.00" in message["text"]
    assert "Matte finish" in message["html"]

def test_send_pi_failure_keeps_quote(client, quote, user_headers, admin_headers, monkeypatch):
    def refuse(_):
        raise RuntimeError("smtp down")

    monkeypatch.setattr(quote_service, "send_pi_email", refuse)
    q = quote(user_headers)
    r = _put(client, q["id"], admin_headers, requestedPrice=45, sendPI=True)
    assert r.status_code == 200
    body = r.json()["quoteRequest"]
    assert body["status"] == "quoted"
    assert body["requestedPrice"] == 45.0
    assert body["piSendAttempted"] is True
    assert body["piSent"] is False
    assert body["piSentAt"] is None
    assert body["piLastError"] == "smtp down"

def test_send_pi_without_transport(client, quoted, user_headers, admin_headers, monkeypatch):
    monkeypatch.setattr(settings, "EMAIL_DRY_RUN", False)
    q = quoted(user_headers)
    body = _put(client, q["id"], admin_headers, sendPI=True).json()["quoteRequest"]
    assert body["piSent"] is False
    assert "No e-mail transport" in body["piLastError"]

def test_requote_with_new_price_resets_delivery(client, quote, user_headers, admin_headers):
    q = quote(user_headers)
    _put(client, q["id"], admin_headers, requestedPrice=45, sendPI=True)
    same = _put(client, q["id"], admin_headers, requestedPrice=45).json()["quoteRequest"]
    assert same["piSent"] is True

    body = _put(client, q["id"], admin_headers, requestedPrice=60).json()["quoteRequest"]
    assert body["piSendAttempted"] is True
    assert body["piSent"] is False
    assert body["piSentAt"] is None

def test_delete_quote(client, quote, user_headers, admin_headers):
    q = quote(user_headers)
    assert client.delete(f"/quote-requests/{q['id']}", headers=user_headers).status_code == 403
    assert client.delete(f"/quote-requests/{q['id']}", headers=admin_headers).json()["ok"] is True
    assert client.get(f"/quote-requests/{q['id']}", headers=admin_headers).status_code == 404
