from quote_engine.services import price_quote_service

QUOTE_PAYLOAD = {
    "name": "Offer A",
    "base_minimum_price_mp": 1000,
    "target_markup_percentage": 20,
    "final_offer_price_fop": 1000,
    "overall_discount_percentage": 0,
    "upfront_payment_percentage": 30,
    "upfront_payment_due_days": 0,
    "subsequent_installments_count": 2,
    "subsequent_installments_interval_days": 30,
    "additional_costs": [{"description": "Freight", "amount": 50}],
}


def _create(client, headers, deal_id="deal-1", payload=None):
    r = client.post(
        f"/api/deals/{deal_id}/price-quotes", json=payload or QUOTE_PAYLOAD, headers=headers
    )
    assert r.status_code == 201, r.text
    return r.json()


def test_requires_bearer_token(client):
    r = client.get("/api/deals/deal-1/price-quotes")
    assert r.status_code == 401

    r = client.get(
        "/api/deals/deal-1/price-quotes", headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert r.status_code == 401


def test_create_and_read_back(client, auth_headers):
    body = _create(client, auth_headers)

    assert body["deal_id"] == "deal-1"
    assert body["user_id"] == "user-1"
    assert body["version_number"] == 1
    assert body["status"] == "draft"
    assert body["calculated_total_direct_cost"] == 1050
    assert body["calculated_target_price_tp"] == 1200
    assert body["calculated_full_target_price_ftp"] == 1250
    assert body["escalation_status"] == "requires_ceo_approval"
    assert body["escalation_details"]["reason"] == "Offer price below total direct cost"
    assert [c["description"] for c in body["additional_costs"]] == ["Freight"]
    assert [e["entry_type"] for e in body["invoice_schedule_entries"]] == [
        "upfront",
        "installment_1",
        "installment_2",
    ]

    r = client.get(f"/api/price-quotes/{body['id']}", headers=auth_headers)
    assert r.status_code == 200, r.text
    assert r.json() == body


def test_list_for_deal(client, auth_headers):
    a = _create(client, auth_headers)
    b = _create(client, auth_headers)
    _create(client, auth_headers, deal_id="deal-2")

    r = client.get("/api/deals/deal-1/price-quotes", headers=auth_headers)
    assert r.status_code == 200, r.text
    ids = [q["id"] for q in r.json()["items"]]
    assert sorted(ids) == sorted([a["id"], b["id"]])

    r = client.get("/api/deals/empty/price-quotes", headers=auth_headers)
    assert r.json() == {"items": []}


def test_patch_applies_only_sent_fields(client, auth_headers):
    created = _create(client, auth_headers)

    r = client.patch(
        f"/api/price-quotes/{created['id']}",
        json={"final_offer_price_fop": 1500, "name": None},
        headers=auth_headers,
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["version_number"] == 2
    assert body["name"] is None
    assert body["base_minimum_price_mp"] == 1000
    assert body["final_offer_price_fop"] == 1500
    assert body["escalation_status"] == "ok"
    # Costs were not sent, so they are replaced by an empty set.
    assert body["additional_costs"] == []
    assert body["calculated_total_direct_cost"] == 1000


def test_patch_with_stale_expected_version_is_conflict(client, auth_headers):
    created = _create(client, auth_headers)

    r = client.patch(
        f"/api/price-quotes/{created['id']}",
        json={"final_offer_price_fop": 1500, "expected_version": 3},
        headers=auth_headers,
    )
    assert r.status_code == 409, r.text
    detail = r.json()["detail"]
    assert detail["code"] == "price_quote_version_conflict"
    assert detail["operation"] == "update"
    assert detail["quote_id"] == created["id"]


def test_patch_missing_quote_is_not_found(client, auth_headers):
    r = client.patch("/api/price-quotes/missing", json={"name": "x"}, headers=auth_headers)
    assert r.status_code == 404
    assert r.json()["detail"]["code"] == "price_quote_not_found"

    r = client.get("/api/price-quotes/missing", headers=auth_headers)
    assert r.status_code == 404


def test_schema_rejects_out_of_range_input(client, auth_headers):
    for payload in (
        {"base_minimum_price_mp": -1},
        {"overall_discount_percentage": 150},
        {"subsequent_installments_count": -1},
        {"additional_costs": [{"description": "", "amount": 10}]},
        {"calculated_target_price_tp": 10},
    ):
        r = client.post("/api/deals/deal-1/price-quotes", json=payload, headers=auth_headers)
        assert r.status_code == 422, payload


def test_delete(client, auth_headers):
    created = _create(client, auth_headers)

    r = client.delete(f"/api/price-quotes/{created['id']}", headers=auth_headers)
    assert r.status_code == 200
    assert r.json() is True

    r = client.delete(f"/api/price-quotes/{created['id']}", headers=auth_headers)
    assert r.status_code == 404


def test_preview_does_not_persist(client, auth_headers):
    r = client.post(
        "/api/price-quotes/preview?deal_id=deal-1", json=QUOTE_PAYLOAD, headers=auth_headers
    )
    assert r.status_code == 200, r.text
    preview = r.json()
    assert preview["id"].startswith("preview-")
    assert preview["version_number"] == 0
    assert preview["deal_id"] == "deal-1"
    assert [c["id"] for c in preview["additional_costs"]] == ["temp-ac-0"]

    created = _create(client, auth_headers)
    for key in (
        "calculated_total_direct_cost",
        "calculated_target_price_tp",
        "calculated_full_target_price_ftp",
        "calculated_discounted_offer_price",
        "calculated_effective_markup_fop_over_mp",
        "escalation_status",
        "escalation_details",
    ):
        assert preview[key] == created[key]

    r = client.get("/api/deals/deal-1/price-quotes", headers=auth_headers)
    assert len(r.json()["items"]) == 1


def test_persistence_failure_is_service_unavailable(client, auth_headers, monkeypatch):
    from sqlalchemy.exc import OperationalError

    created = _create(client, auth_headers)

    def _boom(db, rows):
        raise OperationalError("INSERT", {}, Exception("database is locked"))

    monkeypatch.setattr(price_quote_service.ADDITIONAL_COSTS_REPLACER, "_insert", _boom)

    r = client.patch(
        f"/api/price-quotes/{created['id']}",
        json={"final_offer_price_fop": 2000, "additional_costs": [{"description": "x", "amount": 1}]},
        headers=auth_headers,
    )
    assert r.status_code == 503, r.text
    assert r.json()["detail"]["code"] == "price_quote_partial_write"

    r = client.get(f"/api/price-quotes/{created['id']}", headers=auth_headers)
    assert r.json()["version_number"] == 1
    assert r.json()["final_offer_price_fop"] == 1000


def test_health(client):
    for path in ("/health", "/healthz"):
        r = client.get(path)
        assert r.status_code == 200
        assert r.json()["status"] == "ok"
    assert client.get("/health").headers.get("X-Request-ID")


def test_storage_failure_on_read_is_service_unavailable(client, auth_headers, monkeypatch):
    from sqlalchemy.exc import OperationalError
    from sqlalchemy.orm import Session

    created = _create(client, auth_headers)

    def _down(*args, **kwargs):
        raise OperationalError("SELECT price_quotes", {}, Exception("connection reset"))

    monkeypatch.setattr(Session, "get", _down)
    monkeypatch.setattr(Session, "query", _down)

    r = client.get("/api/deals/deal-1/price-quotes", headers=auth_headers)
    assert r.status_code == 503, r.text
    assert r.json()["detail"]["operation"] == "list"

    r = client.get(f"/api/price-quotes/{created['id']}", headers=auth_headers)
    assert r.status_code == 503, r.text
    assert r.json()["detail"]["code"] == "price_quote_persistence_failed"
    assert r.json()["detail"]["quote_id"] == created["id"]

    r = client.delete(f"/api/price-quotes/{created['id']}", headers=auth_headers)
    assert r.status_code == 503, r.text
    assert r.json()["detail"]["operation"] == "delete"
