"""HTTP API tests."""

from marketplace.exceptions import BackendError


def test_root_and_health(client):
    assert client.get("/").json()["status"] == "running"

    health = client.get("/health").json()
    assert health["status"] == "healthy"
    assert health["backend_connected"] is True
    assert health["listings_loaded"] == 5


def test_search_with_camel_case_params(client):
    resp = client.get(
        "/properties",
        params={"operation": "venta", "location": "caba", "priceMax": "200000"},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert [p["id"] for p in body["properties"]] == [4, 5]
    assert body["count"] == 2
    assert body["active_filters"] == 3


def test_search_rooms_and_amenities(client):
    body = client.get(
        "/properties",
        params={"rooms": "5+", "amenities": ["Piscina", "Gimnasio"]},
    ).json()
    assert [p["id"] for p in body["properties"]] == [2]
    assert body["active_filters"] == 2


def test_operation_pages(client):
    assert client.get("/properties/buy").json()["count"] == 4
    assert [p["id"] for p in client.get("/properties/rent").json()["properties"]] == [3]
    assert [p["id"] for p in client.get("/properties/featured").json()["properties"]] == [1]


def test_property_detail(client):
    body = client.get("/properties/departamento-3-ambientes-palermo").json()
    assert body["property"]["id"] == 1
    assert body["price_per_m2"] == 3294
    assert body["price_per_m2_label"] == "USD 3.294/m²"

    resp = client.get("/properties/unknown-slug")
    assert resp.status_code == 404
    assert "unknown-slug" in resp.json()["detail"]


def test_publish_property(client):
    resp = client.post("/properties", json={
        "user_id": "owner-2",
        "title": "Casa en Tigre",
        "operation": "Venta",
        "type": "Casa",
        "location": "Tigre, Buenos Aires",
        "price": "USD 320.000",
        "area": 200,
        "bedrooms": 4,
    })
    assert resp.status_code == 201
    assert resp.json()["slug"] == "casa-en-tigre"
    assert client.get("/properties/casa-en-tigre").status_code == 200

    resp = client.post("/properties", json={
        "title": "***", "operation": "Venta", "type": "Casa", "location": "x", "price": "1",
    })
    assert resp.status_code == 400


def test_investments(client):
    assert len(client.get("/investments").json()) == 1
    project = client.get("/investments/torres-del-puerto").json()
    assert project["minInvestment"] == 100000

    projection = client.get("/investments/torres-del-puerto/projection", params={"amount": 200000})
    assert projection.status_code == 200
    assert projection.json()["amount"] == 200000

    below = client.get("/investments/torres-del-puerto/projection", params={"amount": 10})
    assert below.status_code == 400
    assert client.get("/investments/missing").status_code == 404


def test_professionals(client):
    body = client.get("/professionals", params={"category": "escribanos"}).json()
    assert [p["slug"] for p in body] == ["escribania-ruiz"]
    assert client.get("/professionals/estudio-gomez").json()["id"] == 1


def test_favorites_toggle(client):
    resp = client.post("/favorites/toggle", json={"session_id": "s1", "property_id": 2})
    body = resp.json()
    assert body["is_favorite"] is True
    assert body["message"] == "Added to favorites"
    assert [p["id"] for p in client.get("/favorites/s1").json()["favorites"]] == [2]

    body = client.post("/favorites/toggle", json={"session_id": "s1", "property_id": "2"}).json()
    assert body["is_favorite"] is False
    assert body["message"] == "Removed from favorites"
    assert body["favorites"] == []


def test_favorites_unknown_property(client):
    resp = client.post("/favorites/toggle", json={"session_id": "s1", "property_id": 99})
    assert resp.status_code == 404


def test_favorites_are_per_session(client):
    client.post("/favorites/toggle", json={"session_id": "a", "property_id": 1})
    assert client.get("/favorites/b").json()["favorites"] == []
    client.delete("/favorites/a")
    assert client.get("/favorites/a").json()["favorites"] == []


def test_comparison_flow(client):
    for pid in (1, 2, 3, 4):
        body = client.post("/comparison", json={"session_id": "s1", "property_id": pid}).json()
        assert body["success"] is True
        assert body["result"] == "added"

    body = client.post("/comparison", json={"session_id": "s1", "property_id": 5}).json()
    assert body["success"] is False
    assert body["result"] == "limit_reached"
    assert body["message"] == "You can compare up to 4 properties at a time"
    assert len(body["items"]) == 4

    body = client.post("/comparison", json={"session_id": "s1", "property_id": 1}).json()
    assert body["result"] == "already_present"

    body = client.delete("/comparison/s1/2").json()
    assert body["success"] is True
    assert [p["id"] for p in body["items"]] == [1, 3, 4]

    assert client.delete("/comparison/s1/2").json()["success"] is False
    client.delete("/comparison/s1")
    assert client.get("/comparison/s1").json()["items"] == []


def test_comparison_unknown_property(client):
    resp = client.post("/comparison", json={"session_id": "s1", "property_id": 99})
    assert resp.status_code == 404


def test_location_and_ads(client):
    # no location yet: every active sidebar ad, geo-targeted or not
    body = client.get("/ads", params={"session_id": "s1", "placement": "sidebar"}).json()
    assert [ad["id"] for ad in body["ads"]] == [1, 2]

    # Córdoba, far from the Palermo ad
    resp = client.post("/location/s1", json={"latitude": -31.4201, "longitude": -64.1888})
    assert resp.json()["location"]["latitude"] == -31.4201
    body = client.get("/ads", params={"session_id": "s1"}).json()
    assert [ad["id"] for ad in body["ads"]] == [1]

    # the cached reading wins over later reports within the hour
    client.post("/location/s1", json={"latitude": -34.5889, "longitude": -58.4306})
    body = client.get("/ads", params={"session_id": "s1"}).json()
    assert [ad["id"] for ad in body["ads"]] == [1]


def test_ads_with_explicit_coordinates(client):
    body = client.get("/ads", params={"latitude": -34.59, "longitude": -58.43}).json()
    assert [ad["id"] for ad in body["ads"]] == [1, 2]
    assert client.get("/ads", params={"latitude": 200, "longitude": 0}).status_code == 422


def test_location_denied(client):
    body = client.post("/location/s2", json={"denied": True}).json()
    assert body["location"] is None
    assert body["error"] == "Location permission denied"


def test_messaging_flow(client):
    conversation = client.post(
        "/conversations", json={"property_id": 1, "interested_id": "buyer-1"}
    ).json()
    cid = conversation["id"]
    assert conversation["owner_id"] == "owner-1"

    resp = client.post(f"/conversations/{cid}/messages", json={"sender_id": "buyer-1", "content": "Hola"})
    assert resp.status_code == 201

    resp = client.post(f"/conversations/{cid}/messages", json={"sender_id": "intruder", "content": "x"})
    assert resp.status_code == 403
    resp = client.post(f"/conversations/{cid}/messages", json={"sender_id": "buyer-1", "content": "  "})
    assert resp.status_code == 400

    messages = client.get(f"/conversations/{cid}/messages").json()
    assert [m["content"] for m in messages] == ["Hola"]

    assert client.post(f"/conversations/{cid}/read", json={"reader_id": "owner-1"}).json()["updated"] == 1
    assert client.get("/conversations/999/messages").status_code == 404


def test_owner_cannot_contact_self(client):
    resp = client.post("/conversations", json={"property_id": 1, "interested_id": "owner-1"})
    assert resp.status_code == 400


def test_consent_and_session_delete(client):
    assert client.post("/consent/s1").json()["cookie_consent"] is True
    assert client.get("/stats").json()["active_sessions"] == 1
    assert client.delete("/session/s1").json()["success"] is True
    assert client.delete("/session/s1").json()["success"] is False


def test_admin_endpoints(client):
    assert client.get("/admin/stats").status_code == 403
    assert client.get("/admin/stats", headers={"X-User-Id": "owner-1"}).status_code == 403

    stats = client.get("/admin/stats", headers={"X-User-Id": "admin-1"}).json()
    assert stats == {"properties": 5, "users": 3, "inquiries": 1}

    refreshed = client.post("/admin/refresh", headers={"X-User-Id": "admin-1"}).json()
    assert refreshed["properties"] == 5


def test_backend_outage_returns_503(client, context, monkeypatch):
    def broken(*args, **kwargs):
        raise BackendError("connection refused", "advertisements")

    monkeypatch.setattr(context.backend, "select", broken)
    resp = client.get("/ads")
    assert resp.status_code == 503
    assert resp.json()["detail"] == "Backend temporarily unavailable"


def test_create_session(client):
    resp = client.post("/session")
    assert resp.status_code == 201
    body = resp.json()
    assert len(body["session_id"]) == 36
    assert body["favorites"] == []
    assert body["cookie_consent"] is False


def test_upload_and_download(client):
    resp = client.post("/uploads/property-images/7/front.jpg", content=b"\xff\xd8jpeg")
    assert resp.status_code == 201
    assert resp.json()["url"].endswith("/storage/v1/object/public/property-images/7/front.jpg")

    assert client.get("/uploads/property-images/7/front.jpg").content == b"\xff\xd8jpeg"
    assert client.get("/uploads/property-images/missing.jpg").status_code == 404
    assert client.post("/uploads/property-images/empty.jpg", content=b"").status_code == 400


ADMIN = {"X-User-Id": "admin-1"}


def test_malformed_ad_rows_are_skipped(client, context):
    context.backend.insert("advertisements", {"placement": "sidebar", "is_active": True})
    resp = client.get("/ads", params={"placement": "sidebar"})
    assert resp.status_code == 200
    assert [ad["id"] for ad in resp.json()["ads"]] == [1, 2]


def test_price_per_m2_label_defaults_to_usd(client):
    client.post("/properties", json={
        "title": "Lote en Pilar", "operation": "Venta", "type": "Lote",
        "location": "Pilar", "price": "350000", "area": 100,
    })
    body = client.get("/properties/lote-en-pilar").json()
    assert body["price_per_m2"] == 3500
    assert body["price_per_m2_label"] == "USD 3.500/m²"


def test_back_office_requires_admin(client):
    routes = [
        ("get", "/admin/ads"),
        ("post", "/admin/ads/1/toggle"),
        ("delete", "/admin/ads/1"),
        ("delete", "/admin/properties/1"),
        ("delete", "/admin/investments/1"),
        ("delete", "/admin/professionals/1"),
        ("get", "/admin/users"),
    ]
    for method, path in routes:
        assert getattr(client, method)(path, headers={"X-User-Id": "owner-1"}).status_code == 403
    assert client.get("/ads").json()["count"] == 2


def test_admin_ads(client):
    resp = client.post("/admin/ads", json={"title": "Mudanzas", "placement": "home"}, headers=ADMIN)
    assert resp.status_code == 201
    created = resp.json()
    assert created["is_active"] is True
    assert created["clicks"] == 0

    updated = client.patch(
        f"/admin/ads/{created['id']}", json={"link_url": "https://mudanzas.example"}, headers=ADMIN
    ).json()
    assert updated["link_url"] == "https://mudanzas.example"
    assert updated["title"] == "Mudanzas"

    assert client.post("/admin/ads/3/toggle", headers=ADMIN).json()["is_active"] is True
    sidebar = client.get("/ads", params={"placement": "sidebar"}).json()
    assert [ad["id"] for ad in sidebar["ads"]] == [1, 2, 3]

    assert client.delete("/admin/ads/1", headers=ADMIN).json()["success"] is True
    assert client.delete("/admin/ads/1", headers=ADMIN).status_code == 404
    assert client.post("/admin/ads/99/toggle", headers=ADMIN).status_code == 404
    assert [ad["id"] for ad in client.get("/admin/ads", headers=ADMIN).json()] == [2, 3, created["id"]]


def test_admin_listing_moderation(client):
    resp = client.patch("/admin/properties/2/status", json={"status": "inactiva"}, headers=ADMIN)
    assert resp.json()["status"] == "inactiva"
    assert client.delete("/admin/properties/2", headers=ADMIN).json()["success"] is True
    assert client.get("/properties/casa-nordelta-pileta").status_code == 404
    assert client.delete("/admin/properties/2", headers=ADMIN).status_code == 404

    resp = client.patch("/admin/investments/1/status", json={"status": "inactivo"}, headers=ADMIN)
    assert resp.json()["status"] == "inactivo"
    assert client.patch("/admin/investments/9/status", json={"status": "x"}, headers=ADMIN).status_code == 404
    assert client.delete("/admin/investments/1", headers=ADMIN).json()["success"] is True
    assert client.get("/investments").json() == []

    assert client.delete("/admin/professionals/2", headers=ADMIN).json()["success"] is True
    assert [p["slug"] for p in client.get("/professionals").json()] == ["estudio-gomez"]


def test_admin_user_roles(client):
    users = {u["user_id"]: u["roles"] for u in client.get("/admin/users", headers=ADMIN).json()}
    assert users == {"admin-1": ["admin"], "owner-1": [], "owner-2": []}

    resp = client.put("/admin/users/owner-1/role", json={"role": "real_estate_agent"}, headers=ADMIN)
    assert resp.json() == {"user_id": "owner-1", "role": "real_estate_agent"}
    assert client.put("/admin/users/owner-1/role", json={"role": "root"}, headers=ADMIN).status_code == 422

    users = {u["user_id"]: u["roles"] for u in client.get("/admin/users", headers=ADMIN).json()}
    assert users["owner-1"] == ["real_estate_agent"]

    client.put("/admin/users/owner-1/role", json={"role": "admin"}, headers=ADMIN)
    assert client.get("/admin/stats", headers={"X-User-Id": "owner-1"}).status_code == 200


def test_publish_investment_and_service(client):
    resp = client.post("/investments", json={
        "name": "Edificio Río",
        "location": "Rosario, Santa Fe",
        "min_investment": 50000,
        "annual_return": 9,
        "capital_gain": 20,
        "delivery_date": "2031-06-01",
    })
    assert resp.status_code == 201
    assert resp.json()["slug"] == "edificio-rio"
    assert resp.json()["minInvestment"] == 50000
    projection = client.get("/investments/edificio-rio/projection", params={"amount": 50000})
    assert projection.status_code == 200
    assert client.post("/investments", json={"name": "***", "location": "x"}).status_code == 400

    resp = client.post("/professionals", json={"name": "Mudanzas Sur", "category": "Mudanzas"})
    assert resp.status_code == 201
    body = client.get("/professionals", params={"category": "mudanzas"}).json()
    assert [p["slug"] for p in body] == ["mudanzas-sur"]


def test_conversation_inbox(client):
    cid = client.post("/conversations", json={"property_id": 1, "interested_id": "buyer-1"}).json()["id"]
    client.post(f"/conversations/{cid}/messages", json={"sender_id": "buyer-1", "content": "Hola"})

    [summary] = client.get("/conversations", params={"user_id": "owner-1"}).json()
    assert summary["id"] == cid
    assert summary["unread_count"] == 1
    assert summary["last_message"] == "Hola"

    client.post(f"/conversations/{cid}/read", json={"reader_id": "owner-1"})
    assert client.get("/conversations", params={"user_id": "owner-1"}).json()[0]["unread_count"] == 0
    assert client.get("/conversations", params={"user_id": "buyer-1"}).json()[0]["unread_count"] == 0
    assert client.get("/conversations").status_code == 422
