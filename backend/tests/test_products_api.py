from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from storefront.main import create_app


def test_admin_can_create_and_fetch_product(client, admin_headers):
    r = client.post(
        "/products",
        json={"name": "Lamp", "description": "Desk lamp", "price": 19.99, "stock": 3},
        headers=admin_headers,
    )
    assert r.status_code == 201
    created = r.json()
    assert created["name"] == "Lamp"
    assert created["price"] == 19.99
    assert created["stock"] == 3

    r = client.get(f"/products/{created['id']}", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["description"] == "Desk lamp"


def test_list_products_returns_all_in_id_order(client, admin_headers, make_product):
    a = make_product(name="A")
    b = make_product(name="B")
    r = client.get("/products", headers=admin_headers)
    assert r.status_code == 200
    assert [p["id"] for p in r.json()] == [a["id"], b["id"]]


@pytest.mark.parametrize(
    "body",
    [
        {"name": "", "price": 1, "stock": 1},
        {"name": "Neg price", "price": -1, "stock": 1},
        {"name": "Neg stock", "price": 1, "stock": -1},
        {"name": "No price", "stock": 1},
    ],
)
def test_create_product_rejects_invalid_fields(client, admin_headers, body):
    r = client.post("/products", json=body, headers=admin_headers)
    assert r.status_code == 400


def test_update_replaces_mutable_fields(client, admin_headers, make_product):
    p = make_product(name="Old", description="old", price=5, stock=1)
    r = client.put(
        f"/products/{p['id']}",
        json={"name": "New", "description": "new", "price": 7.5, "stock": 9},
        headers=admin_headers,
    )
    assert r.status_code == 200
    body = r.json()
    assert (body["name"], body["description"], body["price"], body["stock"]) == ("New", "new", 7.5, 9)


def test_missing_product_is_404(client, admin_headers):
    body = {"name": "X", "price": 1, "stock": 1}
    assert client.get("/products/999", headers=admin_headers).status_code == 404
    assert client.put("/products/999", json=body, headers=admin_headers).status_code == 404
    assert client.delete("/products/999", headers=admin_headers).status_code == 404


def test_non_integer_product_id_is_400(client, admin_headers):
    assert client.get("/products/abc", headers=admin_headers).status_code == 400


def test_delete_product(client, admin_headers, make_product):
    p = make_product()
    r = client.delete(f"/products/{p['id']}", headers=admin_headers)
    assert r.status_code == 200
    assert r.json() == {"message": "Product deleted successfully"}
    assert client.get(f"/products/{p['id']}", headers=admin_headers).status_code == 404


def test_delete_product_referenced_by_order_is_conflict(client, admin_headers, user_headers, make_product):
    p = make_product(stock=2)
    r = client.post("/orders", json={"products": [{"product_id": p["id"], "quantity": 1}]}, headers=user_headers)
    assert r.status_code == 201
    r = client.delete(f"/products/{p['id']}", headers=admin_headers)
    assert r.status_code == 409


def test_non_admin_is_forbidden_on_every_product_route(client, user_headers, make_product):
    p = make_product()
    body = {"name": "X", "price": 1, "stock": 1}
    calls = [
        client.post("/products", json=body, headers=user_headers),
        client.get("/products", headers=user_headers),
        client.get(f"/products/{p['id']}", headers=user_headers),
        client.put(f"/products/{p['id']}", json=body, headers=user_headers),
        client.delete(f"/products/{p['id']}", headers=user_headers),
    ]
    assert [r.status_code for r in calls] == [403] * 5
    assert calls[0].json()["error"] == "Admin access required"


def test_unauthenticated_is_401_on_every_product_route(client):
    body = {"name": "X", "price": 1, "stock": 1}
    calls = [
        client.post("/products", json=body),
        client.get("/products"),
        client.get("/products/1"),
        client.put("/products/1", json=body),
        client.delete("/products/1"),
    ]
    assert [r.status_code for r in calls] == [401] * 5


def test_malformed_authorization_header_is_401(client):
    r = client.get("/products", headers={"Authorization": "Token abc"})
    assert r.status_code == 401
    r = client.get("/products", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
    assert r.json()["error"] == "Invalid token"


def test_public_catalog_reads_open_gets_only(settings, db):
    settings = settings.model_copy(update={"public_catalog_reads": True})
    with TestClient(create_app(settings=settings, database=db)) as client:
        assert client.get("/products").status_code == 200
        assert client.get("/products/1").status_code == 404
        assert client.post("/products", json={"name": "X", "price": 1, "stock": 1}).status_code == 401


def test_stock_beyond_integer_column_is_400(client, admin_headers, make_product):
    r = client.post("/products", json={"name": "Huge", "price": 1, "stock": 10**20}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["title"] == "Validation Failed"

    p = make_product()
    r = client.put(f"/products/{p['id']}", json={"name": "Huge", "price": 1, "stock": 10**20}, headers=admin_headers)
    assert r.status_code == 400
    assert client.get(f"/products/{10**20}", headers=admin_headers).status_code == 400
