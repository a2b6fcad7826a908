from tests.conftest import auth_headers, stock_of


def _quote_body(*lines, **fields):
    body = {
        "title": "8 kW konut GES",
        "customer_name": "Elif Şahin",
        "customer_email": "elif@example.com",
        "items": list(lines),
    }
    body.update(fields)
    return body


def _product_line(product, quantity, unit_price="1000"):
    return {"kind": "PRODUCT", "product_id": product.id, "name": product.name, "quantity": quantity, "unit_price": unit_price}


async def _create(client, user, body):
    response = await client.post("/api/quotes", json=body, headers=auth_headers(user))
    assert response.status_code == 201, response.text
    return response.json()


async def test_create_quote_computes_totals(client, company_user, make_product):
    panel = await make_product(stock=20)
    body = _quote_body(
        _product_line(panel, 16, "2500"),
        {"kind": "CUSTOM", "name": "Montaj", "quantity": 1, "unit_price": "10000"},
        discount="5000",
    )

    quote = await _create(client, company_user, body)

    assert quote["status"] == "DRAFT"
    assert quote["quote_number"].startswith("Q-")
    assert quote["created_by_id"] == company_user.id
    assert float(quote["subtotal"]) == 50000
    assert float(quote["tax"]) == 9000
    assert float(quote["total"]) == 54000
    assert [item["kind"] for item in quote["items"]] == ["PRODUCT", "CUSTOM"]
    assert quote["valid_until"] is not None


async def test_create_quote_rejects_product_from_other_company(client, company_user, other_company, make_product):
    foreign = await make_product(company_id=other_company.id)

    response = await client.post(
        "/api/quotes", json=_quote_body(_product_line(foreign, 1)), headers=auth_headers(company_user)
    )

    assert response.status_code == 404
    assert response.json()["error"] == "product_not_found"


async def test_product_line_requires_product_id(client, company_user):
    body = _quote_body({"kind": "PRODUCT", "name": "Panel", "quantity": 1})

    response = await client.post("/api/quotes", json=body, headers=auth_headers(company_user))

    assert response.status_code == 422


async def test_send_view_and_lock(client, company_user, make_product):
    panel = await make_product()
    quote = await _create(client, company_user, _quote_body(_product_line(panel, 1)))
    headers = auth_headers(company_user)

    sent = await client.post(f"/api/quotes/{quote['id']}/send", headers=headers)
    assert sent.status_code == 200
    assert sent.json()["status"] == "SENT"

    viewed = await client.post(f"/api/quotes/{quote['id']}/view", headers=headers)
    assert viewed.json()["status"] == "VIEWED"
    again = await client.post(f"/api/quotes/{quote['id']}/view", headers=headers)
    assert again.status_code == 200
    assert again.json()["viewed_at"] == viewed.json()["viewed_at"]

    edit = await client.patch(f"/api/quotes/{quote['id']}", json={"title": "Yeni"}, headers=headers)
    assert edit.status_code == 400
    assert edit.json()["error"] == "quote_locked"

    resend = await client.post(f"/api/quotes/{quote['id']}/send", headers=headers)
    assert resend.status_code == 400
    assert resend.json()["error"] == "invalid_quote_state"


async def test_update_draft_replaces_items(client, company_user, make_product):
    panel = await make_product()
    quote = await _create(client, company_user, _quote_body(_product_line(panel, 1)))

    response = await client.patch(
        f"/api/quotes/{quote['id']}",
        json={"items": [_product_line(panel, 3, "100")], "tax_rate": "10"},
        headers=auth_headers(company_user),
    )

    assert response.status_code == 200
    updated = response.json()
    assert len(updated["items"]) == 1
    assert float(updated["subtotal"]) == 300
    assert float(updated["tax"]) == 30
    assert float(updated["total"]) == 330


async def test_reject_with_and_without_reason(client, company_user, make_product):
    panel = await make_product()
    headers = auth_headers(company_user)
    first = await _create(client, company_user, _quote_body(_product_line(panel, 1)))
    second = await _create(client, company_user, _quote_body(_product_line(panel, 1)))

    rejected = await client.post(f"/api/quotes/{first['id']}/reject", json={"reason": "Bütçe"}, headers=headers)
    bare = await client.post(f"/api/quotes/{second['id']}/reject", headers=headers)

    assert rejected.json()["status"] == "REJECTED"
    assert rejected.json()["rejection_reason"] == "Bütçe"
    assert bare.status_code == 200
    assert bare.json()["rejection_reason"] is None


async def test_approve_endpoint_updates_stock(client, company_user, make_product):
    panel = await make_product(stock=10)
    quote = await _create(client, company_user, _quote_body(_product_line(panel, 4)))

    response = await client.post(f"/api/quotes/{quote['id']}/approve", headers=auth_headers(company_user))

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Quote approved successfully and stock updated"
    assert body["quote"]["status"] == "APPROVED"
    assert body["quote"]["approved_by_id"] == company_user.id
    assert await stock_of(panel.id) == 6


async def test_approve_twice_returns_400(client, company_user, make_product):
    panel = await make_product(stock=10)
    quote = await _create(client, company_user, _quote_body(_product_line(panel, 4)))
    headers = auth_headers(company_user)
    await client.post(f"/api/quotes/{quote['id']}/approve", headers=headers)

    response = await client.post(f"/api/quotes/{quote['id']}/approve", headers=headers)

    assert response.status_code == 400
    assert response.json() == {
        "error": "quote_already_approved",
        "message": "Quote is already approved",
        "details": {"quote_id": quote["id"]},
    }
    assert await stock_of(panel.id) == 6


async def test_approve_with_insufficient_stock_returns_400(client, company_user, make_product):
    p1 = await make_product("Panel 550W", stock=10)
    p2 = await make_product("Batarya 5kWh", stock=2)
    quote = await _create(client, company_user, _quote_body(_product_line(p1, 5), _product_line(p2, 3)))

    response = await client.post(f"/api/quotes/{quote['id']}/approve", headers=auth_headers(company_user))

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "insufficient_stock"
    assert body["message"] == "Insufficient stock for product Batarya 5kWh. Available: 2, Required: 3"
    assert body["details"]["shortfall"] == 1
    assert await stock_of(p1.id) == 10
    fetched = await client.get(f"/api/quotes/{quote['id']}", headers=auth_headers(company_user))
    assert fetched.json()["status"] == "DRAFT"


async def test_approve_unknown_quote_returns_404(client, company_user):
    response = await client.post("/api/quotes/missing/approve", headers=auth_headers(company_user))

    assert response.status_code == 404
    assert response.json()["error"] == "quote_not_found"


async def test_approve_requires_authentication(client):
    response = await client.post("/api/quotes/anything/approve")

    assert response.status_code == 401


async def test_customer_cannot_approve(client, company_user, customer_user, make_product):
    panel = await make_product(stock=10)
    quote = await _create(client, company_user, _quote_body(_product_line(panel, 1)))

    response = await client.post(f"/api/quotes/{quote['id']}/approve", headers=auth_headers(customer_user))

    assert response.status_code == 403
    assert await stock_of(panel.id) == 10


async def test_customer_can_view_quotes(client, company_user, customer_user, make_product):
    panel = await make_product()
    quote = await _create(client, company_user, _quote_body(_product_line(panel, 1)))

    response = await client.get("/api/quotes", headers=auth_headers(customer_user))

    assert response.status_code == 200
    assert [q["id"] for q in response.json()] == [quote["id"]]


async def test_list_quotes_filters_by_status(client, company_user, make_product):
    panel = await make_product()
    headers = auth_headers(company_user)
    draft = await _create(client, company_user, _quote_body(_product_line(panel, 1)))
    sent = await _create(client, company_user, _quote_body(_product_line(panel, 1)))
    await client.post(f"/api/quotes/{sent['id']}/send", headers=headers)

    response = await client.get("/api/quotes", params={"status": "SENT"}, headers=headers)

    assert [q["id"] for q in response.json()] == [sent["id"]]
    assert draft["id"] not in [q["id"] for q in response.json()]


async def test_list_quotes_rejects_out_of_range_paging(client, company_user):
    headers = auth_headers(company_user)

    for params in ({"limit": -5}, {"limit": 0}, {"limit": 501}, {"offset": -1}):
        response = await client.get("/api/quotes", params=params, headers=headers)
        assert response.status_code == 422, params
