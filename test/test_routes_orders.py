"""
Tests for Order Routes

Drives the API through httpx against the real app: authentication and
organization context resolution, the error envelope, and the order
lifecycle endpoints.
"""

import pytest

from conftest import auth_headers_for, bearer, stock_of


def _order_body(tenants, *lines):
    return {
        "customer_id": tenants.customer_a.id,
        "items": [{"product_id": product.id, "quantity": quantity} for product, quantity in lines],
    }


class TestOrgContextResolution:
    """Requests without a usable tenant context never reach the services"""

    @pytest.mark.asyncio
    async def test_missing_token(self, client, tenants):
        response = await client.get("/api/v1/orders")

        assert response.status_code == 401
        assert response.json()["error"]["error_code"] == "AUTH_FAILED"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_garbage_token(self, client, tenants):
        response = await client.get("/api/v1/orders", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401
        assert response.json()["error"]["error_code"] == "AUTH_FAILED"

    @pytest.mark.asyncio
    async def test_missing_org_header(self, client, tenants):
        response = await client.get("/api/v1/orders", headers=bearer(tenants.owner.id))

        assert response.status_code == 400
        assert response.json()["error"]["error_code"] == "ORG_CONTEXT_REQUIRED"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", ["abc", "-3", "0", "1.5"])
    async def test_malformed_org_header(self, client, tenants, raw):
        headers = {**bearer(tenants.owner.id), "X-Organization-ID": raw}
        response = await client.get("/api/v1/orders", headers=headers)

        assert response.status_code == 400
        assert response.json()["error"]["error_code"] == "INVALID_ORG_ID"

    @pytest.mark.asyncio
    async def test_foreign_org_header(self, client, tenants):
        response = await client.get("/api/v1/orders", headers=auth_headers_for(tenants.owner.id, tenants.org_b.id))

        body = response.json()["error"]
        assert response.status_code == 403
        assert body["error_code"] == "ORG_ACCESS_DENIED"
        assert body["details"] == {"reason": "no_membership"}

    @pytest.mark.asyncio
    async def test_unknown_org_looks_like_foreign(self, client, tenants):
        response = await client.get("/api/v1/orders", headers=auth_headers_for(tenants.owner.id, 999_999))

        assert response.status_code == 403
        assert response.json()["error"]["error_code"] == "ORG_ACCESS_DENIED"


class TestOrderLifecycleRoutes:
    @pytest.mark.asyncio
    async def test_create_get_and_list(self, client, session_factory, tenants):
        headers = auth_headers_for(tenants.owner.id, tenants.org_a.id)

        response = await client.post(
            "/api/v1/orders", json=_order_body(tenants, (tenants.widget, 2), (tenants.gadget, 1)), headers=headers
        )

        assert response.status_code == 201
        created = response.json()
        assert created["status"] == "draft"
        assert created["payment_status"] == "pending"
        assert created["order_number"].startswith("ORD")
        assert created["customer_name"] == "Jane Buyer"
        assert created["grand_total"] == "45.19"
        assert [item["product_sku"] for item in created["items"]] == ["SKU-100", "SKU-200"]
        assert await stock_of(session_factory, tenants.widget.id) == 3

        fetched = await client.get(f"/api/v1/orders/{created['id']}", headers=headers)
        assert fetched.status_code == 200
        assert fetched.json()["order_number"] == created["order_number"]

        listing = await client.get("/api/v1/orders", params={"status": "draft"}, headers=headers)
        page = listing.json()
        assert (page["total"], page["page"], page["pages"]) == (1, 1, 1)
        assert page["items"][0]["id"] == created["id"]
        assert "items" not in page["items"][0]

    @pytest.mark.asyncio
    async def test_insufficient_stock_envelope(self, client, tenants):
        response = await client.post(
            "/api/v1/orders",
            json=_order_body(tenants, (tenants.widget, 6)),
            headers=auth_headers_for(tenants.owner.id, tenants.org_a.id),
        )

        error = response.json()["error"]
        assert response.status_code == 409
        assert error["error_code"] == "INSUFFICIENT_STOCK"
        assert error["details"] == {"product_id": tenants.widget.id, "requested": 6, "available": 5}
        assert error["path"] == "/api/v1/orders"

    @pytest.mark.asyncio
    async def test_zero_quantity_is_invalid_quantity(self, client, tenants):
        response = await client.post(
            "/api/v1/orders",
            json=_order_body(tenants, (tenants.widget, 0)),
            headers=auth_headers_for(tenants.owner.id, tenants.org_a.id),
        )

        assert response.status_code == 400
        assert response.json()["error"]["error_code"] == "INVALID_QUANTITY"

    @pytest.mark.asyncio
    async def test_sub_cent_price_override_rejected(self, client, session_factory, tenants):
        body = _order_body(tenants, (tenants.widget, 1))
        body["items"][0]["unit_price"] = "9.999"

        response = await client.post(
            "/api/v1/orders", json=body, headers=auth_headers_for(tenants.owner.id, tenants.org_a.id)
        )

        assert response.status_code == 422
        assert response.json()["error"]["error_code"] == "VALIDATION_FAILED"
        assert await stock_of(session_factory, tenants.widget.id) == 5

    @pytest.mark.asyncio
    async def test_request_body_validation(self, client, tenants):
        response = await client.post(
            "/api/v1/orders", json={"items": []}, headers=auth_headers_for(tenants.owner.id, tenants.org_a.id)
        )

        error = response.json()["error"]
        assert response.status_code == 422
        assert error["error_code"] == "VALIDATION_FAILED"
        assert any(entry["field"] == "customer_id" for entry in error["details"]["validation_errors"])

    @pytest.mark.asyncio
    async def test_other_tenant_gets_not_found(self, client, tenants):
        created = await client.post(
            "/api/v1/orders",
            json=_order_body(tenants, (tenants.gadget, 1)),
            headers=auth_headers_for(tenants.owner.id, tenants.org_a.id),
        )

        response = await client.get(
            f"/api/v1/orders/{created.json()['id']}", headers=auth_headers_for(tenants.rival.id, tenants.org_b.id)
        )

        assert response.status_code == 404
        assert response.json()["error"]["error_code"] == "ORDER_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_status_flow_and_cancel(self, client, session_factory, tenants):
        headers = auth_headers_for(tenants.owner.id, tenants.org_a.id)
        order_id = (await client.post("/api/v1/orders", json=_order_body(tenants, (tenants.widget, 3)), headers=headers)).json()[
            "id"
        ]

        skipped = await client.patch(f"/api/v1/orders/{order_id}/status", json={"status": "shipped"}, headers=headers)
        assert skipped.status_code == 409
        assert skipped.json()["error"]["error_code"] == "INVALID_STATUS_TRANSITION"

        confirmed = await client.patch(f"/api/v1/orders/{order_id}/status", json={"status": "confirmed"}, headers=headers)
        assert confirmed.json()["status"] == "confirmed"

        for _ in range(2):
            cancelled = await client.patch(f"/api/v1/orders/{order_id}/cancel", headers=headers)
            assert cancelled.status_code == 200
            assert cancelled.json()["status"] == "cancelled"
        assert await stock_of(session_factory, tenants.widget.id) == 5

    @pytest.mark.asyncio
    async def test_payment_update(self, client, tenants):
        headers = auth_headers_for(tenants.owner.id, tenants.org_a.id)
        order_id = (await client.post("/api/v1/orders", json=_order_body(tenants, (tenants.widget, 1)), headers=headers)).json()[
            "id"
        ]

        partial = await client.patch(
            f"/api/v1/orders/{order_id}/payment",
            json={"payment_status": "partial", "paid_amount": "5.00", "payment_method": "cash"},
            headers=headers,
        )
        assert partial.status_code == 200
        assert (partial.json()["payment_status"], partial.json()["paid_amount"]) == ("partial", "5.00")

        backwards = await client.patch(
            f"/api/v1/orders/{order_id}/payment", json={"payment_status": "pending"}, headers=headers
        )
        assert backwards.status_code == 409
        assert backwards.json()["error"]["error_code"] == "INVALID_PAYMENT_TRANSITION"

    @pytest.mark.asyncio
    async def test_delete_requires_admin_and_draft(self, client, session_factory, tenants):
        owner = auth_headers_for(tenants.owner.id, tenants.org_a.id)
        member = auth_headers_for(tenants.member.id, tenants.org_a.id)
        order_id = (await client.post("/api/v1/orders", json=_order_body(tenants, (tenants.widget, 2)), headers=member)).json()[
            "id"
        ]

        forbidden = await client.delete(f"/api/v1/orders/{order_id}", headers=member)
        assert forbidden.status_code == 403
        assert forbidden.json()["error"]["error_code"] == "ORG_ROLE_INSUFFICIENT"

        deleted = await client.delete(f"/api/v1/orders/{order_id}", headers=owner)
        assert deleted.status_code == 204
        assert await stock_of(session_factory, tenants.widget.id) == 5

        gone = await client.get(f"/api/v1/orders/{order_id}", headers=owner)
        assert gone.status_code == 404

    @pytest.mark.asyncio
    async def test_confirmed_order_cannot_be_deleted(self, client, tenants):
        headers = auth_headers_for(tenants.owner.id, tenants.org_a.id)
        order_id = (await client.post("/api/v1/orders", json=_order_body(tenants, (tenants.gadget, 1)), headers=headers)).json()[
            "id"
        ]
        await client.patch(f"/api/v1/orders/{order_id}/status", json={"status": "confirmed"}, headers=headers)

        response = await client.delete(f"/api/v1/orders/{order_id}", headers=headers)

        assert response.status_code == 409
        assert response.json()["error"]["error_code"] == "ORDER_NOT_DELETABLE"

    @pytest.mark.asyncio
    async def test_statistics_and_customer_orders(self, client, tenants):
        headers = auth_headers_for(tenants.owner.id, tenants.org_a.id)
        await client.post("/api/v1/orders", json=_order_body(tenants, (tenants.widget, 1)), headers=headers)

        stats = await client.get("/api/v1/orders/statistics", headers=headers)
        assert stats.status_code == 200
        assert stats.json()["total_orders"] == 1
        assert stats.json()["total_revenue"] == "11.80"

        top = await client.get("/api/v1/orders/top-products", params={"limit": 5}, headers=headers)
        assert [row["sku"] for row in top.json()] == ["SKU-100"]

        history = await client.get(f"/api/v1/customers/{tenants.customer_a.id}/orders", headers=headers)
        assert len(history.json()) == 1


class TestCatalogRoutes:
    @pytest.mark.asyncio
    async def test_member_cannot_create_product(self, client, tenants):
        response = await client.post(
            "/api/v1/products",
            json={"sku": "SKU-900", "name": "Bolt", "category": "Hardware", "unit_price": "1.00"},
            headers=auth_headers_for(tenants.member.id, tenants.org_a.id),
        )

        assert response.status_code == 403
        assert response.json()["error"]["error_code"] == "ORG_ROLE_INSUFFICIENT"

    @pytest.mark.asyncio
    async def test_manager_creates_and_adjusts_stock(self, client, tenants):
        headers = auth_headers_for(tenants.manager.id, tenants.org_a.id)
        created = await client.post(
            "/api/v1/products",
            json={"sku": "SKU-900", "name": "Bolt", "category": "Hardware", "unit_price": "1.00", "stock_quantity": 3},
            headers=headers,
        )
        assert created.status_code == 201

        adjusted = await client.patch(
            f"/api/v1/products/{created.json()['id']}/stock", json={"quantity": 7, "reason": "restock"}, headers=headers
        )
        assert adjusted.json()["stock_quantity"] == 10

        overdrawn = await client.patch(
            f"/api/v1/products/{created.json()['id']}/stock", json={"quantity": -11}, headers=headers
        )
        assert overdrawn.status_code == 409
        assert overdrawn.json()["error"]["error_code"] == "INSUFFICIENT_STOCK"

    @pytest.mark.asyncio
    async def test_duplicate_sku(self, client, tenants):
        response = await client.post(
            "/api/v1/products",
            json={"sku": "SKU-100", "name": "Clone", "category": "Hardware"},
            headers=auth_headers_for(tenants.owner.id, tenants.org_a.id),
        )

        assert response.status_code == 409
        assert response.json()["error"]["error_code"] == "DUPLICATE_RESOURCE"

    @pytest.mark.asyncio
    async def test_low_stock_listing(self, client, tenants):
        headers = auth_headers_for(tenants.member.id, tenants.org_a.id)
        await client.post("/api/v1/orders", json=_order_body(tenants, (tenants.widget, 3)), headers=headers)

        response = await client.get("/api/v1/products/low-stock", headers=headers)

        assert [product["sku"] for product in response.json()] == ["SKU-100"]
        assert response.json()[0]["is_low_stock"] is True


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert "X-Request-ID" in response.headers

    @pytest.mark.asyncio
    async def test_unknown_route_uses_error_envelope(self, client):
        response = await client.get("/api/v1/no-such-thing")

        error = response.json()["error"]
        assert response.status_code == 404
        assert (error["error_code"], error["path"]) == ("RESOURCE_NOT_FOUND", "/api/v1/no-such-thing")
