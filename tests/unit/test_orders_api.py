"""Unit tests for the food order API endpoints."""
import uuid

import pytest
from sqlalchemy import func, select

from storefront.db.models import Offer as OfferRecord
from storefront.db.models import Order


def order_body(**overrides):
    """Create-order request for 1 curry + 2 tea (1360.00, total 1564.00)."""
    body = {
        "items": [
            {"foodId": "curry", "name": "Chicken Curry", "quantity": 1, "price": "850.00", "category": "mains"},
            {"foodId": "tea", "name": "Ceylon Tea", "quantity": 2, "price": "255.00", "category": "drinks"},
        ],
        "guest": {
            "firstName": "Nimal",
            "lastName": "Perera",
            "email": "nimal@example.com",
            "phone": "0771234567",
        },
        "orderType": "dine-in",
        "tableNumber": "12",
        "pickupMinutes": None,
        "specialInstructions": "",
        "paymentMethod": "cash",
        "subtotal": "1360.00",
        "discount": "0.00",
        "tax": "136.00",
        "serviceFee": "68.00",
        "deliveryFee": "0.00",
        "totalPrice": "1564.00",
        "appliedOffer": None,
        "status": "pending",
        "idempotencyKey": uuid.uuid4().hex,
    }
    body.update(overrides)
    return body


class TestCreateOrder:
    """Test POST /api/food/orders."""

    @pytest.mark.asyncio
    async def test_cash_order_created(self, api_client):
        response = await api_client.post("/api/food/orders", json=order_body())

        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["data"]["status"] == "pending"
        assert data["data"]["totalPrice"] == "1564.00"
        assert data["data"]["orderNumber"].startswith("FO-")
        assert "payment" not in data

    @pytest.mark.asyncio
    async def test_card_order_returns_signed_payload(self, api_client, signer):
        response = await api_client.post("/api/food/orders", json=order_body(paymentMethod="card"))

        assert response.status_code == 201
        data = response.json()
        assert data["data"]["status"] == "awaiting-payment"
        payhere = data["payment"]["payhere"]
        params = payhere["params"]
        assert payhere["action"] == "https://sandbox.payhere.lk/pay/checkout"
        assert params["order_id"] == data["data"]["orderNumber"]
        assert params["amount"] == "1564.00"
        assert params["currency"] == "LKR"
        assert params["hash"] == signer.checkout_hash(params["order_id"], "1564.00", "LKR")
        assert params["return_url"] == f"http://guest.test/payment/success?orderId={data['data']['id']}"
        assert params["notify_url"] == "http://api.test/api/webhooks/payhere"

    @pytest.mark.asyncio
    async def test_repeat_with_same_key_returns_existing_order(self, api_client):
        body = order_body()

        first = await api_client.post("/api/food/orders", json=body)
        second = await api_client.post("/api/food/orders", json=body)

        assert first.status_code == 201
        assert second.status_code == 200
        assert second.json()["data"]["id"] == first.json()["data"]["id"]

    @pytest.mark.asyncio
    async def test_header_key_takes_precedence(self, api_client):
        key = uuid.uuid4().hex

        first = await api_client.post(
            "/api/food/orders", json=order_body(), headers={"Idempotency-Key": key}
        )
        second = await api_client.post(
            "/api/food/orders", json=order_body(), headers={"Idempotency-Key": key}
        )

        assert second.status_code == 200
        assert second.json()["data"]["id"] == first.json()["data"]["id"]

    @pytest.mark.asyncio
    async def test_same_key_with_changed_cart_is_conflict(self, api_client):
        """A key is bound to the order it first created."""
        key = uuid.uuid4().hex
        first = await api_client.post("/api/food/orders", json=order_body(idempotencyKey=key))

        # 3 curry + 2 tea = 3060; + 306 tax + 153 fee
        changed = order_body(idempotencyKey=key, totalPrice="3519.00")
        changed["items"][0]["quantity"] = 3
        second = await api_client.post("/api/food/orders", json=changed)

        assert first.status_code == 201
        assert second.status_code == 409
        assert second.json()["detail"]["message"] == (
            "Idempotency key was reused for a different order"
        )

    @pytest.mark.asyncio
    async def test_same_key_with_other_payment_method_is_conflict(self, api_client):
        key = uuid.uuid4().hex
        await api_client.post("/api/food/orders", json=order_body(idempotencyKey=key))

        second = await api_client.post(
            "/api/food/orders", json=order_body(idempotencyKey=key, paymentMethod="card")
        )

        assert second.status_code == 409

    @pytest.mark.asyncio
    async def test_unknown_payment_method_rejected(self, api_client, test_db):
        response = await api_client.post(
            "/api/food/orders", json=order_body(paymentMethod="bitcoin")
        )

        assert response.status_code == 422
        result = await test_db.execute(select(func.count(Order.id)))
        assert result.scalar() == 0

    @pytest.mark.asyncio
    async def test_missing_key_rejected(self, api_client):
        response = await api_client.post("/api/food/orders", json=order_body(idempotencyKey=None))

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_total_mismatch_rejected(self, api_client):
        response = await api_client.post("/api/food/orders", json=order_body(totalPrice="1485.80"))

        assert response.status_code == 409
        assert "1564.00" in response.json()["detail"]["message"]

    @pytest.mark.asyncio
    async def test_rounding_tolerance(self, api_client):
        response = await api_client.post("/api/food/orders", json=order_body(totalPrice="1564.01"))

        assert response.status_code == 201

    @pytest.mark.asyncio
    async def test_empty_cart_rejected(self, api_client):
        response = await api_client.post(
            "/api/food/orders", json=order_body(items=[], totalPrice="0.00")
        )

        assert response.status_code == 422
        assert response.json()["detail"]["message"] == "Your cart is empty"

    @pytest.mark.asyncio
    async def test_invalid_guest_rejected(self, api_client):
        body = order_body()
        body["guest"]["email"] = "invalid-email"

        response = await api_client.post("/api/food/orders", json=body)

        assert response.status_code == 422
        assert response.json()["detail"]["fieldErrors"] == {
            "email": "Please enter a valid email address"
        }

    @pytest.mark.asyncio
    async def test_takeaway_requires_pickup_minutes(self, api_client):
        response = await api_client.post(
            "/api/food/orders", json=order_body(orderType="takeaway", tableNumber=None)
        )

        assert response.status_code == 422
        assert "pickup_minutes" in response.json()["detail"]["fieldErrors"]

    @pytest.mark.asyncio
    async def test_offer_is_revalidated_and_counted(self, api_client, seeded_offers, test_db):
        # 1360 - 136 = 1224; + 122.40 tax + 61.20 fee
        response = await api_client.post(
            "/api/food/orders",
            json=order_body(
                appliedOffer={"id": "welcome10", "code": "WELCOME10"},
                discount="136.00",
                totalPrice="1407.60",
            ),
        )

        assert response.status_code == 201
        result = await test_db.execute(
            select(OfferRecord.redemptions).where(OfferRecord.id == "welcome10")
        )
        assert result.scalar() == 1

    @pytest.mark.asyncio
    async def test_expired_offer_rejected(self, api_client, seeded_offers):
        response = await api_client.post(
            "/api/food/orders",
            json=order_body(appliedOffer={"id": "old5", "code": "OLD5"}, totalPrice="1558.25"),
        )

        assert response.status_code == 422
        assert "expired" in response.json()["detail"]["message"]

    @pytest.mark.asyncio
    async def test_loyalty_offer_needs_prior_orders(self, api_client, seeded_offers):
        loyalty = {"appliedOffer": {"id": "loyal15", "code": "LOYAL15"}, "totalPrice": "1329.40"}

        first = await api_client.post("/api/food/orders", json=order_body(**loyalty))
        assert first.status_code == 422
        assert "min_orders_not_met" in first.json()["detail"]["message"]

        for _ in range(2):
            placed = await api_client.post("/api/food/orders", json=order_body())
            assert placed.status_code == 201

        second = await api_client.post("/api/food/orders", json=order_body(**loyalty))
        assert second.status_code == 201


class TestGetOrder:
    """Test GET /api/food/orders/{id}."""

    @pytest.mark.asyncio
    async def test_tracking(self, api_client):
        created = await api_client.post("/api/food/orders", json=order_body())
        order_id = created.json()["data"]["id"]

        response = await api_client.get(f"/api/food/orders/{order_id}")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["id"] == order_id
        assert data["paymentMethod"] == "cash"
        assert data["serviceFee"] == "68.00"
        assert [item["foodId"] for item in data["items"]] == ["curry", "tea"]

    @pytest.mark.asyncio
    async def test_unknown_order(self, api_client):
        response = await api_client.get("/api/food/orders/9999")

        assert response.status_code == 404


class TestHealth:
    """Test GET /health."""

    @pytest.mark.asyncio
    async def test_health(self, api_client):
        response = await api_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["database"] == "ok"
