"""
API tests for the part, part order and transaction endpoints.

Requests run through the full FastAPI stack (middleware, error handlers,
multipart parsing) against services backed by in-memory repositories.
"""

import json
import uuid
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import status
from fastapi.testclient import TestClient

API = "/api/v1"


def _form(payload: dict) -> dict:
    return {"payload": json.dumps(payload)}


@pytest.fixture
def part(inventory_repository):
    return inventory_repository.add(name="Brake Pad", price="10.00", stock_quantity=5)


# ============================================================================
# Health Endpoints
# ============================================================================


class TestHealthEndpoints:
    def test_health(self, test_client: TestClient):
        response = test_client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "healthy"
        assert response.json()["environment"] == "test"

    def test_live(self, test_client: TestClient):
        assert test_client.get("/live").json()["status"] == "alive"

    @pytest.mark.parametrize(
        "healthy,expected_status",
        [(True, status.HTTP_200_OK), (False, status.HTTP_503_SERVICE_UNAVAILABLE)],
    )
    def test_ready(self, test_client: TestClient, healthy, expected_status):
        with patch("autohub.main.check_database_health", AsyncMock(return_value=healthy)):
            response = test_client.get("/ready")

        assert response.status_code == expected_status

    def test_request_id_is_echoed(self, test_client: TestClient):
        response = test_client.get("/health", headers={"X-Request-ID": "req-42"})

        assert response.headers["X-Request-ID"] == "req-42"


# ============================================================================
# Parts
# ============================================================================


class TestPartEndpoints:
    def test_create_part_with_image(self, test_client: TestClient):
        response = test_client.post(
            f"{API}/parts",
            data=_form({"name": "Headlight", "price": "45.99", "stock_quantity": 4}),
            files=[("images", ("lamp.png", b"\x89PNG", "image/png"))],
        )

        assert response.status_code == status.HTTP_201_CREATED
        body = response.json()
        assert body["name"] == "Headlight"
        assert body["status"] == "available"
        assert len(body["images"]) == 1

    def test_create_part_invalid_payload(self, test_client: TestClient):
        response = test_client.post(
            f"{API}/parts", data=_form({"name": "Headlight", "price": "-1", "stock_quantity": 4})
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "invalid_argument"

    def test_get_part(self, test_client: TestClient, part):
        response = test_client.get(f"{API}/parts/{part.id}")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["part"]["id"] == str(part.id)
        assert response.json()["related_parts"] == []

    def test_get_part_malformed_id(self, test_client: TestClient):
        response = test_client.get(f"{API}/parts/not-a-uuid")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "invalid_argument"

    def test_get_unknown_part(self, test_client: TestClient):
        response = test_client.get(f"{API}/parts/{uuid.uuid4()}")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"] == "not_found"
        assert "request_id" in response.json()

    def test_list_parts(self, test_client: TestClient, inventory_repository):
        for _ in range(3):
            inventory_repository.add(category="brakes")

        response = test_client.get(f"{API}/parts", params={"category": "brakes", "limit": 2})

        body = response.json()
        assert len(body["parts"]) == 2
        assert body["meta"]["total"] == 3
        assert body["meta"]["has_next_page"] is True

    def test_update_part(self, test_client: TestClient, part):
        response = test_client.put(
            f"{API}/parts/{part.id}", data=_form({"stock_quantity": 0})
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "out_of_stock"

    def test_update_part_rejects_unknown_fields(self, test_client: TestClient, part):
        response = test_client.put(f"{API}/parts/{part.id}", data=_form({"status": "available"}))

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_delete_part_in_use(self, test_client: TestClient, inventory_repository, part):
        inventory_repository.open_orders[part.id] = 1

        response = test_client.delete(f"{API}/parts/{part.id}")

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error"] == "resource_in_use"

    def test_delete_part(self, test_client: TestClient, part):
        response = test_client.delete(f"{API}/parts/{part.id}")

        assert response.status_code == status.HTTP_204_NO_CONTENT


# ============================================================================
# Part Orders
# ============================================================================


class TestPartOrderEndpoints:
    def _create(self, client: TestClient, part, quantity: int = 3):
        return client.post(
            f"{API}/part-orders",
            data=_form(
                {
                    "buyer_id": str(uuid.uuid4()),
                    "items": [{"part_id": str(part.id), "quantity": quantity}],
                    "shipping_address": {"city": "Austin", "email": "buyer@example.com"},
                }
            ),
        )

    def test_create_order(self, test_client: TestClient, part):
        response = self._create(test_client, part)

        assert response.status_code == status.HTTP_201_CREATED
        body = response.json()
        assert body["status"] == "pending"
        assert body["total_amount"] == "30.00"
        assert body["items"][0]["unit_price"] == "10.00"
        assert part.stock_quantity == 2

    def test_create_order_insufficient_stock(self, test_client: TestClient, part):
        response = self._create(test_client, part, quantity=9)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        body = response.json()
        assert body["error"] == "insufficient_stock"
        assert body["details"]["available"] == 5
        assert part.stock_quantity == 5

    def test_create_order_with_document(self, test_client: TestClient, part):
        response = test_client.post(
            f"{API}/part-orders",
            data=_form(
                {
                    "buyer_id": str(uuid.uuid4()),
                    "items": [{"part_id": str(part.id), "quantity": 1}],
                }
            ),
            files=[("documents", ("label.pdf", b"%PDF-1.4", "application/pdf"))],
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert len(response.json()["documents"]) == 1

    def test_cancel_restores_stock(self, test_client: TestClient, part):
        order_id = self._create(test_client, part).json()["id"]

        response = test_client.put(
            f"{API}/part-orders/{order_id}/status", json={"status": "cancelled"}
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "cancelled"
        assert part.stock_quantity == 5

    def test_cancel_shipped_order(self, test_client: TestClient, part):
        order_id = self._create(test_client, part).json()["id"]
        test_client.put(
            f"{API}/part-orders/{order_id}/status",
            json={"status": "shipped", "tracking_number": "TRK-1"},
        )

        response = test_client.put(
            f"{API}/part-orders/{order_id}/status", json={"status": "cancelled"}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "already_shipped"
        assert test_client.get(f"{API}/part-orders/{order_id}").json()["status"] == "shipped"

    def test_unknown_status_is_a_validation_error(self, test_client: TestClient, part):
        order_id = self._create(test_client, part).json()["id"]

        response = test_client.put(
            f"{API}/part-orders/{order_id}/status", json={"status": "lost"}
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["error"] == "validation_error"

    def test_user_orders(self, test_client: TestClient, part):
        buyer_id = self._create(test_client, part, quantity=1).json()["buyer_id"]

        response = test_client.get(f"{API}/part-orders/users/{buyer_id}")

        assert response.json()["meta"]["total"] == 1

    def test_stats(self, test_client: TestClient, part):
        self._create(test_client, part)

        response = test_client.get(f"{API}/part-orders/stats")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status_stats"][0]["status"] == "pending"


# ============================================================================
# Transactions
# ============================================================================


class TestTransactionEndpoints:
    @pytest.fixture
    def order_id(self, test_client: TestClient, part) -> str:
        response = test_client.post(
            f"{API}/part-orders",
            data=_form(
                {
                    "buyer_id": str(uuid.uuid4()),
                    "items": [{"part_id": str(part.id), "quantity": 3}],
                }
            ),
        )
        return response.json()["id"]

    def _pay(self, client: TestClient, order_id: str, amount: str = "30.00"):
        return client.post(
            f"{API}/transactions",
            data=_form(
                {
                    "payer_id": str(uuid.uuid4()),
                    "reference_type": "part_order",
                    "reference_id": order_id,
                    "amount": amount,
                    "payment_method": "card",
                }
            ),
        )

    def test_create_transaction(self, test_client: TestClient, order_id):
        response = self._pay(test_client, order_id)

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["status"] == "pending"
        order = test_client.get(f"{API}/part-orders/{order_id}").json()
        assert order["payment_status"] == "payment_pending"

    def test_amount_mismatch(self, test_client: TestClient, order_id):
        response = self._pay(test_client, order_id, amount="30.01")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "amount_mismatch"
        listing = test_client.get(f"{API}/transactions").json()
        assert listing["meta"]["total"] == 0

    def test_complete_then_refund(self, test_client: TestClient, order_id):
        transaction_id = self._pay(test_client, order_id).json()["id"]

        completed = test_client.put(
            f"{API}/transactions/{transaction_id}/status", json={"status": "completed"}
        )
        back_to_pending = test_client.put(
            f"{API}/transactions/{transaction_id}/status", json={"status": "pending"}
        )
        refunded = test_client.put(
            f"{API}/transactions/{transaction_id}/status", json={"status": "refunded"}
        )

        assert completed.status_code == status.HTTP_200_OK
        assert back_to_pending.status_code == status.HTTP_400_BAD_REQUEST
        assert back_to_pending.json()["error"] == "transaction_finalized"
        assert refunded.json()["status"] == "refunded"
        order = test_client.get(f"{API}/part-orders/{order_id}").json()
        assert order["payment_status"] == "payment_failed"

    def test_transaction_details(self, test_client: TestClient, order_id):
        transaction_id = self._pay(test_client, order_id).json()["id"]

        response = test_client.get(f"{API}/transactions/{transaction_id}")

        body = response.json()
        assert body["transaction"]["id"] == transaction_id
        assert body["reference_details"]["id"] == order_id
        assert body["reference_details"]["total_amount"] == "30.00"

    def test_unknown_reference(self, test_client: TestClient):
        response = self._pay(test_client, str(uuid.uuid4()))

        assert response.status_code == status.HTTP_404_NOT_FOUND
