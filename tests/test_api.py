"""Tests for the FastAPI routes."""

from decimal import Decimal

from emporio.digest import NO_ORDERS_MESSAGE

ORDER = {
    "name": "Maria",
    "phone": "11 99999-0000",
    "payment": "pix",
    "items": [{"type": "meat", "qty": 2.5, "price": 40, "subtotal": 100}],
}


def _create(client, **overrides):
    response = client.post("/api/orders", json={**ORDER, **overrides})
    assert response.status_code == 201, response.text
    return response.json()


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestOrders:
    def test_create(self, client):
        data = _create(client)

        assert data["id"] > 0
        assert data["status"] == "pending"
        assert data["order_date"] == "2026-10-18"
        assert Decimal(str(data["total"])) == Decimal("100")
        assert len(data["items"]) == 1
        assert data["items"][0]["type"] == "meat"

    def test_create_missing_fields(self, client):
        response = client.post("/api/orders", json={"name": "", "items": [], "payment": "pix"})

        assert response.status_code == 400
        assert "detail" in response.json()

    def test_list_and_get(self, client):
        first = _create(client)
        second = _create(client, name="Pedro", order_date="2026-10-01")

        listed = client.get("/api/orders").json()
        assert [o["id"] for o in listed] == [second["id"], first["id"]]

        fetched = client.get(f"/api/orders/{second['id']}").json()
        assert fetched["name"] == "Pedro"
        assert fetched["order_date"] == "2026-10-01"

    def test_get_missing(self, client):
        assert client.get("/api/orders/999").status_code == 404

    def test_update_and_history(self, client):
        order = _create(client)

        response = client.put(f"/api/orders/{order['id']}", json={"status": "paid"})
        assert response.status_code == 200
        assert response.json()["status"] == "paid"
        assert response.json()["name"] == "Maria"

        client.put(f"/api/orders/{order['id']}", json={"status": "cancelled"})

        history = client.get("/api/history").json()
        assert len(history) == 1
        assert history[0]["order_id"] == order["id"]
        assert history[0]["status"] == "paid"
        assert history[0]["items"][0]["type"] == "meat"

    def test_update_invalid_status(self, client):
        order = _create(client)

        response = client.put(f"/api/orders/{order['id']}", json={"status": "delivered"})

        assert response.status_code == 400

    def test_update_missing(self, client):
        assert client.put("/api/orders/999", json={"name": "X"}).status_code == 404

    def test_delete(self, client):
        order = _create(client)
        client.put(f"/api/orders/{order['id']}", json={"status": "paid"})

        response = client.delete(f"/api/orders/{order['id']}")
        assert response.status_code == 200
        assert response.json() == {"success": True}

        assert client.delete(f"/api/orders/{order['id']}").status_code == 404
        assert len(client.get("/api/history").json()) == 1


class TestStats:
    def test_stats_bundle(self, client):
        paid = _create(client)
        _create(client, payment="cash", items=[{"type": "chicken", "qty": 2, "price": 40}])
        client.put(f"/api/orders/{paid['id']}", json={"status": "paid"})

        data = client.get("/api/stats").json()

        assert data["total_orders"] == 2
        assert data["paid"] == 1
        assert data["pending"] == 1
        assert data["cancelled"] == 0
        assert Decimal(str(data["revenue"])) == Decimal("100")
        assert {k: Decimal(str(v)) for k, v in data["item_totals"].items()} == {
            "chicken": Decimal("2"),
            "meat": Decimal("2.5"),
        }
        assert {k: Decimal(str(v)) for k, v in data["payment_totals"].items()} == {"pix": Decimal("100")}


class TestWhatsApp:
    def test_preview(self, client):
        order = _create(client)
        client.put(f"/api/orders/{order['id']}", json={"status": "paid"})

        data = client.get("/api/whatsapp/preview", params={"date": "2026-10-18"}).json()

        assert data["date"] == "2026-10-18"
        assert "Receita do Dia: R$ 100,00" in data["preview"]

    def test_preview_defaults_to_today(self, client):
        _create(client)

        data = client.get("/api/whatsapp/preview").json()

        assert data["date"] == "2026-10-18"
        assert "Pendentes: 1" in data["preview"]

    def test_preview_without_orders(self, client):
        data = client.get("/api/whatsapp/preview", params={"date": "2020-01-01"}).json()

        assert data["preview"] == NO_ORDERS_MESSAGE

    def test_send_without_credentials(self, client):
        _create(client)

        data = client.post("/api/whatsapp/send-summary", json={"date": "2026-10-18"}).json()

        assert data["success"] is False
        assert "Carne & Costela: 2.50 kg" in data["preview"]

    def test_send_without_body_or_orders(self, client):
        data = client.post("/api/whatsapp/send-summary").json()

        assert data["success"] is False
        assert data["message"] == NO_ORDERS_MESSAGE
