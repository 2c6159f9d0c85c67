"""Integration tests for the price preview endpoints."""


class TestPreviewPrice:
    def test_localized_preview(self, client):
        response = client.post("/checkout/preview-price", json={"priceId": "pri_basic_gb", "country": "GB"})

        assert response.status_code == 200
        assert response.json() == {
            "priceId": "pri_basic_gb",
            "country": "GB",
            "amount": 2399,
            "currency": "GBP",
            "displayPrice": "£23.99",
            "localized": True,
        }

    def test_stored_price_when_provider_fails(self, client, gateway, make_product):
        make_product(unit_price=29.99)
        gateway.configure(should_succeed=False)

        response = client.post("/checkout/preview-price", json={"priceId": "pri_basic"})

        assert response.status_code == 200
        assert response.json()["localized"] is False
        assert response.json()["displayPrice"] == "$29.99"

    def test_missing_price_id(self, client):
        assert client.post("/checkout/preview-price", json={"priceId": ""}).status_code == 422


class TestLivePrice:
    def test_known_price(self, client):
        response = client.get("/checkout/price/pri_spice")
        assert response.json() == {"priceId": "pri_spice", "amount": 1250, "currency": "USD"}

    def test_unknown_price(self, client):
        response = client.get("/checkout/price/pri_missing")
        assert response.status_code == 404
        assert response.json()["code"] == "PriceNotFound"

    def test_malformed_price_id(self, client):
        assert client.get("/checkout/price/not-a-price").status_code == 400
