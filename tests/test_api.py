import uuid
from unittest import mock

import pytest
from django.db import OperationalError
from django.urls import reverse
from rest_framework.test import APIClient

from cart.models import Cart, CartItem

pytestmark = pytest.mark.django_db

CART_URL = reverse("api_v1:cart-detail")
ADD_URL = reverse("api_v1:add-to-cart")
MERGE_URL = reverse("api_v1:merge-carts")


def item_url(item_id):
    return reverse("api_v1:cart-item-detail", kwargs={"pk": item_id})


@pytest.fixture
def user(django_user_model):
    return django_user_model.objects.create_user(username="shopper", password="s3cret-pass")


class TestAnonymousCart:
    def test_get_creates_session_cart(self, api_client):
        response = api_client.get(CART_URL)

        assert response.status_code == 200
        assert response.data["items"] == []
        assert response.data["total"] == "0.00"
        assert response.data["user_id"] is None
        assert Cart.objects.filter(session_key=response.data["session_key"]).exists()

    def test_session_keeps_the_same_cart(self, api_client):
        first = api_client.get(CART_URL).data
        second = api_client.get(CART_URL).data

        assert first["id"] == second["id"]

    def test_add_update_remove(self, api_client):
        response = api_client.post(ADD_URL, {"product_id": "prod-a", "quantity": 2}, format="json")
        assert response.status_code == 201
        item = response.data["items"][0]
        assert item["product_name"] == "Alpha"
        assert item["price"] == "10.00"
        assert item["total"] == "20.00"
        assert response.data["item_count"] == 2

        response = api_client.patch(item_url(item["id"]), {"quantity": 5}, format="json")
        assert response.status_code == 200
        assert response.data["items"][0]["quantity"] == 5
        assert response.data["total"] == "50.00"

        response = api_client.delete(item_url(item["id"]))
        assert response.status_code == 200
        assert response.data["items"] == []

    def test_quantity_defaults_to_one(self, api_client):
        response = api_client.post(ADD_URL, {"product_id": "prod-b"}, format="json")

        assert response.data["items"][0]["quantity"] == 1

    def test_clear(self, api_client):
        api_client.post(ADD_URL, {"product_id": "prod-a"}, format="json")

        response = api_client.delete(CART_URL)

        assert response.status_code == 200
        assert response.data["items"] == []


class TestErrors:
    def test_invalid_quantity(self, api_client):
        response = api_client.post(ADD_URL, {"product_id": "prod-a", "quantity": 0}, format="json")

        assert response.status_code == 400
        assert response.data["code"] == "invalid_quantity"

    def test_malformed_payload(self, api_client):
        response = api_client.post(ADD_URL, {"quantity": 1}, format="json")

        assert response.status_code == 400
        assert "product_id" in response.data

    def test_unknown_product(self, api_client):
        response = api_client.post(ADD_URL, {"product_id": "nope"}, format="json")

        assert response.status_code == 404
        assert response.data["code"] == "product_not_found"

    def test_insufficient_stock(self, api_client):
        response = api_client.post(ADD_URL, {"product_id": "prod-a", "quantity": 51}, format="json")

        assert response.status_code == 409
        assert response.data["code"] == "insufficient_stock"
        assert api_client.get(CART_URL).data["items"] == []

    def test_product_service_down(self, api_client, products):
        products.unavailable = True

        response = api_client.post(ADD_URL, {"product_id": "prod-a"}, format="json")

        assert response.status_code == 503

    def test_foreign_line_is_not_found(self, api_client):
        other = APIClient()
        item_id = other.post(ADD_URL, {"product_id": "prod-a"}, format="json").data["items"][0]["id"]

        assert api_client.patch(item_url(item_id), {"quantity": 3}, format="json").status_code == 404
        assert api_client.delete(item_url(item_id)).status_code == 404
        assert other.get(CART_URL).data["items"][0]["quantity"] == 1

    def test_unknown_line(self, api_client):
        response = api_client.delete(item_url(uuid.uuid4()))

        assert response.status_code == 404
        assert response.data["code"] == "line_not_found"

    def test_store_failure_inside_transaction_is_unavailable(self, api_client):
        with mock.patch.object(Cart, "touch", side_effect=OperationalError("database is locked")):
            response = api_client.post(ADD_URL, {"product_id": "prod-a"}, format="json")

        assert response.status_code == 503
        assert response.data["code"] == "cart_store_unavailable"
        assert not CartItem.objects.exists()


class TestAccountCart:
    def test_authenticated_caller_uses_account_cart(self, api_client, user):
        api_client.force_authenticate(user)

        response = api_client.post(ADD_URL, {"product_id": "prod-a"}, format="json")

        assert response.data["user_id"] == str(user.pk)
        assert response.data["session_key"] is None

    def test_merge_requires_authentication(self, api_client):
        assert api_client.post(MERGE_URL).status_code == 403

    def test_merge_endpoint(self, api_client, user):
        api_client.post(ADD_URL, {"product_id": "prod-a", "quantity": 2}, format="json")
        api_client.force_authenticate(user)

        response = api_client.post(MERGE_URL)

        assert response.status_code == 200
        assert response.data["user_id"] == str(user.pk)
        assert response.data["items"][0]["quantity"] == 2
        assert Cart.objects.count() == 1

    def test_login_merges_anonymous_cart(self, api_client, user):
        api_client.post(ADD_URL, {"product_id": "prod-a", "quantity": 2}, format="json")
        api_client.post(ADD_URL, {"product_id": "prod-b", "quantity": 1}, format="json")

        api_client.force_login(user)
        response = api_client.get(CART_URL)

        assert response.data["user_id"] == str(user.pk)
        assert {item["product_id"]: item["quantity"] for item in response.data["items"]} == {
            "prod-a": 2,
            "prod-b": 1,
        }
        assert not Cart.objects.filter(session_key__isnull=False).exists()
