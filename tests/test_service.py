from decimal import Decimal
from unittest import mock

import pytest
import requests

from cart.exceptions import ProductServiceUnavailable
from cart.service import ProductService


def make_response(status_code=200, payload=None):
    response = mock.Mock()
    response.status_code = status_code
    response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status_code} error")
    return response


PRODUCT = {
    "id": "prod-a",
    "name": "Alpha",
    "price": "19.99",
    "stock": 7,
    "images": ["https://cdn.example.com/a.jpg"],
}


@pytest.fixture(autouse=True)
def fast_retries(settings):
    settings.PRODUCT_SERVICE_URL = "http://products.test/"
    settings.PRODUCT_SERVICE_MAX_RETRIES = 3
    settings.PRODUCT_SERVICE_RETRY_BACKOFF = 0


@mock.patch("cart.service.requests.get")
def test_get_product(get):
    get.return_value = make_response(payload=PRODUCT)

    product = ProductService.get_product("prod-a")

    get.assert_called_once_with("http://products.test/products/prod-a/", timeout=3)
    assert product.price == Decimal("19.99")
    assert product.stock == 7
    assert product.name == "Alpha"
    assert product.image == "https://cdn.example.com/a.jpg"


@mock.patch("cart.service.requests.get")
def test_missing_product_returns_none(get):
    get.return_value = make_response(status_code=404)

    assert ProductService.get_product("missing") is None
    assert get.call_count == 1


@mock.patch("cart.service.requests.get")
def test_timeouts_are_retried_then_reported(get):
    get.side_effect = requests.exceptions.Timeout("slow")

    with pytest.raises(ProductServiceUnavailable):
        ProductService.get_product("prod-a")

    assert get.call_count == 3


@mock.patch("cart.service.requests.get")
def test_server_error_recovers_on_retry(get):
    get.side_effect = [make_response(status_code=503), make_response(payload=PRODUCT)]

    product = ProductService.get_product("prod-a")

    assert product.id == "prod-a"
    assert get.call_count == 2


@mock.patch("cart.service.requests.get")
def test_client_error_is_not_retried(get):
    get.return_value = make_response(status_code=400)

    with pytest.raises(ProductServiceUnavailable):
        ProductService.get_product("prod-a")

    assert get.call_count == 1


@mock.patch("cart.service.requests.get")
def test_malformed_payload(get):
    get.return_value = make_response(payload={"id": "prod-a", "price": "not-a-price"})

    with pytest.raises(ProductServiceUnavailable):
        ProductService.get_product("prod-a")
