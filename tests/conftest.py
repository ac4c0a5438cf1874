import threading
from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from cart.api_v1.views import CartViewMixin
from cart.cart_manager import CartManager
from cart.exceptions import ProductServiceUnavailable
from cart.identity import AccountOwner, SessionOwner
from cart.service import ProductSnapshot


class FakeProductService:
    """In-memory stand-in for the external product service."""

    def __init__(self):
        self.products = {}
        self.unavailable = False
        self.calls = 0
        self._lock = threading.Lock()

    def add(self, product_id, price, stock=100, name=None, images=("https://cdn.example.com/img.jpg",)):
        product = ProductSnapshot(
            id=product_id,
            name=name or f"Product {product_id}",
            price=Decimal(price),
            stock=stock,
            images=tuple(images),
        )
        self.products[product_id] = product
        return product

    def update(self, product_id, **changes):
        product = self.products[product_id]
        fields = {
            "id": product.id,
            "name": product.name,
            "price": product.price,
            "stock": product.stock,
            "images": product.images,
        }
        fields.update(changes)
        if "price" in changes:
            fields["price"] = Decimal(changes["price"])
        self.products[product_id] = ProductSnapshot(**fields)

    def remove(self, product_id):
        self.products.pop(product_id, None)

    def get_product(self, product_id):
        with self._lock:
            self.calls += 1
        if self.unavailable:
            raise ProductServiceUnavailable()
        return self.products.get(str(product_id))


@pytest.fixture
def products():
    service = FakeProductService()
    service.add("prod-a", "10.00", stock=50, name="Alpha")
    service.add("prod-b", "5.00", stock=50, name="Bravo")
    return service


@pytest.fixture
def manager(products):
    return CartManager(product_service=products)


@pytest.fixture
def visitor():
    return SessionOwner("session-visitor")


@pytest.fixture
def account():
    return AccountOwner("42")


@pytest.fixture
def api_client(products, monkeypatch):
    monkeypatch.setattr(CartViewMixin, "product_service", products)
    return APIClient()
