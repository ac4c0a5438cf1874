from contextlib import contextmanager

import structlog
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import DatabaseError, IntegrityError, OperationalError, transaction
from tenacity import retry, retry_if_exception_type, stop_after_attempt

from .exceptions import (
    CartStoreUnavailable,
    IdentityConflict,
    IdentityRequired,
    InsufficientStock,
    InvalidQuantity,
    LineNotFound,
    ProductNotFound,
)
from .identity import AccountOwner, SessionOwner
from .models import Cart, CartItem
from .projection import render_cart
from .service import ProductService

logger = structlog.get_logger(__name__)

STOCK_CHECK_REQUEST = 'request'
STOCK_CHECK_CUMULATIVE = 'cumulative'


def _is_integer(value):
    return isinstance(value, int) and not isinstance(value, bool)


@retry(
    retry=retry_if_exception_type((IntegrityError, OperationalError)),
    stop=stop_after_attempt(2),
    reraise=True,
)
def _get_or_create_cart(**lookup):
    # get_or_create re-reads the winner's row when a concurrent insert
    # trips the unique constraint; a second failure is retried once here.
    return Cart.objects.get_or_create(**lookup)


class CartManager:
    """
    Resolves, mutates and merges carts.

    Every mutation runs in one transaction holding the cart row lock, so
    operations on the same cart are serialized and never partially applied.
    """

    def __init__(self, product_service=ProductService):
        self.product_service = product_service

    @property
    def stock_check(self):
        return getattr(settings, 'CART_STOCK_CHECK', STOCK_CHECK_REQUEST)

    # ------------------------------------------------------------------
    # Identity resolution
    # ------------------------------------------------------------------
    @staticmethod
    def resolve(owner):
        """Return the cart for ``owner``, creating it if absent."""
        try:
            cart, created = _get_or_create_cart(**owner.lookup)
        except (IntegrityError, OperationalError) as exc:
            logger.error("Cart store unavailable", error=str(exc), **owner.lookup)
            raise CartStoreUnavailable() from exc
        if created:
            logger.info("Cart created", cart_id=str(cart.id), **owner.lookup)
        return cart

    @staticmethod
    def get_user_cart(user_id):
        return CartManager.resolve(AccountOwner(str(user_id)))

    @staticmethod
    def get_session_cart(session_key):
        return CartManager.resolve(SessionOwner(str(session_key)))

    @contextmanager
    def _locked_cart(self, owner):
        cart = self.resolve(owner)
        try:
            with transaction.atomic():
                locked = Cart.objects.select_for_update().filter(pk=cart.pk).first()
                if locked is None:
                    # Retired by a concurrent merge after it was resolved
                    cart, _ = Cart.objects.get_or_create(**owner.lookup)
                    locked = Cart.objects.select_for_update().get(pk=cart.pk)
                yield locked
        except DatabaseError as exc:
            logger.error("Cart store unavailable", cart_id=str(cart.pk), error=str(exc))
            raise CartStoreUnavailable() from exc

    @staticmethod
    def _owned_item(cart, item_id):
        try:
            return cart.items.get(pk=item_id)
        except (CartItem.DoesNotExist, ValidationError, ValueError):
            raise LineNotFound() from None

    def _lookup_product(self, product_id):
        product = self.product_service.get_product(product_id)
        if product is None:
            raise ProductNotFound()
        return product

    @staticmethod
    def _check_stock(product, quantity):
        if product.stock < quantity:
            raise InsufficientStock(
                f"Only {product.stock} of product {product.id} in stock, {quantity} requested"
            )

    # ------------------------------------------------------------------
    # Line items
    # ------------------------------------------------------------------
    def get_cart(self, owner):
        return render_cart(self.resolve(owner), self.product_service)

    def add_item(self, owner, product_id, quantity, variant_id=None):
        """Add ``quantity`` of a product, or increase an existing line.

        An existing line keeps its price snapshot; a new line snapshots the
        current product price.
        """
        if not _is_integer(quantity) or quantity < 1:
            raise InvalidQuantity()
        product_id = str(product_id)
        variant_id = str(variant_id) if variant_id is not None else None
        product = self._lookup_product(product_id)

        with self._locked_cart(owner) as cart:
            item = cart.items.filter(product_id=product_id, variant_id=variant_id).first()
            if self.stock_check == STOCK_CHECK_CUMULATIVE and item is not None:
                self._check_stock(product, item.quantity + quantity)
            else:
                self._check_stock(product, quantity)

            if item is not None:
                item.quantity += quantity
                item.save(update_fields=['quantity', 'updated_at'])
            else:
                item = cart.items.create(
                    product_id=product_id,
                    variant_id=variant_id,
                    quantity=quantity,
                    price_at_addition=product.price,
                )
            cart.touch()
            lines = list(cart.items.all())

        logger.info(
            "Cart item added",
            cart_id=str(cart.id),
            item_id=str(item.id),
            product_id=product_id,
            variant_id=variant_id,
            quantity=quantity,
        )
        return render_cart(cart, self.product_service, lines=lines)

    def update_item(self, owner, item_id, quantity):
        """Replace a line's quantity; zero or less removes the line."""
        if not _is_integer(quantity):
            raise InvalidQuantity()

        with self._locked_cart(owner) as cart:
            item = self._owned_item(cart, item_id)
            if quantity <= 0:
                item.delete()
            else:
                if self.stock_check == STOCK_CHECK_CUMULATIVE:
                    self._check_stock(self._lookup_product(item.product_id), quantity)
                item.quantity = quantity
                item.save(update_fields=['quantity', 'updated_at'])
            cart.touch()
            lines = list(cart.items.all())

        logger.info(
            "Cart item updated",
            cart_id=str(cart.id),
            item_id=str(item_id),
            quantity=max(quantity, 0),
        )
        return render_cart(cart, self.product_service, lines=lines)

    def remove_item(self, owner, item_id):
        with self._locked_cart(owner) as cart:
            self._owned_item(cart, item_id).delete()
            cart.touch()
            lines = list(cart.items.all())

        logger.info("Cart item removed", cart_id=str(cart.id), item_id=str(item_id))
        return render_cart(cart, self.product_service, lines=lines)

    def clear(self, owner):
        """Remove all items from cart"""
        with self._locked_cart(owner) as cart:
            deleted, _ = cart.items.all().delete()
            if deleted:
                cart.touch()

        logger.info("Cart cleared", cart_id=str(cart.id), removed=deleted)
        return render_cart(cart, self.product_service, lines=[])

    # ------------------------------------------------------------------
    # Merging (anonymous -> account)
    # ------------------------------------------------------------------
    def merge_carts(self, session_key, user_id):
        """Fold the session's anonymous cart into the account cart.

        Lines for a product/variant already in the account cart only add
        their quantity; the account line keeps its price snapshot. Other
        lines move over unchanged. The anonymous cart is deleted afterwards.
        """
        if user_id is None or str(user_id) == '':
            raise IdentityRequired("Merging requires an account identifier")
        if not session_key:
            return

        session_cart = Cart.objects.filter(session_key=str(session_key)).first()
        if session_cart is None:
            return
        user_cart = self.resolve(AccountOwner(str(user_id)))
        if session_cart.pk == user_cart.pk:
            raise IdentityConflict(f"Session {session_key} already resolves to the account cart")

        try:
            with transaction.atomic():
                locked = {
                    cart.pk: cart
                    for cart in Cart.objects.select_for_update()
                    .filter(pk__in=[session_cart.pk, user_cart.pk])
                    .order_by('pk')
                }
                session_cart = locked.get(session_cart.pk)
                user_cart = locked.get(user_cart.pk)
                if session_cart is None:
                    # Merged by a concurrent login
                    return
                if user_cart is None or session_cart.user_id is not None:
                    logger.error(
                        "Cart identity conflict",
                        session_key=str(session_key),
                        user_id=str(user_id),
                        session_cart_id=str(session_cart.pk),
                    )
                    raise IdentityConflict()
                combined, moved = self._fold_lines(session_cart, user_cart)
        except DatabaseError as exc:
            logger.error(
                "Cart store unavailable",
                session_key=str(session_key),
                user_id=str(user_id),
                error=str(exc),
            )
            raise CartStoreUnavailable() from exc

        logger.info(
            "Carts merged",
            cart_id=str(user_cart.pk),
            user_id=str(user_id),
            combined=combined,
            moved=moved,
        )

    @staticmethod
    def _fold_lines(session_cart, user_cart):
        existing = {(item.product_id, item.variant_id): item for item in user_cart.items.all()}
        combined = moved = 0
        for item in list(session_cart.items.all()):
            target = existing.get((item.product_id, item.variant_id))
            if target is not None:
                target.quantity += item.quantity
                target.save(update_fields=['quantity', 'updated_at'])
                item.delete()
                combined += 1
            else:
                item.cart = user_cart
                item.save(update_fields=['cart', 'updated_at'])
                moved += 1

        session_cart.delete()
        if combined or moved:
            user_cart.touch()
        return combined, moved
