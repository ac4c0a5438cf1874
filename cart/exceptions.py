"""Errors raised by the cart core.

Each error carries the HTTP status and machine readable code the API layer
reports; the core itself never imports anything from the HTTP stack.
"""


class CartError(Exception):
    status_code = 400
    default_code = 'cart_error'
    default_message = 'Cart operation failed'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidQuantity(CartError):
    default_code = 'invalid_quantity'
    default_message = 'Quantity must be a positive integer'


class IdentityRequired(CartError):
    default_code = 'identity_required'
    default_message = 'Either an account or a session identifier is required'


class ProductNotFound(CartError):
    status_code = 404
    default_code = 'product_not_found'
    default_message = 'Product not found'


class LineNotFound(CartError):
    # Also covers lines owned by another cart, so their existence never leaks.
    status_code = 404
    default_code = 'line_not_found'
    default_message = 'Cart item not found'


class InsufficientStock(CartError):
    status_code = 409
    default_code = 'insufficient_stock'
    default_message = 'Product not available in requested quantity'


class IdentityConflict(CartError):
    status_code = 500
    default_code = 'identity_conflict'
    default_message = 'Cart identities could not be reconciled'


class ProductServiceUnavailable(CartError):
    status_code = 503
    default_code = 'product_service_unavailable'
    default_message = 'Product service is temporarily unavailable'


class CartStoreUnavailable(CartError):
    status_code = 503
    default_code = 'cart_store_unavailable'
    default_message = 'Cart storage is temporarily unavailable'
