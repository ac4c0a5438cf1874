import structlog
from django.conf import settings
from django.contrib.auth.signals import user_logged_in
from django.dispatch import receiver

from .cart_manager import CartManager
from .exceptions import CartError

logger = structlog.get_logger(__name__)

CART_SESSION_KEY = 'cart_session_id'


def cart_session_key_name():
    return getattr(settings, 'CART_SESSION_KEY', CART_SESSION_KEY)


@receiver(user_logged_in, dispatch_uid='cart.merge_on_login')
def merge_cart_on_login(sender, request, user, **kwargs):
    """Fold the visitor's anonymous cart into the account cart at login."""
    if not getattr(settings, 'CART_MERGE_ON_LOGIN', True) or request is None:
        return
    session_key = request.session.get(cart_session_key_name())
    if not session_key:
        return
    logger.info("Merging cart on login", user_id=str(user.pk))
    try:
        CartManager().merge_carts(session_key, user.pk)
    except CartError as exc:
        # The anonymous cart is left in place for a later merge
        logger.error(
            "Cart merge on login failed",
            user_id=str(user.pk),
            code=exc.default_code,
            exc_info=True,
        )
