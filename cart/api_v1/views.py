import uuid

from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..cart_manager import CartManager
from ..identity import AccountOwner, resolve_owner
from ..service import ProductService
from ..signals import cart_session_key_name
from .serializers import (
    AddToCartSerializer,
    RenderedCartSerializer,
    UpdateCartItemSerializer,
)


class CartViewMixin:
    """Builds the caller's cart identity and the cart manager for a request."""

    product_service = ProductService

    def get_cart_manager(self):
        return CartManager(product_service=self.product_service)

    def get_cart_session_key(self):
        """Return the visitor's cart session id, creating it on first use.

        Kept in session data rather than the session key itself so that it
        survives the key rotation performed at login.
        """
        session = self.request.session
        name = cart_session_key_name()
        session_key = session.get(name)
        if not session_key:
            session_key = uuid.uuid4().hex
            session[name] = session_key
        return session_key

    def get_owner(self):
        user = self.request.user
        user_id = user.pk if user.is_authenticated else None
        return resolve_owner(user_id=user_id, session_key=self.get_cart_session_key())

    def cart_response(self, rendered, status_code=status.HTTP_200_OK):
        return Response(RenderedCartSerializer(rendered).data, status=status_code)


class CartDetailView(CartViewMixin, generics.GenericAPIView):
    serializer_class = RenderedCartSerializer

    def get(self, request, *args, **kwargs):
        return self.cart_response(self.get_cart_manager().get_cart(self.get_owner()))

    def delete(self, request, *args, **kwargs):
        """Empty the cart; the cart itself is kept."""
        return self.cart_response(self.get_cart_manager().clear(self.get_owner()))


class AddToCartView(CartViewMixin, generics.CreateAPIView):
    serializer_class = AddToCartSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        rendered = self.get_cart_manager().add_item(
            self.get_owner(),
            product_id=serializer.validated_data['product_id'],
            quantity=serializer.validated_data['quantity'],
            variant_id=serializer.validated_data.get('variant_id'),
        )
        return self.cart_response(rendered, status.HTTP_201_CREATED)


class CartItemDetailView(CartViewMixin, generics.GenericAPIView):
    serializer_class = UpdateCartItemSerializer

    def patch(self, request, pk, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        rendered = self.get_cart_manager().update_item(
            self.get_owner(),
            item_id=pk,
            quantity=serializer.validated_data['quantity'],
        )
        return self.cart_response(rendered)

    def delete(self, request, pk, *args, **kwargs):
        return self.cart_response(self.get_cart_manager().remove_item(self.get_owner(), item_id=pk))


class MergeCartsView(CartViewMixin, generics.GenericAPIView):
    """View for merging session cart with user cart after login"""
    serializer_class = RenderedCartSerializer
    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        manager = self.get_cart_manager()
        session_key = request.session.get(cart_session_key_name())
        manager.merge_carts(session_key, request.user.pk)
        return self.cart_response(manager.get_cart(AccountOwner(str(request.user.pk))))
