from django.urls import path
from .views import (
    CartDetailView,
    AddToCartView,
    CartItemDetailView,
    MergeCartsView
)


app_name = 'api_v1'

urlpatterns = [
    path('carts/', CartDetailView.as_view(), name='cart-detail'),
    path('carts/items/', AddToCartView.as_view(), name='add-to-cart'),
    path('carts/items/<uuid:pk>/', CartItemDetailView.as_view(), name='cart-item-detail'),
    path('carts/merge/', MergeCartsView.as_view(), name='merge-carts'),
]
