from django.urls import path, include


urlpatterns = [
    path('', include('cart.api_v1.urls')),
]
