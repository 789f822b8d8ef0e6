from django.urls import path
from .views import cart_detail, cart_add_item, cart_item_detail, cart_clear, cart_merge, cart_checkout

urlpatterns = [
    path('cart/', cart_detail, name='cart-detail'),
    path('cart/items/', cart_add_item, name='cart-add-item'),
    path('cart/items/<int:pk>/', cart_item_detail, name='cart-item-detail'),
    path('cart/clear/', cart_clear, name='cart-clear'),
    path('cart/merge/', cart_merge, name='cart-merge'),
    path('cart/checkout/', cart_checkout, name='cart-checkout'),
]
