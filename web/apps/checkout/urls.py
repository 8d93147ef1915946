from django.urls import path

from .views import CartItemDetailView, CartItemsView, CartView, CheckoutView, LoginView, OrdersView

app_name = "checkout"

urlpatterns = [
    path("cart/", CartView.as_view(), name="cart"),  # GET summary / DELETE clear
    path("cart/items/", CartItemsView.as_view(), name="cart-items"),
    path("cart/items/<str:product_id>/", CartItemDetailView.as_view(), name="cart-item"),
    path("checkout/", CheckoutView.as_view(), name="checkout"),  # GET enter / POST submit
    path("auth/login/", LoginView.as_view(), name="login"),
    path("orders/", OrdersView.as_view(), name="orders"),
]
