"""
URL configuration for the refunds app.

Routes:
    - POST /orders/<order_id>/refunds/ - Create a refund
    - GET  /orders/<order_id>/refunds/ - List an order's refunds

All routes are prefixed with /api/v1/refunds/ when included in the main URLconf.
"""

from django.urls import path

from refunds.views import OrderRefundsView

app_name = "refunds"

urlpatterns = [
    path("orders/<str:order_id>/refunds/", OrderRefundsView.as_view(), name="order-refunds"),
]
