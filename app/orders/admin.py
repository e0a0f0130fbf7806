"""
Orders admin configuration.
"""

from django.contrib import admin

from orders.models import Order, OrderItem, Payment, Store


@admin.register(Store)
class StoreAdmin(admin.ModelAdmin):
    list_display = ["name", "slug", "default_currency", "created_at"]
    search_fields = ["name", "slug"]


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ["product_id", "variant_id", "name", "quantity", "unit_price", "total_price"]


class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0
    fields = ["provider", "status", "amount_cents", "currency", "provider_payment_id"]
    readonly_fields = fields


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """Orders are owned by checkout; the admin is for inspection."""

    list_display = ["reference", "store", "status", "total_amount", "currency", "created_at"]
    list_filter = ["status", "currency", "store"]
    search_fields = ["id", "reference"]
    date_hierarchy = "created_at"
    inlines = [OrderItemInline, PaymentInline]


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ["id", "order", "provider", "status", "amount_cents", "currency", "created_at"]
    list_filter = ["provider", "status"]
    search_fields = ["id", "provider_payment_id", "capture_id", "order__reference"]
    readonly_fields = ["id", "created_at", "updated_at"]
