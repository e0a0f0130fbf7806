"""
Inventory admin configuration.
"""

from django.contrib import admin

from inventory.models import InventoryReservation, Supplier, SupplierVariantInventory


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ["name", "store", "created_at"]
    list_filter = ["store"]
    search_fields = ["name"]


@admin.register(SupplierVariantInventory)
class SupplierVariantInventoryAdmin(admin.ModelAdmin):
    list_display = [
        "store",
        "supplier",
        "variant_id",
        "available_stock",
        "total_stock",
        "last_updated_at",
    ]
    list_filter = ["store", "supplier"]
    search_fields = ["variant_id"]
    readonly_fields = ["last_updated_at", "created_at", "updated_at"]


@admin.register(InventoryReservation)
class InventoryReservationAdmin(admin.ModelAdmin):
    list_display = ["id", "order", "supplier", "variant_id", "quantity", "status", "created_at"]
    list_filter = ["status", "store"]
    search_fields = ["order__id", "order__reference", "product_id", "variant_id"]
