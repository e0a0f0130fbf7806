"""
Settlements admin configuration. Ledger entries are read-only.
"""

from django.contrib import admin

from settlements.models import PaymentSplit, SplitLedgerEntry


class SplitLedgerEntryInline(admin.TabularInline):
    model = SplitLedgerEntry
    fk_name = "split"
    extra = 0
    can_delete = False
    fields = ["entry_type", "party_role", "party_reference", "amount_cents", "status", "refund", "created_at"]
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(PaymentSplit)
class PaymentSplitAdmin(admin.ModelAdmin):
    list_display = [
        "order",
        "total_amount_cents",
        "supplier_amount_cents",
        "reseller_amount_cents",
        "platform_amount_cents",
        "status",
        "created_at",
    ]
    list_filter = ["status", "payment_method"]
    search_fields = ["order__id", "order__reference"]
    inlines = [SplitLedgerEntryInline]


@admin.register(SplitLedgerEntry)
class SplitLedgerEntryAdmin(admin.ModelAdmin):
    list_display = ["created_at", "order", "entry_type", "party_role", "amount_cents", "status", "refund"]
    list_filter = ["entry_type", "party_role", "status"]
    search_fields = ["order__id", "party_reference", "idempotency_key"]
    date_hierarchy = "created_at"

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
