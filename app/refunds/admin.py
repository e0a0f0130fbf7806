"""
Refund admin configuration.

Refunds are immutable, so every field is read-only and nothing can be
deleted. Compensation tasks can be re-queued from the changelist.
"""

from django.contrib import admin, messages

from refunds.models import CompensationTask, Refund, RefundItem
from refunds.state_machines import CompensationStatus

__all__ = [
    "RefundAdmin",
    "CompensationTaskAdmin",
]


class RefundItemInline(admin.TabularInline):
    model = RefundItem
    extra = 0
    can_delete = False
    readonly_fields = ["position", "product_id", "variant_id", "quantity", "amount_cents"]

    def has_add_permission(self, request, obj=None):
        return False


class CompensationTaskInline(admin.TabularInline):
    model = CompensationTask
    extra = 0
    can_delete = False
    readonly_fields = ["kind", "status", "attempts", "last_error", "last_attempted_at", "completed_at"]

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Refund)
class RefundAdmin(admin.ModelAdmin):
    """
    Admin configuration for Refund.

    Read-only view of provider refunds and their compensation progress.
    """

    list_display = [
        "id",
        "order",
        "amount_display",
        "refund_type",
        "provider",
        "provider_status",
        "inventory_restored",
        "created_at",
    ]
    list_filter = ["provider_status", "provider", "refund_type", "inventory_restored", "created_at"]
    search_fields = ["id", "provider_refund_id", "order__id", "order__reference"]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    inlines = [RefundItemInline, CompensationTaskInline]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "store", "order", "payment", "refund_type", "reason"),
            },
        ),
        (
            "Amount",
            {
                "fields": ("amount_cents", "currency"),
            },
        ),
        (
            "Provider",
            {
                "fields": ("provider", "provider_refund_id", "provider_status"),
            },
        ),
        (
            "Request",
            {
                "fields": ("initiated_by", "initiated_by_role", "request_fingerprint"),
            },
        ),
        (
            "Compensation",
            {
                "fields": ("inventory_restored",),
            },
        ),
        (
            "Metadata",
            {
                "fields": ("metadata",),
                "classes": ("collapse",),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.display(description="Amount")
    def amount_display(self, obj):
        return f"{obj.amount_cents / 100:.2f} {obj.currency.upper()}"


@admin.register(CompensationTask)
class CompensationTaskAdmin(admin.ModelAdmin):
    """
    Admin configuration for CompensationTask.

    Failed tasks that exhausted their attempts stay here until someone
    re-queues them.
    """

    list_display = ["id", "refund", "kind", "status", "attempts", "last_attempted_at", "completed_at"]
    list_filter = ["status", "kind"]
    search_fields = ["refund__id", "last_error"]
    readonly_fields = [
        "refund",
        "kind",
        "status",
        "attempts",
        "last_error",
        "last_attempted_at",
        "completed_at",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]
    actions = ["requeue_tasks"]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.action(description="Re-queue selected tasks")
    def requeue_tasks(self, request, queryset):
        from refunds.tasks import run_compensation_task

        task_ids = list(
            queryset.exclude(status=CompensationStatus.SUCCEEDED).values_list("id", flat=True)
        )
        for task_id in task_ids:
            run_compensation_task.delay(task_id)
        self.message_user(request, f"Queued {len(task_ids)} task(s)", messages.SUCCESS)
