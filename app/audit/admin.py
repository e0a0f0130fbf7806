"""
Audit admin configuration. Entries are read-only.
"""

from django.contrib import admin

from audit.models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ["created_at", "action", "entity_type", "entity_id", "actor", "actor_role"]
    list_filter = ["action", "actor_role", "entity_type"]
    search_fields = ["entity_id", "description", "actor__email"]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
