from django.contrib import admin

from .models import Escrow, EscrowTransaction


class EscrowTransactionInline(admin.TabularInline):
    model = EscrowTransaction
    extra = 0
    can_delete = False
    readonly_fields = ('type', 'amount', 'note', 'actor', 'evidence', 'created_at')

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Escrow)
class EscrowAdmin(admin.ModelAdmin):
    """Read-only view; escrow state changes go through the API so they pass the ledger rules."""

    list_display = ('code', 'project', 'homeowner', 'amount', 'released_amount', 'currency', 'status', 'created_at')
    list_filter = ('status', 'currency')
    search_fields = ('code', 'project__title', 'homeowner__email')
    inlines = [EscrowTransactionInline]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
