from django.contrib import admin
from .models import Wallet, WalletTransaction


class WalletTransactionInline(admin.TabularInline):
    model = WalletTransaction
    extra = 0
    can_delete = False
    readonly_fields = ("amount", "kind", "description", "payment_method", "external_transaction_id", "created_at")


@admin.register(Wallet)
class WalletAdmin(admin.ModelAdmin):
    """Balances are read-only here; money only moves through the ledger."""
    list_display = ("user", "balance", "updated_at")
    search_fields = ("user__username",)
    readonly_fields = ("balance", "created_at", "updated_at")
    inlines = [WalletTransactionInline]


@admin.register(WalletTransaction)
class WalletTransactionAdmin(admin.ModelAdmin):
    list_display = ("wallet", "kind", "amount", "payment_method", "created_at")
    list_filter = ("kind", "payment_method")
    search_fields = ("wallet__user__username", "external_transaction_id")
