from django.urls import path
from .views import WalletView, WalletCreditView, WalletDebitView, WalletDiscountView

urlpatterns = [
    path("", WalletView.as_view(), name="wallet"),
    path("credit/", WalletCreditView.as_view(), name="wallet-credit"),
    path("debit/", WalletDebitView.as_view(), name="wallet-debit"),
    path("discount/", WalletDiscountView.as_view(), name="wallet-discount"),
]
