"""
URL patterns for wallets app.
"""

from django.urls import path

from apps.wallets import views

app_name = "wallets"

urlpatterns = [
    path("wallets/", views.WalletListView.as_view(), name="wallet_list"),
    path("wallets/summary/", views.wallet_summary, name="summary"),
    path("wallets/digital/", views.DigitalBalanceListView.as_view(), name="digital_balances"),
    path("wallets/transactions/", views.transaction_list, name="transactions"),
    path("wallets/deposit/", views.deposit, name="deposit"),
    path("wallets/withdraw/", views.withdraw, name="withdraw"),
    path("transfers/digital/", views.transfer_digital, name="transfer_digital"),
    path("transfers/balance/", views.transfer_balance, name="transfer_balance"),
    path("transfers/ownership/", views.transfer_ownership, name="transfer_ownership"),
]
