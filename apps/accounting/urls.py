"""
URL patterns for the accounting module.
"""

from django.urls import path

from . import views

app_name = "accounting"

urlpatterns = [
    # Accounts and ledger
    path(
        "stores/<uuid:store_id>/finance/accounts/",
        views.FinancialAccountListView.as_view(),
        name="accounts",
    ),
    path(
        "stores/<uuid:store_id>/finance/transactions/",
        views.FinancialTransactionListView.as_view(),
        name="transactions",
    ),
    path("stores/<uuid:store_id>/finance/deposit/", views.deposit_funds, name="deposit"),
    path("stores/<uuid:store_id>/finance/withdraw/", views.withdraw_funds, name="withdraw"),
    # Bank accounts
    path(
        "stores/<uuid:store_id>/bank-accounts/",
        views.BankAccountListCreateView.as_view(),
        name="bank_accounts",
    ),
    path(
        "stores/<uuid:store_id>/bank-accounts/<uuid:account_id>/",
        views.BankAccountDetailView.as_view(),
        name="bank_account_detail",
    ),
    path(
        "stores/<uuid:store_id>/bank-accounts/<uuid:account_id>/verify/",
        views.verify_bank_account,
        name="bank_account_verify",
    ),
    path(
        "stores/<uuid:store_id>/bank-accounts/<uuid:account_id>/transactions/",
        views.bank_transaction,
        name="bank_transaction",
    ),
    # Fund transfers
    path(
        "stores/<uuid:store_id>/fund-transfers/",
        views.FundTransferListCreateView.as_view(),
        name="fund_transfers",
    ),
    path(
        "stores/<uuid:store_id>/fund-transfers/<uuid:transfer_id>/approve/",
        views.approve_fund_transfer,
        name="fund_transfer_approve",
    ),
    path(
        "stores/<uuid:store_id>/fund-transfers/<uuid:transfer_id>/reject/",
        views.reject_fund_transfer,
        name="fund_transfer_reject",
    ),
    path(
        "stores/<uuid:store_id>/fund-transfers/<uuid:transfer_id>/cancel/",
        views.cancel_fund_transfer,
        name="fund_transfer_cancel",
    ),
]
