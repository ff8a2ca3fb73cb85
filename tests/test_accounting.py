"""
Tests for store accounts, bank accounts and fund transfers between stores.
"""

from decimal import Decimal

import pytest

from apps.accounting.models import (
    StoreBankAccount,
    StoreFinancialTransaction,
    StoreFundTransferRequest,
)
from apps.accounting.services import StoreFinanceService
from apps.core.exceptions import InsufficientBalanceError, InvalidAmountError, InvalidStateError


@pytest.fixture
def bank_account(store, owner):
    return StoreFinanceService.add_bank_account(
        store,
        owner,
        bank_name="Jumhouria Bank",
        account_number="001234567890",
        account_holder_name="Tripoli Gold Center",
    )


@pytest.fixture
def funded_store(store, owner):
    StoreFinanceService.deposit_funds(store, "LYD", Decimal("10000"), "Opening capital", owner)
    return store


@pytest.mark.django_db
class TestStoreAccounts:
    def test_deposit_and_withdraw(self, store, owner):
        StoreFinanceService.deposit_funds(store, "LYD", Decimal("500"), user=owner)
        entry = StoreFinanceService.withdraw_funds(store, "LYD", Decimal("120.50"), user=owner)

        assert entry.balance_before == Decimal("500.00")
        assert entry.balance_after == Decimal("379.50")
        assert StoreFinanceService.get_balance(store, "LYD") == Decimal("379.50")

    def test_currencies_are_separate(self, store, owner):
        StoreFinanceService.deposit_funds(store, "USD", Decimal("100"), user=owner)
        assert StoreFinanceService.get_balance(store, "LYD") == Decimal("0.00")
        with pytest.raises(InsufficientBalanceError):
            StoreFinanceService.withdraw_funds(store, "LYD", Decimal("1"), user=owner)

    def test_zero_amount(self, store):
        with pytest.raises(InvalidAmountError):
            StoreFinanceService.deposit_funds(store, "LYD", Decimal("0"))

    def test_unknown_currency(self, store):
        with pytest.raises(InvalidStateError):
            StoreFinanceService.deposit_funds(store, "EUR", Decimal("10"))

    def test_transaction_filters(self, funded_store, owner):
        StoreFinanceService.withdraw_funds(funded_store, "LYD", Decimal("10"), user=owner)
        rows = StoreFinanceService.get_financial_transactions(
            funded_store, transaction_type=StoreFinancialTransaction.WITHDRAWAL
        )
        assert [row.amount for row in rows] == [Decimal("10.00")]


@pytest.mark.django_db
class TestBankAccounts:
    def test_masked_number(self, bank_account):
        assert bank_account.masked_account_number == "****7890"
        assert bank_account.is_active
        assert not bank_account.is_verified

    def test_bank_deposit_and_withdrawal(self, funded_store, bank_account, owner):
        StoreFinanceService.record_bank_transaction(
            funded_store,
            bank_account,
            StoreFinancialTransaction.BANK_WITHDRAWAL,
            "2500",
            user=owner,
        )
        entry = StoreFinanceService.record_bank_transaction(
            funded_store, bank_account, StoreFinancialTransaction.BANK_DEPOSIT, "500", user=owner
        )
        assert entry.metadata == {"bank_name": "Jumhouria Bank", "account_number": "****7890"}
        assert StoreFinanceService.get_balance(funded_store, "LYD") == Decimal("8000.00")

    def test_inactive_account_is_refused(self, funded_store, bank_account):
        StoreFinanceService.toggle_active(bank_account, False)
        with pytest.raises(InvalidStateError):
            StoreFinanceService.record_bank_transaction(
                funded_store, bank_account, StoreFinancialTransaction.BANK_DEPOSIT, "10"
            )

    def test_plain_deposit_type_is_refused(self, funded_store, bank_account):
        with pytest.raises(InvalidStateError):
            StoreFinanceService.record_bank_transaction(
                funded_store, bank_account, StoreFinancialTransaction.DEPOSIT, "10"
            )


@pytest.mark.django_db
class TestFundTransfers:
    def test_request_checks_balance(self, store, other_store, owner):
        with pytest.raises(InsufficientBalanceError):
            StoreFinanceService.request_fund_transfer(
                store, other_store, "LYD", Decimal("1"), "Float", owner
            )

    def test_approval_moves_money(self, funded_store, other_store, owner, other_owner):
        request = StoreFinanceService.request_fund_transfer(
            funded_store, other_store, "LYD", Decimal("2500"), "Weekend float", owner
        )
        assert request.status == StoreFundTransferRequest.PENDING
        assert StoreFinanceService.get_balance(funded_store, "LYD") == Decimal("10000.00")

        done = StoreFinanceService.approve_fund_transfer(request, other_owner, "Thanks")

        assert done.status == StoreFundTransferRequest.COMPLETED
        assert done.completed_at is not None
        assert StoreFinanceService.get_balance(funded_store, "LYD") == Decimal("7500.00")
        assert StoreFinanceService.get_balance(other_store, "LYD") == Decimal("2500.00")
        assert StoreFinancialTransaction.objects.filter(
            reference_type="fund_transfer", reference_id=str(request.pk)
        ).count() == 2

    def test_approval_fails_when_funds_left(self, funded_store, other_store, owner):
        request = StoreFinanceService.request_fund_transfer(
            funded_store, other_store, "LYD", Decimal("6000"), "Float", owner
        )
        StoreFinanceService.withdraw_funds(funded_store, "LYD", Decimal("5000"), user=owner)

        with pytest.raises(InsufficientBalanceError):
            StoreFinanceService.approve_fund_transfer(request, owner)

        fresh = StoreFundTransferRequest.objects.get(pk=request.pk)
        assert fresh.status == StoreFundTransferRequest.PENDING
        assert StoreFinanceService.get_balance(other_store, "LYD") == Decimal("0.00")

    def test_rejected_cannot_be_approved(self, funded_store, other_store, owner):
        request = StoreFinanceService.request_fund_transfer(
            funded_store, other_store, "LYD", Decimal("100"), "Float", owner
        )
        StoreFinanceService.reject_fund_transfer(request, owner, "No")
        with pytest.raises(InvalidStateError):
            StoreFinanceService.approve_fund_transfer(request, owner)

    def test_cancel(self, funded_store, other_store, owner):
        request = StoreFinanceService.request_fund_transfer(
            funded_store, other_store, "LYD", Decimal("100"), "Float", owner
        )
        cancelled = StoreFinanceService.cancel_fund_transfer(request, owner, "Typo")
        assert cancelled.status == StoreFundTransferRequest.CANCELLED
        assert "Cancelled by owner: Typo" in cancelled.notes


@pytest.mark.django_db
class TestAccountingAPI:
    def test_clerk_can_view_accounts(self, client_for, clerk, funded_store):
        response = client_for(clerk).get(f"/api/stores/{funded_store.pk}/finance/accounts/")
        assert response.status_code == 200
        assert Decimal(str(response.data[0]["balance"])) == Decimal("10000.00")

    def test_clerk_cannot_withdraw(self, client_for, clerk, funded_store):
        response = client_for(clerk).post(
            f"/api/stores/{funded_store.pk}/finance/withdraw/", {"amount": "10"}, format="json"
        )
        assert response.status_code == 403

    def test_manager_deposits(self, client_for, manager, store):
        response = client_for(manager).post(
            f"/api/stores/{store.pk}/finance/deposit/",
            {"amount": "250.00", "description": "Float"},
            format="json",
        )
        assert response.status_code == 201
        assert response.data["transaction_type"] == StoreFinancialTransaction.DEPOSIT
        assert response.data["currency"] == "LYD"

    def test_overdraw_is_400(self, client_for, manager, store):
        response = client_for(manager).post(
            f"/api/stores/{store.pk}/finance/withdraw/", {"amount": "1"}, format="json"
        )
        assert response.status_code == 400
        assert response.data["code"] == "insufficient_balance"

    def test_add_and_verify_bank_account(self, client_for, manager, store):
        client = client_for(manager)
        response = client.post(
            f"/api/stores/{store.pk}/bank-accounts/",
            {
                "bank_name": "Wahda Bank",
                "account_number": "99887766",
                "account_holder_name": "Tripoli Gold Center",
                "is_verified": True,
            },
            format="json",
        )
        assert response.status_code == 201
        assert response.data["masked_account_number"] == "****7766"
        assert response.data["is_verified"] is False

        account_id = response.data["id"]
        response = client.post(f"/api/stores/{store.pk}/bank-accounts/{account_id}/verify/")
        assert response.data["is_verified"] is True

    def test_other_store_bank_account_is_404(
        self, client_for, other_owner, other_store, bank_account
    ):
        response = client_for(other_owner).patch(
            f"/api/stores/{other_store.pk}/bank-accounts/{bank_account.pk}/",
            {"branch": "Downtown"},
            format="json",
        )
        assert response.status_code == 404

    def test_fund_transfer_flow(self, client_for, manager, other_owner, funded_store, other_store):
        response = client_for(manager).post(
            f"/api/stores/{funded_store.pk}/fund-transfers/",
            {"to_store_id": str(other_store.pk), "amount": "1000", "reason": "Float"},
            format="json",
        )
        assert response.status_code == 201
        transfer_id = response.data["id"]

        response = client_for(other_owner).post(
            f"/api/stores/{other_store.pk}/fund-transfers/{transfer_id}/approve/",
            {"notes": "Received"},
            format="json",
        )
        assert response.status_code == 200
        assert response.data["status"] == StoreFundTransferRequest.COMPLETED
        assert StoreFinanceService.get_balance(other_store, "LYD") == Decimal("1000.00")

    def test_requesting_store_cannot_approve_its_own_transfer(
        self, client_for, owner, funded_store, other_store
    ):
        client = client_for(owner)
        response = client.post(
            f"/api/stores/{funded_store.pk}/fund-transfers/",
            {"to_store_id": str(other_store.pk), "amount": "900", "reason": "Float"},
            format="json",
        )
        transfer_id = response.data["id"]

        for action in ("approve", "reject"):
            response = client.post(
                f"/api/stores/{funded_store.pk}/fund-transfers/{transfer_id}/{action}/",
                {},
                format="json",
            )
            assert response.status_code == 404

        transfer = StoreFundTransferRequest.objects.get(pk=transfer_id)
        assert transfer.status == StoreFundTransferRequest.PENDING
        assert StoreFinanceService.get_balance(other_store, "LYD") == Decimal("0.00")

    def test_only_requesting_store_cancels(
        self, client_for, owner, other_owner, funded_store, other_store
    ):
        response = client_for(owner).post(
            f"/api/stores/{funded_store.pk}/fund-transfers/",
            {"to_store_id": str(other_store.pk), "amount": "500", "reason": "Float"},
            format="json",
        )
        transfer_id = response.data["id"]

        response = client_for(other_owner).post(
            f"/api/stores/{other_store.pk}/fund-transfers/{transfer_id}/cancel/", {}, format="json"
        )
        assert response.status_code == 404

        response = client_for(owner).post(
            f"/api/stores/{funded_store.pk}/fund-transfers/{transfer_id}/cancel/", {}, format="json"
        )
        assert response.status_code == 200
        assert response.data["status"] == StoreFundTransferRequest.CANCELLED

    def test_bank_accounts_are_deleted(self, client_for, owner, store, bank_account):
        url = f"/api/stores/{store.pk}/bank-accounts/{bank_account.pk}/"
        response = client_for(owner).delete(url)
        assert response.status_code == 204
        assert not StoreBankAccount.objects.exists()
