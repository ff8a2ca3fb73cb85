"""
Tests for receipt data, PDF rendering and share text.
"""

from decimal import Decimal

import pytest

from apps.sales import receipts
from apps.sales.receipt_service import ReceiptGenerator, generate_share_text, receipt_filename
from apps.sales.receipts import ReceiptAmounts, TransactionReceiptData


@pytest.fixture
def deposit_receipt():
    return receipts.generate_wallet_deposit_receipt(
        transaction_id="DEP-1760884200000-42",
        user_name="Amira Salem",
        user_email="amira@example.com",
        amount=Decimal("1500.00"),
        currency="LYD",
        wallet_balance_before=Decimal("0.00"),
        wallet_balance_after=Decimal("1500.00"),
        deposit_method="bank_transfer",
    )


@pytest.fixture
def location_receipt():
    return receipts.generate_location_change_receipt(
        transaction_id="LOC-1760884200000-ABCDEFGHI",
        user_name="Amira Salem",
        product_name="10g Gold Bar",
        product_type="gold",
        weight=Decimal("10.000"),
        old_serial_number="SN-1",
        new_serial_number="GB-000123",
        from_store="Tripoli Gold Center",
        to_store="Benghazi Gold",
        location_change_fee=Decimal("50.00"),
        currency="LYD",
        wallet_balance_before=Decimal("100.00"),
        wallet_balance_after=Decimal("50.00"),
    )


class TestReceiptData:
    def test_unknown_type_is_refused(self):
        with pytest.raises(ValueError):
            TransactionReceiptData(
                transaction_id="X", type="refund", amounts=ReceiptAmounts(total=Decimal("1"))
            )

    def test_dict_uses_camel_case(self, deposit_receipt):
        data = deposit_receipt.to_dict()
        assert data["transactionId"] == "DEP-1760884200000-42"
        assert data["payment"]["walletBalanceAfter"] == Decimal("1500.00")
        assert "pickup" not in data

    def test_location_keeps_from_key(self, location_receipt):
        data = location_receipt.to_dict()
        assert data["location"]["from"] == "Tripoli Gold Center"
        assert data["location"]["to"] == "Benghazi Gold"

    def test_from_dict_accepts_json_numbers(self, location_receipt):
        data = location_receipt.to_dict()
        data["amounts"]["total"] = 50.0
        rebuilt = TransactionReceiptData.from_dict(data)
        assert rebuilt.amounts.total == Decimal("50.0")
        assert rebuilt.location.from_ == "Tripoli Gold Center"
        assert rebuilt.timestamp == location_receipt.timestamp

    def test_from_dict_missing_amounts(self):
        with pytest.raises(ValueError):
            TransactionReceiptData.from_dict({"transactionId": "X", "type": "wallet_deposit"})

    def test_flagged_ownership_receipt_is_pending(self):
        receipt = receipts.generate_ownership_transfer_receipt(
            transaction_id="OTR-1",
            user_name="Amira Salem",
            recipient_name="Omar Fathi",
            product=receipts.ReceiptProduct(name="10g Gold Bar", type="gold", weight=Decimal("10")),
            risk_score=0.93,
            transfer_fee=Decimal("10.00"),
        )
        assert receipt.status == receipts.PENDING
        assert receipt.amounts.total == Decimal("0.00")
        assert receipt.payment is None


class TestRendering:
    def test_filename(self, deposit_receipt):
        assert receipt_filename(deposit_receipt) == "receipt-DEP-1760884200000-42.pdf"

    def test_share_text(self, deposit_receipt):
        text = generate_share_text(deposit_receipt)
        assert "📄 TRANSACTION RECEIPT" in text
        assert "Wallet Deposit" in text
        assert "Status: SUCCESS" in text
        assert "TOTAL: LYD 1,500.00" in text
        assert text.endswith("Gold Trading Platform\n")

    def test_share_text_with_pickup(self):
        receipt = receipts.generate_physical_purchase_receipt(
            transaction_id="INV-1",
            user_name="Amira Salem",
            product=receipts.ReceiptProduct(
                name="10g Gold Bar", type="gold", weight=Decimal("10"), serial_number="SN-9"
            ),
            base_price=Decimal("5000.00"),
            commission=Decimal("75.00"),
            total_amount=Decimal("5075.00"),
            currency="LYD",
            wallet_balance_before=None,
            wallet_balance_after=None,
            payment_method="cash",
            pickup_store="Tripoli Gold Center",
            pickup_deadline="2026-10-22T10:00:00+02:00",
        )
        text = generate_share_text(receipt)
        assert "Serial: SN-9" in text
        assert "Commission: LYD 75.00" in text
        assert "📍 Pickup: Tripoli Gold Center" in text

    def test_pdf(self, location_receipt):
        pdf = ReceiptGenerator(location_receipt).generate_pdf_receipt()
        assert pdf.startswith(b"%PDF")


@pytest.mark.django_db
class TestReceiptAPI:
    def test_pdf_download(self, client_for, customer, deposit_receipt):
        response = client_for(customer).post(
            "/api/receipts/pdf/", deposit_receipt.to_dict(), format="json"
        )
        assert response.status_code == 200
        assert response["Content-Type"] == "application/pdf"
        assert "receipt-DEP-1760884200000-42.pdf" in response["Content-Disposition"]
        assert response.content.startswith(b"%PDF")

    def test_share_text_endpoint(self, client_for, customer, deposit_receipt):
        response = client_for(customer).post(
            "/api/receipts/share-text/", deposit_receipt.to_dict(), format="json"
        )
        assert response.status_code == 200
        assert "Wallet Deposit" in response.data["text"]

    def test_bad_receipt_is_400(self, client_for, customer):
        response = client_for(customer).post(
            "/api/receipts/share-text/", {"type": "wallet_deposit"}, format="json"
        )
        assert response.status_code == 400
