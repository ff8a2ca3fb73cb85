"""
Receipt rendering for customer transactions.

Renders a TransactionReceiptData to:
- a PDF document (reportlab) with a QR code of the transaction id
- a plain-text version for sharing in chat apps or email
"""

import io
import logging
from typing import List, Optional

from django.utils.html import escape

import qrcode
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch, mm
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from reportlab.platypus.flowables import HRFlowable

from apps.core.formatting_utils import format_currency, format_date, format_grams, format_plain
from apps.pricing import fees

from . import receipts
from .receipts import TransactionReceiptData

logger = logging.getLogger(__name__)

TRANSACTION_TITLES = {
    receipts.DIGITAL_PURCHASE: "Digital Gold Purchase",
    receipts.PHYSICAL_PURCHASE: "Physical Gold Purchase",
    receipts.OWNERSHIP_TRANSFER: "Ownership Transfer",
    receipts.LOCATION_CHANGE: "Location Change",
    receipts.DIGITAL_TRANSFER: "Digital Gold Transfer",
    receipts.RECEIVE_PHYSICAL: "Convert to Physical",
    receipts.WALLET_DEPOSIT: "Wallet Deposit",
    receipts.WALLET_WITHDRAWAL: "Wallet Withdrawal",
    receipts.WALLET_TRANSFER: "Wallet Transfer",
}

RULE = "━" * 22


def transaction_title(data: TransactionReceiptData) -> str:
    return TRANSACTION_TITLES.get(data.type, "Transaction")


def receipt_filename(data: TransactionReceiptData) -> str:
    return f"receipt-{data.transaction_id}.pdf"


def storage_warning() -> str:
    return (
        f"Please collect within {fees.pickup_window_days()} days to avoid storage fees "
        f"({format_plain(fees.storage_fee_per_day())} LYD/day)"
    )


class ReceiptGenerator:
    """
    PDF renderer for transaction receipts.

    The layout follows the receipt sections in order: header, transaction
    details, parties, product or metal, location, payment summary, payment
    method, pickup, notes, footer with QR code.
    """

    MARGIN = 20 * mm

    def __init__(self, data: TransactionReceiptData):
        self.data = data
        self.currency = data.amounts.currency
        self.styles = getSampleStyleSheet()

        self._create_custom_styles()

    def _create_custom_styles(self):
        """Create custom paragraph styles for receipts."""
        self.header_style = ParagraphStyle(
            "ReceiptHeader",
            parent=self.styles["Heading1"],
            fontSize=22,
            spaceAfter=6,
            alignment=1,
            textColor=colors.black,
            fontName="Helvetica-Bold",
        )

        self.platform_style = ParagraphStyle(
            "Platform",
            parent=self.styles["Normal"],
            fontSize=10,
            alignment=1,
            textColor=colors.black,
        )

        self.title_style = ParagraphStyle(
            "TransactionTitle",
            parent=self.styles["Heading2"],
            fontSize=16,
            spaceAfter=4,
            fontName="Helvetica-Bold",
        )

        self.status_style = ParagraphStyle(
            "Status",
            parent=self.styles["Normal"],
            fontSize=10,
            textColor=colors.grey,
            spaceAfter=10,
        )

        self.section_style = ParagraphStyle(
            "Section",
            parent=self.styles["Heading3"],
            fontSize=12,
            spaceBefore=8,
            spaceAfter=4,
            fontName="Helvetica-Bold",
        )

        self.body_style = ParagraphStyle(
            "ReceiptBody",
            parent=self.styles["Normal"],
            fontSize=9,
            spaceAfter=4,
        )

        self.warning_style = ParagraphStyle(
            "Warning",
            parent=self.styles["Normal"],
            fontSize=9,
            textColor=colors.HexColor("#C86400"),
            spaceBefore=4,
        )

        self.total_style = ParagraphStyle(
            "ReceiptTotal",
            parent=self.styles["Normal"],
            fontSize=14,
            spaceBefore=6,
            spaceAfter=6,
            fontName="Helvetica-Bold",
        )

        self.footer_style = ParagraphStyle(
            "Footer",
            parent=self.styles["Normal"],
            fontSize=9,
            alignment=1,
            textColor=colors.grey,
            fontName="Helvetica-Oblique",
        )

    def generate_pdf_receipt(self) -> bytes:
        """
        Generate the PDF receipt.

        Returns:
            PDF bytes
        """
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=self.MARGIN,
            leftMargin=self.MARGIN,
            topMargin=self.MARGIN,
            bottomMargin=self.MARGIN,
            title=f"Receipt {self.data.transaction_id}",
        )
        doc.build(self._build_content())
        pdf_bytes = buffer.getvalue()
        buffer.close()

        logger.info(f"Rendered PDF receipt {self.data.transaction_id} ({len(pdf_bytes)} bytes)")
        return pdf_bytes

    def _build_content(self):
        story = []
        story.extend(self._build_header())
        story.extend(self._build_details())
        story.extend(self._build_party("Customer Information", self.data.user))
        story.extend(self._build_party("Recipient Information", self.data.recipient))
        story.extend(self._build_product())
        story.extend(self._build_digital_grams())
        story.extend(self._build_location())
        story.extend(self._build_payment_summary())
        story.extend(self._build_payment_method())
        story.extend(self._build_pickup())
        story.extend(self._build_notes())
        story.extend(self._build_footer())
        return story

    def _key_values(self, rows: List[tuple]):
        """Two-column table of label/value pairs."""
        data = [
            [
                Paragraph(escape(key), self.body_style),
                Paragraph(f"<b>{escape(value)}</b>", self.body_style),
            ]
            for key, value in rows
        ]
        table = Table(data, colWidths=[45 * mm, 120 * mm])
        table.setStyle(
            TableStyle(
                [
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ("LEFTPADDING", (0, 0), (-1, -1), 0),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 1),
                    ("TOPPADDING", (0, 0), (-1, -1), 1),
                ]
            )
        )
        return table

    def _section(self, title, rows):
        if not rows:
            return []
        return [Paragraph(escape(title), self.section_style), self._key_values(rows)]

    def _money(self, value) -> str:
        return format_currency(value, self.currency)

    def _build_header(self):
        return [
            Paragraph("TRANSACTION RECEIPT", self.header_style),
            Paragraph(escape(fees.platform_name()), self.platform_style),
            Spacer(1, 8),
            HRFlowable(width="100%", thickness=1, color=colors.lightgrey),
            Spacer(1, 8),
            Paragraph(escape(transaction_title(self.data)), self.title_style),
            Paragraph(f"Status: {self.data.status.upper()}", self.status_style),
        ]

    def _build_details(self):
        rows = [
            ("Transaction ID:", self.data.transaction_id),
            ("Date & Time:", format_date(self.data.timestamp)),
        ]
        if self.data.tx_hash:
            rows.append(("TX Hash:", self.data.tx_hash))
        return self._section("Transaction Details", rows)

    def _build_party(self, title, party):
        if party is None:
            return []
        rows = [("Name:", party.name)]
        if party.email:
            rows.append(("Email:", party.email))
        if party.phone:
            rows.append(("Phone:", party.phone))
        return self._section(title, rows)

    def _build_product(self):
        product = self.data.product
        if product is None:
            return []
        rows = [
            ("Product:", product.name),
            ("Type:", product.type.upper()),
            ("Weight:", format_grams(product.weight)),
        ]
        if product.carat:
            rows.append(("Karat:", f"{product.carat}K"))
        if product.serial_number:
            rows.append(("Serial Number:", product.serial_number))
        return self._section("Product Details", rows)

    def _build_digital_grams(self):
        digital = self.data.digital_grams
        if digital is None:
            return []
        rows = [("Amount:", format_grams(digital.grams))]
        if digital.price_per_gram and digital.price_per_gram > 0:
            rows.append(("Price per Gram:", self._money(digital.price_per_gram)))
        return self._section(f"Digital {digital.metal.upper()}", rows)

    def _build_location(self):
        location = self.data.location
        if location is None:
            return []
        rows = []
        if location.from_:
            rows.append(("From:", location.from_))
        if location.to:
            rows.append(("To:", location.to))
        return self._section("Location Change", rows)

    def _build_payment_summary(self):
        amounts = self.data.amounts
        rows = []
        if amounts.subtotal is not None:
            rows.append(("Subtotal:", self._money(amounts.subtotal)))
        # zero-valued charges are left out
        optional = [
            (f"Commission ({receipts.commission_percent()}%):", amounts.commission),
            ("Service Fees:", amounts.fees),
            ("Fabrication Fee:", amounts.fabrication_fee),
            ("Storage Fee:", amounts.storage_fee),
        ]
        for label, value in optional:
            if value is not None and value > 0:
                rows.append((label, self._money(value)))
        if amounts.discount:
            rows.append(("Coupon Discount:", f"-{self._money(amounts.discount)}"))

        elements = [
            Spacer(1, 6),
            HRFlowable(width="100%", thickness=2, color=colors.whitesmoke),
            Paragraph("Payment Summary", self.section_style),
        ]
        if rows:
            elements.append(self._key_values(rows))
        elements.append(HRFlowable(width="100%", thickness=1, color=colors.darkgrey))
        elements.append(
            Paragraph(f"TOTAL AMOUNT: {escape(self._money(amounts.total))}", self.total_style)
        )
        return elements

    def _build_payment_method(self):
        payment = self.data.payment
        if payment is None:
            return []
        rows = [("Method:", payment.method.replace("_", " ").upper())]
        if payment.wallet_balance_before is not None:
            rows.append(("Balance Before:", self._money(payment.wallet_balance_before)))
            rows.append(("Balance After:", self._money(payment.wallet_balance_after or 0)))
        return self._section("Payment Method", rows)

    def _build_pickup(self):
        pickup = self.data.pickup
        if pickup is None:
            return []
        rows = [("Store:", pickup.store), ("Deadline:", format_date(pickup.deadline))]
        if pickup.address:
            rows.append(("Address:", pickup.address))
        elements = self._section("Pickup Information", rows)
        elements.append(Paragraph(escape(storage_warning()), self.warning_style))
        return elements

    def _build_notes(self):
        if not self.data.notes:
            return []
        return [
            Paragraph("Notes", self.section_style),
            Paragraph(escape(self.data.notes), self.body_style),
        ]

    def _build_footer(self):
        elements = [
            Spacer(1, 16),
            HRFlowable(width="100%", thickness=1, color=colors.lightgrey),
            Spacer(1, 6),
            Paragraph("This receipt is your proof of transaction", self.footer_style),
            Paragraph("Keep it for your records", self.footer_style),
            Paragraph(f"<b>{escape(fees.platform_name())}</b>", self.footer_style),
        ]
        qr_code = self._generate_qr_code()
        if qr_code:
            elements.append(Spacer(1, 8))
            elements.append(qr_code)
        return elements

    def _generate_qr_code(self) -> Optional[Image]:
        """QR code carrying the transaction id."""
        qr = qrcode.QRCode(
            version=1,
            error_correction=qrcode.constants.ERROR_CORRECT_L,
            box_size=3,
            border=2,
        )
        qr.add_data(self.data.transaction_id)
        qr.make(fit=True)

        qr_img = qr.make_image(fill_color="black", back_color="white")
        buffer = io.BytesIO()
        qr_img.save(buffer, format="PNG")
        buffer.seek(0)

        img = Image(buffer, width=1 * inch, height=1 * inch)
        img.hAlign = "CENTER"
        return img


def generate_share_text(data: TransactionReceiptData) -> str:
    """Plain-text receipt for sharing."""
    currency = data.amounts.currency
    platform = fees.platform_name()
    lines = [
        RULE,
        "📄 TRANSACTION RECEIPT",
        platform,
        RULE,
        "",
        transaction_title(data),
        f"Status: {data.status.upper()}",
        "",
        f"Transaction ID: {data.transaction_id}",
        f"Date: {format_date(data.timestamp)}",
    ]
    if data.tx_hash:
        lines.append(f"TX Hash: {data.tx_hash}")
    lines.append("")

    if data.user:
        lines.append(f"Customer: {data.user.name}")
        if data.user.email:
            lines.append(f"Email: {data.user.email}")
        lines.append("")

    if data.recipient:
        lines.append(f"Recipient: {data.recipient.name}")
        lines.append("")

    if data.product:
        lines.append(f"Product: {data.product.name}")
        lines.append(f"Weight: {format_grams(data.product.weight)}")
        if data.product.serial_number:
            lines.append(f"Serial: {data.product.serial_number}")
        lines.append("")

    if data.digital_grams:
        metal = data.digital_grams.metal.upper()
        lines.append(f"Digital {metal}: {format_grams(data.digital_grams.grams)}")
        lines.append("")

    lines.extend([RULE, "💰 PAYMENT SUMMARY", RULE])
    if data.amounts.subtotal is not None:
        lines.append(f"Subtotal: {format_currency(data.amounts.subtotal, currency)}")
    if data.amounts.commission is not None and data.amounts.commission > 0:
        lines.append(f"Commission: {format_currency(data.amounts.commission, currency)}")
    if data.amounts.fees is not None and data.amounts.fees > 0:
        lines.append(f"Fees: {format_currency(data.amounts.fees, currency)}")
    if data.amounts.discount:
        lines.append(f"Discount: -{format_currency(data.amounts.discount, currency)}")
    lines.append(f"TOTAL: {format_currency(data.amounts.total, currency)}")
    lines.extend([RULE, ""])

    if data.pickup:
        lines.append(f"📍 Pickup: {data.pickup.store}")
        lines.append(f"Deadline: {format_date(data.pickup.deadline)}")
        lines.append("")

    lines.append("This receipt is your proof of transaction.")
    lines.append(platform)
    return "\n".join(lines) + "\n"
