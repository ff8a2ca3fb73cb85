"""
Pricing API: live metal prices, platform fees and purchase quotes.
"""

from rest_framework import generics, permissions
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from apps.core.exceptions import NotFoundError
from apps.inventory.models import Product
from apps.pricing import fees
from apps.pricing.services import get_live_price, get_live_prices, quote_purchase

from .serializers import LivePriceSerializer, PurchaseQuoteSerializer, QuoteRequestSerializer


class LivePriceListView(generics.ListAPIView):
    """Current price per gram of every metal."""

    serializer_class = LivePriceSerializer
    permission_classes = [permissions.AllowAny]
    pagination_class = None

    def get_queryset(self):
        return get_live_prices()


@api_view(["GET"])
@permission_classes([permissions.AllowAny])
def live_price_detail(request, metal_type):
    price = get_live_price(metal_type)
    if price is None:
        raise NotFoundError(f"No live price for {metal_type}")
    return Response(LivePriceSerializer(price).data)


@api_view(["GET"])
@permission_classes([permissions.AllowAny])
def platform_fees(request):
    """Fees and commission shown on checkout screens."""
    return Response(
        {
            "platform_name": fees.platform_name(),
            "transfer_fee_lyd": str(fees.transfer_fee()),
            "fabrication_fee_lyd": str(fees.fabrication_fee()),
            "location_change_fee_lyd": str(fees.location_change_fee()),
            "storage_fee_per_day_lyd": str(fees.storage_fee_per_day()),
            "pickup_window_days": fees.pickup_window_days(),
            "physical_commission_rate": str(fees.physical_commission_rate()),
        }
    )


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated])
def purchase_quote(request):
    """
    Price a purchase before checkout.

    Body:
    - product_id: product to buy
    - is_digital: buy digital grams instead of the physical item
    - grams: grams to buy (digital only)
    """
    serializer = QuoteRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    product = Product.objects.filter(pk=data["product_id"], is_active=True).first()
    if product is None:
        raise NotFoundError("Product not found")

    quote = quote_purchase(product, data["is_digital"], data.get("grams"))
    return Response(PurchaseQuoteSerializer(quote).data)
