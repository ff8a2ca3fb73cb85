"""
Celery tasks for live metal prices.

The feed at ``LIVE_PRICE_API_URL`` is expected to return JSON of the form::

    {"gold": {"price": 512.40, "change_percent": 0.35},
     "silver": {"price": 6.10, "change_percent": -0.12}}

with prices in LYD per gram.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Dict

from django.conf import settings

import requests
from celery import shared_task

from apps.pricing.models import LivePrice
from apps.pricing.services import update_live_price

logger = logging.getLogger(__name__)


class LivePriceAPIError(Exception):
    """Exception raised when the live price feed cannot be read."""

    pass


class LivePriceService:
    """
    Service class for fetching live metal prices from the configured feed.
    """

    def __init__(self, url=None, api_key=None, timeout=10):
        self.url = url if url is not None else getattr(settings, "LIVE_PRICE_API_URL", "")
        if api_key is None:
            api_key = getattr(settings, "LIVE_PRICE_API_KEY", "")
        self.api_key = api_key
        self.timeout = timeout

    def fetch(self) -> Dict[str, Dict[str, Decimal]]:
        """
        Fetch prices for every known metal.

        Returns:
            Dict mapping metal type to {"price", "change_percent"}

        Raises:
            LivePriceAPIError: If the feed is not configured or the call fails
        """
        if not self.url:
            raise LivePriceAPIError("LIVE_PRICE_API_URL not configured in settings")

        headers = {"x-access-token": self.api_key} if self.api_key else {}
        try:
            response = requests.get(self.url, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            logger.error(f"Live price request failed: {e}")
            raise LivePriceAPIError(f"Failed to fetch live prices: {e}")
        except ValueError as e:
            logger.error(f"Live price response parsing failed: {e}")
            raise LivePriceAPIError(f"Invalid response from live price feed: {e}")

        prices = {}
        for metal, _label in LivePrice.METAL_CHOICES:
            entry = data.get(metal)
            if not entry:
                continue
            try:
                price = Decimal(str(entry["price"]))
                change = Decimal(str(entry.get("change_percent", 0)))
            except (KeyError, TypeError, InvalidOperation) as e:
                raise LivePriceAPIError(f"Invalid {metal} entry in live price feed: {e}")
            if price <= 0:
                raise LivePriceAPIError(f"Invalid {metal} price received: {price}")
            prices[metal] = {"price": price, "change_percent": change}
        return prices


@shared_task(name="apps.pricing.tasks.refresh_live_prices")
def refresh_live_prices():
    """
    Update LivePrice rows from the feed.

    Returns:
        Summary string, or a note that the feed is not configured
    """
    service = LivePriceService()
    if not service.url:
        return "Live price feed not configured"

    try:
        prices = service.fetch()
    except LivePriceAPIError as e:
        logger.warning(f"Live price refresh skipped: {e}")
        return f"Live price refresh failed: {e}"

    for metal, values in prices.items():
        update_live_price(metal, values["price"], values["change_percent"])
        logger.info(f"Live {metal} price updated to {values['price']} LYD/g")

    return f"Updated {len(prices)} live prices"
