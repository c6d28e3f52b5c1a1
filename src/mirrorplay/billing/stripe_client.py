"""Direct Stripe lookups used when the synced billing tables cannot answer.

The stripe SDK is synchronous; calls run in a worker thread so they do not
block the event loop.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import stripe

logger = logging.getLogger(__name__)

ACTIVE_SUBSCRIPTION_STATUSES = frozenset({"active", "trialing"})


class StripeBillingClient:
    """Reads subscription and product metadata for a Stripe customer."""

    def __init__(self, api_key: str) -> None:
        self.api_key = api_key

    def _fetch_tier_metadata(self, customer_id: str) -> str | None:
        subscriptions = stripe.Subscription.list(customer=customer_id, status="all", limit=10, api_key=self.api_key)
        for subscription in subscriptions.data:
            if subscription["status"] not in ACTIVE_SUBSCRIPTION_STATUSES:
                continue
            items: Any = subscription["items"]["data"]
            if not items:
                continue
            product = items[0]["price"]["product"]
            if isinstance(product, str):
                product = stripe.Product.retrieve(product, api_key=self.api_key)
            metadata = product.get("metadata") or {}
            return metadata.get("tier")
        return None

    async def fetch_customer_tier(self, customer_id: str) -> str | None:
        """Raw ``tier`` metadata of the customer's active subscription product, or None.

        Stripe errors propagate; the tier resolver decides the fallback.
        """
        return await asyncio.to_thread(self._fetch_tier_metadata, customer_id)
