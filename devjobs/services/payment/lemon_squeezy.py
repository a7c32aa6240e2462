import hashlib
import hmac
import json
import logging
from datetime import timedelta
from typing import Any, Dict, Optional

import requests

from devjobs.config import LEMON_SQUEEZY, APP_ENV, FRONTEND_URL, LISTING_DURATION_DAYS
from devjobs.models.position import Position
from devjobs.services.payment.base import (
    PaymentProviderBase, PaymentProviderError, CheckoutSession, WebhookResult
)
from devjobs.utils.dates import utcnow

logger = logging.getLogger(__name__)

API_URL = "https://api.lemonsqueezy.com/v1"
REQUEST_TIMEOUT = 15


class LemonSqueezyProvider(PaymentProviderBase):
    name = "lemon_squeezy"

    def __init__(self, settings: Optional[Dict[str, Any]] = None):
        settings = settings or LEMON_SQUEEZY
        self.api_key = settings.get("api_key", "")
        self.store_id = settings.get("store_id", "")
        self.webhook_secret = settings.get("webhook_secret", "")
        self.variants = settings.get("variants", {})

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/vnd.api+json",
            "Content-Type": "application/vnd.api+json",
        }

    # ----------------- Checkout -----------------
    def create_checkout(self, position: Position, tier: str, amount: float, user_id: str) -> CheckoutSession:
        variant_id = self.variants.get(tier)
        if not variant_id:
            raise PaymentProviderError(f"No variant ID configured for tier: {tier}")

        payload = {
            "data": {
                "type": "checkouts",
                "attributes": {
                    "custom_price": int(round(amount * 100)),
                    "product_options": {
                        "name": f"Position Listing - {tier.capitalize()} Tier",
                        "description": f"{LISTING_DURATION_DAYS}-day listing for: {position.title}",
                        "redirect_url": f"{FRONTEND_URL}/hr/positions/{position.id}/payment/success",
                    },
                    "checkout_options": {"embed": False, "media": False, "logo": False},
                    "checkout_data": {
                        "custom": {
                            "position_id": str(position.id),
                            "tier": tier,
                            "user_id": str(user_id),
                        },
                    },
                    "expires_at": (utcnow() + timedelta(hours=1)).isoformat(),
                    "preview": False,
                    "test_mode": APP_ENV != "production",
                },
                "relationships": {
                    "store": {"data": {"type": "stores", "id": str(self.store_id)}},
                    "variant": {"data": {"type": "variants", "id": str(variant_id)}},
                },
            }
        }

        try:
            response = requests.post(
                f"{API_URL}/checkouts",
                headers=self._headers(),
                json=payload,
                timeout=REQUEST_TIMEOUT
            )
        except requests.RequestException as e:
            raise PaymentProviderError("Failed to create checkout session") from e

        if not response.ok:
            logger.error("Lemon Squeezy checkout creation failed: %s %s", response.status_code, response.text)
            raise PaymentProviderError("Failed to create checkout session")

        data = response.json().get("data") or {}
        url = (data.get("attributes") or {}).get("url")
        session_id = data.get("id")
        if not url or not session_id:
            raise PaymentProviderError("Invalid checkout response from Lemon Squeezy")

        return CheckoutSession(
            url=url,
            session_id=session_id,
            metadata={"checkout_id": session_id, "position_id": str(position.id), "tier": tier}
        )

    # ----------------- Webhook -----------------
    def verify_signature(self, raw_body: bytes, signature: Optional[str]) -> bool:
        if not signature or not self.webhook_secret:
            return False
        expected = hmac.new(self.webhook_secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
        return hmac.compare_digest(expected, signature)

    def handle_webhook(self, raw_body: bytes, headers: Dict[str, str]) -> WebhookResult:
        signature = headers.get("x-signature") or headers.get("X-Signature")
        if not self.verify_signature(raw_body, signature):
            logger.warning("Lemon Squeezy webhook signature verification failed")
            return WebhookResult(success=False, message="Invalid webhook signature")

        try:
            payload = json.loads(raw_body)
        except ValueError:
            return WebhookResult(success=False, message="Malformed webhook payload")

        event_name = (payload.get("meta") or {}).get("event_name")
        if event_name in ("order_created", "subscription_created"):
            return self._payment_success(payload)
        if event_name == "order_refunded":
            order_id = (payload.get("data") or {}).get("id")
            return WebhookResult(success=True, payment_id=order_id, status="refunded", data={"order_id": order_id})

        logger.info("Unhandled Lemon Squeezy webhook event %s", event_name)
        return WebhookResult(success=True, message=f"Event {event_name} received but not processed")

    def _payment_success(self, payload: Dict[str, Any]) -> WebhookResult:
        data = payload.get("data") or {}
        attributes = data.get("attributes") or {}
        order_id = data.get("id")

        custom = (payload.get("meta") or {}).get("custom_data") or {}
        if not custom:
            for item in attributes.get("order_items") or []:
                custom = ((item.get("product_options") or {}).get("checkout_data") or {}).get("custom") or {}
                if custom:
                    break
        if not custom:
            for included in payload.get("included") or []:
                if included.get("type") != "order-items":
                    continue
                product_options = (included.get("attributes") or {}).get("product_options") or {}
                custom = (product_options.get("checkout_data") or {}).get("custom") or {}
                if custom:
                    break

        position_id = custom.get("position_id")
        tier = custom.get("tier")
        if not position_id or not tier:
            logger.error("Lemon Squeezy webhook missing position_id or tier (order %s)", order_id)
            return WebhookResult(success=False, message="Missing position_id or tier in webhook payload")

        return WebhookResult(
            success=True,
            payment_id=str(order_id) if order_id is not None else None,
            status="completed",
            data={
                "position_id": position_id,
                "tier": tier,
                "order_id": order_id,
                "amount": (attributes.get("total") or 0) / 100,
            }
        )
