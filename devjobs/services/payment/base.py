from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from devjobs.models.position import Position


class PaymentProviderError(Exception):
    """Raised when a provider call fails or returns something unusable"""


@dataclass(frozen=True)
class CheckoutSession:
    url: str
    session_id: str
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class WebhookResult:
    success: bool
    payment_id: Optional[str] = None
    status: Optional[str] = None
    message: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)



class PaymentProviderBase:
    """Interface every checkout provider implements"""

    name: str = ""

    def create_checkout(self, position: Position, tier: str, amount: float, user_id: str) -> CheckoutSession:
        raise NotImplementedError

    def handle_webhook(self, raw_body: bytes, headers: Dict[str, str]) -> WebhookResult:
        raise NotImplementedError
