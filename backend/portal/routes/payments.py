# Overview: Payment processor callback; records completed online payments.

"""
The payment processor posts here after a checkout completes. The shared
secret in X-Webhook-Secret must match PAYMENT_WEBHOOK_SECRET.
"""

import hmac

from flask import Blueprint, current_app, request

from ..decorators import api_operation
from ..errors import AuthenticationRequiredError
from ..responses import json_body, order_payload
from ..services import payment_service
from ..validation import require_id


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


def _secret_matches() -> bool:
    expected = current_app.config.get("PAYMENT_WEBHOOK_SECRET") or ""
    provided = request.headers.get("X-Webhook-Secret") or ""
    return bool(expected) and hmac.compare_digest(expected, provided)


@payments_bp.post("/online-completed")
@api_operation("Payment recorded")
def online_payment_completed_route():
    """Request body: {"order_id": 42, "payment_intent_id": "pi_..."}"""
    if not _secret_matches():
        current_app.logger.warning("Rejected payment callback from %s", request.remote_addr)
        raise AuthenticationRequiredError("Invalid webhook secret")

    data = json_body()
    order = payment_service.record_online_payment(
        require_id(data.get("order_id"), field="order_id"),
        data.get("payment_intent_id"),
    )
    return {"order": order_payload(order)}
