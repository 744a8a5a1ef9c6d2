# ticketing/utils/signature.py
import hashlib
import hmac

from ticketing import config
from ticketing.exceptions import ConfigurationError


def _require(secret: str) -> str:
    if not secret:
        raise ConfigurationError()
    return secret


def payment_signature(order_id: str, payment_id: str, secret: str = None) -> str:
    """Hex HMAC-SHA256 of ``order_id|payment_id``, as the gateway's checkout signs it."""
    key = _require(secret if secret is not None else config.PAYMENT_SIGNATURE_SECRET)
    message = f"{order_id}|{payment_id}"
    return hmac.new(key.encode(), message.encode(), hashlib.sha256).hexdigest()


def is_valid_payment_signature(order_id: str, payment_id: str, signature: str, secret: str = None) -> bool:
    expected = payment_signature(order_id, payment_id, secret)
    return hmac.compare_digest(expected.encode(), signature.encode())


def ticket_security_hash(booking_id: str, event_id: str = "", email: str = "") -> str:
    """Short keyed digest printed in the ticket QR code and checked at the gate."""
    key = _require(config.TICKET_QR_SECRET)
    data = f"{booking_id}-{event_id}-{email}"
    return hmac.new(key.encode(), data.encode(), hashlib.sha256).hexdigest()[:16]
