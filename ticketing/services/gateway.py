# ticketing/services/gateway.py
import razorpay
from starlette.concurrency import run_in_threadpool

from ticketing import config
from ticketing.exceptions import ConfigurationError, GatewayError
from ticketing.logger_config import logger

SUCCESSFUL_STATUSES = ("captured", "authorized")


class PaymentGateway:
    """Thin async facade over the blocking Razorpay SDK."""

    def __init__(self, key_id: str, key_secret: str, client=None):
        if not key_id or not key_secret:
            raise ConfigurationError()
        self.key_id = key_id
        self.client = client or razorpay.Client(auth=(key_id, key_secret))

    async def create_order(self, amount_minor: int, currency: str, receipt: str) -> dict:
        data = {"amount": amount_minor, "currency": currency, "receipt": receipt}
        try:
            return await run_in_threadpool(self.client.order.create, data=data)
        except Exception as exc:
            logger.error(f"Razorpay order creation failed: {exc}")
            raise GatewayError("Failed to create order") from exc

    async def fetch_payment(self, payment_id: str) -> dict:
        try:
            return await run_in_threadpool(self.client.payment.fetch, payment_id)
        except Exception as exc:
            logger.error(f"Razorpay payment fetch failed for {payment_id}: {exc}")
            raise GatewayError("Payment verification failed") from exc


def get_gateway() -> PaymentGateway:
    """FastAPI dependency; missing credentials fail the request closed."""
    return PaymentGateway(config.RAZORPAY_KEY_ID, config.RAZORPAY_KEY_SECRET)
