# ticketing/utils/pricing.py
from typing import Optional, Dict, Any, Tuple
from datetime import datetime, timezone


def ensure_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def check_promo(promo: Optional[Dict[str, Any]], event_id: str, order_amount: float,
                now: Optional[datetime] = None) -> Optional[str]:
    """Return the reason a promo code cannot be applied, or None when it can."""
    if not promo:
        return "Promo code not found"
    if not promo.get("is_active", False):
        return "Promo code is inactive"

    now = now or datetime.now(timezone.utc)
    valid_from = promo.get("valid_from")
    if valid_from and ensure_utc(valid_from) > now:
        return "Promo code is not yet valid"
    valid_until = promo.get("valid_until")
    if valid_until and ensure_utc(valid_until) < now:
        return "Promo code has expired"

    max_usage = promo.get("max_usage")
    if max_usage and promo.get("current_usage", 0) >= max_usage:
        return "Promo code usage limit reached"

    minimum = promo.get("minimum_amount")
    if minimum and order_amount < minimum:
        return f"Minimum order amount is ₹{minimum}"

    applicable = promo.get("applicable_events") or []
    if applicable and event_id not in applicable:
        return "Promo code not applicable to this event"
    return None


def calculate_discount(promo: Dict[str, Any], order_amount: float) -> float:
    """Discount for ``order_amount``; never more than the order itself."""
    discount_value = promo.get("discount_value", 0)
    if promo.get("discount_type", "percentage") == "percentage":
        discount = round(order_amount * discount_value / 100)
        if promo.get("maximum_discount"):
            discount = min(discount, promo["maximum_discount"])
    else:
        discount = discount_value
    return min(discount, order_amount)


def apply_promo(promo: Optional[Dict[str, Any]], event_id: str, order_amount: float) -> Tuple[Optional[str], float]:
    error = check_promo(promo, event_id, order_amount)
    if error:
        return error, 0.0
    return None, calculate_discount(promo, order_amount)
