# ticketing/models/promo.py
import math

from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from typing import Any, List, Optional

from ticketing import config
from ticketing.models.event import CamelModel


class PromoBase(BaseModel):
    code: str
    discount_type: str  # "percentage" or "fixed"
    discount_value: float = Field(gt=0)
    minimum_amount: Optional[float] = None
    maximum_discount: Optional[float] = None
    max_usage: Optional[int] = None
    current_usage: int = 0
    valid_from: datetime
    valid_until: datetime
    is_active: bool = True
    applicable_events: List[str] = []

    @field_validator('discount_type')
    def validate_discount_type(cls, v):
        if v not in ["percentage", "fixed"]:
            raise ValueError("discount_type must be either 'percentage' or 'fixed'")
        return v

    @field_validator('code')
    def normalize_code(cls, v):
        return sanitize_code(v)


class PromoCreate(PromoBase):
    pass


class Promo(PromoBase):
    id: str

    model_config = ConfigDict(from_attributes=True)


class PromoValidationRequest(CamelModel):
    code: Any
    event_id: str = Field(min_length=1)
    order_amount: Any

    @field_validator('code')
    @classmethod
    def validate_code(cls, v):
        if not isinstance(v, str) or not v or len(v) > 50:
            raise ValueError("Invalid promo code format")
        return v

    @field_validator('order_amount')
    @classmethod
    def validate_order_amount(cls, v):
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("Invalid order amount")
        if v <= 0 or v > config.MAX_ORDER_AMOUNT or not math.isfinite(v):
            raise ValueError("Invalid order amount")
        return v


class PromoUsageRequest(CamelModel):
    promo_code_id: str


def sanitize_code(code: str) -> str:
    return "".join(ch for ch in code.strip().upper() if ch.isascii() and ch.isalnum())
