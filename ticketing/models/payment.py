# ticketing/models/payment.py
import math

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Any, List, Optional

from ticketing import config
from ticketing.models.event import CamelModel, EventDay


class CreateOrderRequest(BaseModel):
    amount: Any
    currency: Optional[str] = None
    receipt: Optional[str] = None

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v):
        # bool is an int subclass and strings must not be coerced
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("Invalid amount")
        if v <= 0 or v > config.MAX_ORDER_AMOUNT or not math.isfinite(v):
            raise ValueError("Invalid amount")
        return v

    @field_validator("currency", mode="before")
    @classmethod
    def validate_currency(cls, v):
        if v is not None and not isinstance(v, str):
            raise ValueError("Invalid currency")
        return v

    @field_validator("receipt", mode="before")
    @classmethod
    def validate_receipt(cls, v):
        if v is not None and (not isinstance(v, str) or len(v) > 40):
            raise ValueError("Invalid receipt format")
        return v


class OrderResponse(BaseModel):
    success: bool = True
    order_id: str
    amount: int  # minor units
    currency: str
    key: str


class PaymentDetailsModel(CamelModel):
    """Checkout payloads send null for fields the buyer left empty; those take the field default."""

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data):
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class PassDetails(PaymentDetailsModel):
    day_number: int = Field(1, ge=1)


class EventDetails(PaymentDetailsModel):
    id: str = Field(min_length=1)
    title: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    venue: Optional[str] = None
    image: Optional[str] = None
    pass_id: Optional[str] = None
    pass_type: Optional[str] = None
    quantity: int = Field(1, ge=1)
    is_multi_day: bool = False
    selected_day_id: Optional[str] = None
    event_days: List[EventDay] = []
    pass_details: Optional[PassDetails] = None


class CustomerDetails(PaymentDetailsModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    phone: str = "N/A"

    @field_validator("phone")
    @classmethod
    def blank_phone(cls, v):
        return v.strip() or "N/A"


class DiscountDetails(PaymentDetailsModel):
    referral_code: Optional[str] = None
    discount_amount: Optional[float] = None
    original_amount: Optional[float] = None


class VerifyPaymentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    razorpay_payment_id: str = Field(min_length=1)
    razorpay_order_id: str = Field(min_length=1)
    razorpay_signature: str = Field(min_length=1)
    event_details: EventDetails = Field(alias="eventDetails")
    customer_details: CustomerDetails = Field(alias="customerDetails")
    discount_details: DiscountDetails = Field(default_factory=DiscountDetails, alias="discountDetails")

    @field_validator("discount_details", mode="before")
    @classmethod
    def default_discount(cls, v):
        return {} if v is None else v



class TicketPdf(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    data: str
    filename: str
    mime_type: str = Field("application/pdf", alias="mimeType")


class VerifyPaymentResponse(BaseModel):
    success: bool = True
    message: str
    booking_id: Optional[str] = None
    ticket_id: Optional[str] = None
    payment_id: str
    order_id: str
    amount: float
    currency: str
    email_sent: bool = False
    pdf_generated: bool = False
    pdf_size: Optional[int] = None
    ticket_pdf: Optional[TicketPdf] = None
    duplicate: bool = False
    warning: Optional[str] = None
    warnings: List[str] = []
