# ticketing/services/booking.py
"""Order issuing, payment verification and booking/ticket issuance.

Everything before the gateway reports the payment as captured is a hard
failure. Everything after it is best effort: a step that fails is logged and
turned into a warning on the response, because the customer has already paid.
"""
import base64
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, List, Optional

from pymongo.errors import DuplicateKeyError

from ticketing import config
from ticketing.database import BOOKINGS, EVENTS
from ticketing.exceptions import InvalidSignature, PaymentNotSuccessful
from ticketing.logger_config import logger
from ticketing.models.booking import Booking, BookingStatus, TicketData
from ticketing.models.event import Event, EventDay
from ticketing.models.payment import (
    CreateOrderRequest,
    OrderResponse,
    TicketPdf,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from ticketing.services.analytics import record_booking
from ticketing.services.gateway import SUCCESSFUL_STATUSES, PaymentGateway
from ticketing.services.mailer import Mailer
from ticketing.services.ticket_pdf import generate_ticket_pdf
from ticketing.utils.signature import is_valid_payment_signature
from ticketing.utils.ticket_id import generate_ticket_id, next_ticket_sequence

BOOKING_SAVE_FAILED = "Booking not saved to database"


@dataclass
class StepResult:
    ok: bool
    value: Any = None
    error: Optional[str] = None


async def issue_order(gateway: PaymentGateway, request: CreateOrderRequest) -> OrderResponse:
    amount_minor = int(round(request.amount * 100))
    currency = request.currency or config.DEFAULT_CURRENCY
    receipt = request.receipt or f"receipt_{int(time.time() * 1000)}"

    order = await gateway.create_order(amount_minor, currency, receipt)
    logger.info(f"Razorpay order created: {order['id']}")
    return OrderResponse(
        order_id=order["id"],
        amount=order.get("amount", amount_minor),
        currency=order.get("currency", currency),
        key=gateway.key_id,
    )


async def verify_payment(db, gateway: PaymentGateway, mailer: Mailer, request: VerifyPaymentRequest,
                         render_pdf=generate_ticket_pdf) -> VerifyPaymentResponse:
    payment_id = request.razorpay_payment_id
    order_id = request.razorpay_order_id

    # The signature is checked before the gateway is ever asked about the payment
    if not is_valid_payment_signature(order_id, payment_id, request.razorpay_signature):
        logger.error(f"Invalid payment signature for payment {payment_id} / order {order_id}")
        raise InvalidSignature()

    payment = await gateway.fetch_payment(payment_id)
    status = payment.get("status")
    if status not in SUCCESSFUL_STATUSES:
        logger.error(f"Payment {payment_id} not successful: {status}")
        raise PaymentNotSuccessful()

    logger.info(f"Payment verified successfully: {payment_id}")
    issuer = BookingIssuer(db, mailer, render_pdf)
    return await issuer.issue(
        request,
        amount=int(payment.get("amount", 0)) / 100,
        currency=payment.get("currency") or config.DEFAULT_CURRENCY,
    )


class BookingIssuer:
    def __init__(self, db, mailer: Mailer, render_pdf: Callable[[TicketData], Awaitable[bytes]] = generate_ticket_pdf):
        self.db = db
        self.mailer = mailer
        self.render_pdf = render_pdf

    async def issue(self, request: VerifyPaymentRequest, amount: float, currency: str) -> VerifyPaymentResponse:
        warnings: List[str] = []
        payment_id = request.razorpay_payment_id
        order_id = request.razorpay_order_id
        details = request.event_details

        existing = await self._find_existing(payment_id)
        if existing is not None:
            return self._duplicate_response(existing, order_id)

        event = await self._load_event(details.id)
        pass_id = self.resolve_pass_id(event, details.pass_id, warnings)
        day = self.select_day(event, request, pass_id)
        day_number = day.day_number if day else (details.pass_details.day_number if details.pass_details else 1)

        saved = await self._persist(request, pass_id, day_number, amount, currency)
        if not saved.ok:
            if isinstance(saved.value, Booking):
                return self._duplicate_response(saved.value.model_dump(), order_id)
            logger.error(
                f"Booking creation failed after payment capture, manual reconciliation needed: "
                f"payment={payment_id} order={order_id} error={saved.error}"
            )
            return VerifyPaymentResponse(
                message="Payment verified but booking creation failed",
                payment_id=payment_id,
                order_id=order_id,
                amount=amount,
                currency=currency,
                warning=BOOKING_SAVE_FAILED,
                warnings=warnings + [BOOKING_SAVE_FAILED],
            )
        booking: Booking = saved.value
        logger.info(f"Booking saved successfully: {booking.id} ticket={booking.ticket_id}")

        await self._best_effort(
            "Analytics tracking", warnings,
            lambda: record_booking(self.db, booking.id, booking.event_id, amount),
        )

        ticket = self.build_ticket_data(booking, request, event, day)
        pdf = await self._best_effort("PDF generation", warnings, lambda: self.render_pdf(ticket))
        pdf_bytes = pdf.value if pdf.ok else None

        email = await self._best_effort(
            "Email sending", warnings,
            lambda: self.mailer.send_booking_confirmation(ticket, pdf_bytes),
        )

        ticket_pdf = None
        if pdf_bytes:
            ticket_pdf = TicketPdf(
                data=base64.b64encode(pdf_bytes).decode("ascii"),
                filename=f"Ticket_{booking.id}_{booking.ticket_id}.pdf",
            )
        return VerifyPaymentResponse(
            message="Payment verified and booking created successfully",
            booking_id=booking.id,
            ticket_id=booking.ticket_id,
            payment_id=payment_id,
            order_id=order_id,
            amount=amount,
            currency=currency,
            email_sent=email.ok and bool(email.value),
            pdf_generated=pdf_bytes is not None,
            pdf_size=len(pdf_bytes) if pdf_bytes else None,
            ticket_pdf=ticket_pdf,
            warnings=warnings,
        )

    async def _find_existing(self, payment_id: str) -> Optional[dict]:
        try:
            return await self.db[BOOKINGS].find_one({"payment_id": payment_id}, {"_id": 0})
        except Exception as exc:
            # The insert below is still guarded by the unique index on payment_id
            logger.warning(f"Duplicate-payment lookup failed for {payment_id}: {exc}")
            return None

    async def _load_event(self, event_id: str) -> Optional[Event]:
        try:
            doc = await self.db[EVENTS].find_one({"id": event_id}, {"_id": 0})
        except Exception as exc:
            logger.warning(f"Event lookup failed for {event_id}: {exc}")
            return None
        if doc is None:
            logger.warning(f"Event not found: {event_id}")
            return None
        return Event(**doc)

    @staticmethod
    def resolve_pass_id(event: Optional[Event], declared: Optional[str], warnings: List[str]) -> Optional[str]:
        if event is None or event.find_pass(declared) is not None:
            return declared
        fallback = event.first_pass()
        if fallback is None:
            return declared
        message = f"Pass {declared or 'unknown'} not found on event {event.id}; booked as {fallback.id}"
        logger.warning(message)
        warnings.append(message)
        return fallback.id

    @staticmethod
    def select_day(event: Optional[Event], request: VerifyPaymentRequest, pass_id: Optional[str]) -> Optional[EventDay]:
        details = request.event_details
        if details.is_multi_day and details.selected_day_id:
            for day in details.event_days:
                if day.id == details.selected_day_id:
                    return day
        if event is not None and event.is_multi_day:
            return event.day_for_pass(pass_id)
        return None

    async def _persist(self, request: VerifyPaymentRequest, pass_id: Optional[str], day_number: int,
                       amount: float, currency: str) -> StepResult:
        customer = request.customer_details
        discount = request.discount_details
        try:
            sequence = await next_ticket_sequence(self.db, day_number)
            booking = Booking(
                id=str(uuid.uuid4()),
                event_id=request.event_details.id,
                pass_id=pass_id,
                customer_name=customer.name,
                customer_email=customer.email,
                customer_phone=customer.phone,
                quantity=request.event_details.quantity,
                total_amount=amount,
                currency=currency,
                payment_id=request.razorpay_payment_id,
                order_id=request.razorpay_order_id,
                ticket_id=generate_ticket_id(day_number, sequence),
                status=BookingStatus.CONFIRMED,
                referral_code=discount.referral_code,
                discount_amount=discount.discount_amount,
                original_amount=discount.original_amount,
            )
            await self.db[BOOKINGS].insert_one(booking.model_dump(mode="json"))
        except DuplicateKeyError:
            # A concurrent request for the same payment won the insert
            existing = await self.db[BOOKINGS].find_one({"payment_id": request.razorpay_payment_id}, {"_id": 0})
            if existing is None:
                return StepResult(ok=False, error="duplicate key without matching booking")
            return StepResult(ok=False, value=Booking(**existing), error="duplicate payment")
        except Exception as exc:
            return StepResult(ok=False, error=str(exc))
        return StepResult(ok=True, value=booking)

    @staticmethod
    def build_ticket_data(booking: Booking, request: VerifyPaymentRequest, event: Optional[Event],
                          day: Optional[EventDay]) -> TicketData:
        details = request.event_details
        discount = request.discount_details
        event_date = details.date or (event.date if event else None) or datetime.now(timezone.utc).date().isoformat()
        pass_type = details.pass_type
        if event is not None and pass_type in (None, "Standard"):
            selected = event.find_pass(booking.pass_id)
            if selected is not None:
                pass_type = selected.name

        ticket = TicketData(
            booking_id=booking.id,
            ticket_id=booking.ticket_id,
            event_id=booking.event_id,
            pass_id=booking.pass_id,
            event_title=details.title or (event.title if event else "Event"),
            event_date=event_date,
            event_time=details.time or (event.time if event else "00:00"),
            event_venue=details.venue or (event.venue if event else "TBD"),
            customer_name=booking.customer_name,
            customer_email=booking.customer_email,
            customer_phone=booking.customer_phone if booking.customer_phone != "N/A" else "",
            pass_type=pass_type or "Standard",
            quantity=booking.quantity,
            total_amount=booking.total_amount,
            original_amount=discount.original_amount or booking.total_amount,
            discount_amount=discount.discount_amount or 0.0,
            referral_code=discount.referral_code or "",
            is_multi_day=details.is_multi_day or bool(event and event.is_multi_day),
        )
        if day is not None:
            # Day-specific details win over the event-level defaults
            ticket.day_number = day.day_number
            ticket.day_title = day.title
            ticket.event_date = day.date or ticket.event_date
            ticket.event_time = day.time or ticket.event_time
            ticket.event_venue = day.venue or ticket.event_venue
        day_count = len(details.event_days) or (len(event.event_days) if event else 0)
        if ticket.is_multi_day and day_count:
            ticket.event_duration = f"{day_count} Days"
        return ticket

    @staticmethod
    async def _best_effort(step: str, warnings: List[str], call: Callable[[], Awaitable[Any]]) -> StepResult:
        try:
            return StepResult(ok=True, value=await call())
        except Exception as exc:
            logger.warning(f"{step} failed: {exc}")
            warnings.append(f"{step} failed")
            return StepResult(ok=False, error=str(exc))

    @staticmethod
    def _duplicate_response(existing: dict, order_id: str) -> VerifyPaymentResponse:
        logger.warning(f"Payment {existing['payment_id']} already has booking {existing['id']}")
        return VerifyPaymentResponse(
            message="Payment already verified; booking exists",
            booking_id=existing["id"],
            ticket_id=existing.get("ticket_id"),
            payment_id=existing["payment_id"],
            order_id=existing.get("order_id") or order_id,
            amount=existing["total_amount"],
            currency=existing.get("currency") or config.DEFAULT_CURRENCY,
            duplicate=True,
        )
