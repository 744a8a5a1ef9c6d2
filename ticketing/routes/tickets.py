# ticketing/routes/tickets.py
import hmac
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from pymongo.errors import DuplicateKeyError

from ticketing.database import ATTENDANCE, BOOKINGS, EVENTS, get_database
from ticketing.exceptions import NotFoundError, ValidationError
from ticketing.logger_config import logger
from ticketing.models.booking import BookingStatus
from ticketing.utils.auth_utils import require_role
from ticketing.utils.signature import ticket_security_hash

router = APIRouter()


class TicketScanRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    ticket_id: Optional[str] = None
    booking_id: Optional[str] = None
    event_id: Optional[str] = None
    signature: Optional[str] = None
    scan_time: Optional[str] = None
    guard_name: Optional[str] = None
    scan_location: Optional[str] = None


def _booking_summary(booking: dict, event: Optional[dict]) -> dict:
    return {
        "id": booking["id"],
        "ticket_id": booking.get("ticket_id"),
        "name": booking["customer_name"],
        "email": booking["customer_email"],
        "phone": booking.get("customer_phone"),
        "quantity": booking.get("quantity", 1),
        "total_amount": booking.get("total_amount"),
        "event_title": event["title"] if event else "Unknown Event",
        "pass_type": booking.get("pass_id"),
        "booking_date": booking.get("created_at"),
    }


@router.post("/verify-ticket")
async def verify_ticket(request: TicketScanRequest, db=Depends(get_database), guard=Depends(require_role("guard", "admin"))):
    if not request.ticket_id and not request.booking_id:
        raise ValidationError("Missing ticket or booking ID")

    if request.booking_id:
        booking = await db[BOOKINGS].find_one({"id": request.booking_id}, {"_id": 0})
    else:
        booking = await db[BOOKINGS].find_one({"ticket_id": request.ticket_id}, {"_id": 0})
    if booking is None:
        raise NotFoundError("Ticket not found in system")

    if booking.get("status") != BookingStatus.CONFIRMED.value:
        raise ValidationError("Ticket not confirmed or cancelled")

    if request.event_id:
        event = await db[EVENTS].find_one({"id": request.event_id}, {"_id": 0})
        if event is None:
            raise NotFoundError("Event not found")
        if booking["event_id"] != request.event_id:
            raise ValidationError("Ticket not valid for this event")
    else:
        event = await db[EVENTS].find_one({"id": booking["event_id"]}, {"_id": 0})

    if request.signature:
        expected = ticket_security_hash(booking["id"], booking["event_id"], booking["customer_email"])
        if not hmac.compare_digest(expected, request.signature):
            raise ValidationError("Invalid ticket signature")

    existing = await db[ATTENDANCE].find_one({"booking_id": booking["id"]}, {"_id": 0})
    if existing:
        logger.warning(f"Ticket {booking['id']} already used at {existing['scan_time']}")
        return {
            "success": False,
            "alreadyAttended": True,
            "attendanceTime": existing["scan_time"],
            "message": "Ticket already used for entry",
            "booking": _booking_summary(booking, event),
        }

    scan_time = request.scan_time or datetime.now(timezone.utc).isoformat()
    guard_name = request.guard_name or guard.get("username") or "Security Guard"
    scan_location = request.scan_location or "Main Gate"
    try:
        await db[ATTENDANCE].insert_one({
            "booking_id": booking["id"],
            "event_id": booking["event_id"],
            "customer_name": booking["customer_name"],
            "customer_email": booking["customer_email"],
            "quantity_attended": booking.get("quantity", 1),
            "scan_time": scan_time,
            "scanned_by": guard.get("id", "scanner"),
            "guard_name": guard_name,
            "scan_location": scan_location,
            "notes": f"Scanned via QR code{' (verified)' if request.signature else ''}",
        })
    except DuplicateKeyError:
        # Another gate admitted the same ticket between our read and write
        return {
            "success": False,
            "alreadyAttended": True,
            "message": "Ticket already used for entry",
            "booking": _booking_summary(booking, event),
        }
    except Exception as exc:
        logger.error(f"Attendance record for {booking['id']} not saved: {exc}")
    else:
        logger.info(f"Attendance recorded for booking {booking['id']}")

    return {
        "success": True,
        "message": "Ticket verified successfully",
        "booking": _booking_summary(booking, event),
        "event": {
            "id": event["id"],
            "title": event["title"],
            "date": event.get("date"),
            "time": event.get("time"),
            "venue": event.get("venue"),
        } if event else None,
        "scanInfo": {
            "scanTime": scan_time,
            "scannedBy": guard_name,
            "location": scan_location,
        },
    }
