# ticketing/services/reports.py
"""Admin reports over stored bookings and gate scans: CSV/JSON exports and the attendance summary."""
import csv
import io
from collections import Counter
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from ticketing.database import ATTENDANCE, BOOKINGS, EVENTS
from ticketing.models.event import Event

BOOKING_COLUMNS = [
    "Booking ID", "Ticket ID", "Booking Date", "Booking Time", "Status", "Payment ID", "Order ID",
    "Customer Name", "Customer Email", "Customer Phone",
    "Event ID", "Event Title", "Event Date", "Event Time", "Event Venue",
    "Pass ID", "Pass Type", "Pass Price", "Quantity", "Total Amount", "Currency",
    "Referral Code", "Discount Amount", "Original Amount", "Created At",
]

ATTENDANCE_COLUMNS = [
    "Booking ID", "Ticket ID", "Check-in Date", "Check-in Time", "Scanned By", "Scan Location",
    "Attendee Name", "Customer Email", "Customer Phone",
    "Event ID", "Event Title", "Event Date", "Event Time", "Event Venue",
    "Ticket Quantity", "Amount Paid", "Payment ID", "Referral Code", "Discount Applied", "Notes",
]

RECENT_SCANS = 20


def split_timestamp(value) -> Tuple[str, str]:
    if not value:
        return "", ""
    if not isinstance(value, datetime):
        try:
            value = datetime.fromisoformat(str(value))
        except ValueError:
            return str(value), ""
    return value.date().isoformat(), value.strftime("%H:%M:%S")


def export_filename(kind: str, event_id: Optional[str], extension: str = "csv") -> str:
    today = datetime.now(timezone.utc).date().isoformat()
    if event_id:
        return f"{kind}-event-{event_id}-{today}.{extension}"
    return f"all-{kind}-{today}.{extension}"


def to_csv(columns: List[str], rows: Iterable[Dict]) -> str:
    """Render rows as CSV; with no rows the header line alone is returned."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=columns, extrasaction="ignore", lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow({column: "" if row.get(column) is None else row[column] for column in columns})
    return buffer.getvalue()


async def _events_by_id(db, event_ids) -> Dict[str, Event]:
    ids = sorted({event_id for event_id in event_ids if event_id})
    if not ids:
        return {}
    docs = await db[EVENTS].find({"id": {"$in": ids}}, {"_id": 0}).to_list(length=None)
    return {doc["id"]: Event(**doc) for doc in docs}


def _event_columns(event: Optional[Event]) -> Dict:
    return {
        "Event Title": event.title if event else "Unknown Event",
        "Event Date": event.date if event else "TBD",
        "Event Time": event.time if event else "TBD",
        "Event Venue": event.venue if event else "TBD",
    }


async def booking_rows(db, event_id: Optional[str] = None) -> List[Dict]:
    query = {"event_id": event_id} if event_id else {}
    bookings = await db[BOOKINGS].find(query, {"_id": 0}).to_list(length=None)
    bookings.sort(key=lambda booking: str(booking.get("created_at") or ""), reverse=True)
    events = await _events_by_id(db, (booking["event_id"] for booking in bookings))

    rows = []
    for booking in bookings:
        event = events.get(booking["event_id"])
        selected = event.find_pass(booking.get("pass_id")) if event else None
        booked_on, booked_at = split_timestamp(booking.get("created_at"))
        rows.append({
            "Booking ID": booking["id"],
            "Ticket ID": booking.get("ticket_id") or "",
            "Booking Date": booked_on,
            "Booking Time": booked_at,
            "Status": booking.get("status"),
            "Payment ID": booking.get("payment_id") or "N/A",
            "Order ID": booking.get("order_id") or "",
            "Customer Name": booking.get("customer_name") or "Unknown",
            "Customer Email": booking.get("customer_email") or "Unknown",
            "Customer Phone": booking.get("customer_phone") or "N/A",
            "Event ID": booking["event_id"],
            **_event_columns(event),
            "Pass ID": booking.get("pass_id") or "",
            "Pass Type": selected.name if selected else "Unknown Pass",
            "Pass Price": selected.price if selected else 0,
            "Quantity": booking.get("quantity", 1),
            "Total Amount": booking.get("total_amount", 0),
            "Currency": booking.get("currency", "INR"),
            "Referral Code": booking.get("referral_code") or "None",
            "Discount Amount": booking.get("discount_amount") or 0,
            "Original Amount": booking.get("original_amount") or booking.get("total_amount", 0),
            "Created At": str(booking.get("created_at") or ""),
        })
    return rows


async def _attendance_logs(db, event_id: Optional[str]) -> List[Dict]:
    query = {"event_id": event_id} if event_id else {}
    logs = await db[ATTENDANCE].find(query, {"_id": 0}).to_list(length=None)
    logs.sort(key=lambda log: str(log.get("scan_time") or ""), reverse=True)
    return logs


async def attendance_rows(db, event_id: Optional[str] = None) -> List[Dict]:
    logs = await _attendance_logs(db, event_id)
    events = await _events_by_id(db, (log["event_id"] for log in logs))
    booking_ids = [log["booking_id"] for log in logs]
    bookings = {}
    if booking_ids:
        docs = await db[BOOKINGS].find({"id": {"$in": booking_ids}}, {"_id": 0}).to_list(length=None)
        bookings = {doc["id"]: doc for doc in docs}

    rows = []
    for log in logs:
        booking = bookings.get(log["booking_id"], {})
        scanned_on, scanned_at = split_timestamp(log.get("scan_time"))
        rows.append({
            "Booking ID": log["booking_id"],
            "Ticket ID": booking.get("ticket_id") or "",
            "Check-in Date": scanned_on,
            "Check-in Time": scanned_at,
            "Scanned By": log.get("guard_name") or "Unknown",
            "Scan Location": log.get("scan_location") or "Main Gate",
            "Attendee Name": log.get("customer_name") or "Unknown",
            "Customer Email": log.get("customer_email") or "Unknown",
            "Customer Phone": booking.get("customer_phone") or "N/A",
            "Event ID": log["event_id"],
            **_event_columns(events.get(log["event_id"])),
            "Ticket Quantity": log.get("quantity_attended", 1),
            "Amount Paid": booking.get("total_amount", 0),
            "Payment ID": booking.get("payment_id") or "N/A",
            "Referral Code": booking.get("referral_code") or "None",
            "Discount Applied": booking.get("discount_amount") or 0,
            "Notes": log.get("notes") or "",
        })
    return rows


async def attendance_summary(db, event_id: Optional[str] = None) -> Dict:
    logs = await _attendance_logs(db, event_id)
    booking_query = {"status": "confirmed"}
    if event_id:
        booking_query["event_id"] = event_id
    bookings = await db[BOOKINGS].find(booking_query, {"_id": 0}).to_list(length=None)
    events = await _events_by_id(db, [log["event_id"] for log in logs] + [b["event_id"] for b in bookings])

    tickets_sold = sum(booking.get("quantity", 1) for booking in bookings)
    attendees = sum(log.get("quantity_attended", 1) for log in logs)

    by_event = {}
    for booking in bookings:
        entry = by_event.setdefault(booking["event_id"], {"tickets_sold": 0, "check_ins": 0, "attendees": 0})
        entry["tickets_sold"] += booking.get("quantity", 1)
    for log in logs:
        entry = by_event.setdefault(log["event_id"], {"tickets_sold": 0, "check_ins": 0, "attendees": 0})
        entry["check_ins"] += 1
        entry["attendees"] += log.get("quantity_attended", 1)

    hours = Counter()
    for log in logs:
        _, scanned_at = split_timestamp(log.get("scan_time"))
        if scanned_at:
            hours[int(scanned_at[:2])] += 1

    return {
        "summary": {
            "total_check_ins": len(logs),
            "total_attendees": attendees,
            "tickets_sold": tickets_sold,
            "attendance_rate": round(attendees / tickets_sold * 100, 1) if tickets_sold else 0.0,
        },
        "by_event": [
            {
                "event_id": key,
                "event_title": events[key].title if key in events else "Unknown Event",
                **counts,
            }
            for key, counts in sorted(by_event.items(), key=lambda item: item[1]["attendees"], reverse=True)
        ],
        "hourly_distribution": [{"hour": hour, "count": hours[hour]} for hour in range(24)],
        "recent": logs[:RECENT_SCANS],
    }
