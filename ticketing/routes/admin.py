# ticketing/routes/admin.py
from fastapi import APIRouter, Depends, Query, Response
from ticketing.database import EVENTS, PROMOS, USERS, get_database
from ticketing.exceptions import NotFoundError, ValidationError
from ticketing.models.event import EventCreate, Event
from ticketing.models.promo import PromoCreate, Promo
from ticketing.models.user import UserCreate, User, UserUpdate
from ticketing.routes.auth import check_role, create_user
from ticketing.services import reports
from ticketing.services.analytics import get_summary
from ticketing.utils.auth_utils import require_role
from ticketing.logger_config import logger
from datetime import datetime, timezone
import uuid
from typing import List, Optional

router = APIRouter()
admin_required = require_role("admin")


@router.post("/events", response_model=Event)
async def create_event(event: EventCreate, db=Depends(get_database), user=Depends(admin_required)):
    event_data = event.model_dump()
    event_data["id"] = str(uuid.uuid4())
    event_data["is_multi_day"] = event.is_multi_day or bool(event.event_days)

    await db[EVENTS].insert_one(dict(event_data))
    logger.info(f"Event {event_data['id']} created by {user['username']}")

    return Event(**event_data)


@router.get("/events", response_model=List[Event])
async def list_events(db=Depends(get_database), user=Depends(admin_required)):
    events = await db[EVENTS].find({}, {"_id": 0}).to_list(length=100)
    return [Event(**event) for event in events]


@router.post("/promo-codes", response_model=Promo)
async def create_promo(promo: PromoCreate, db=Depends(get_database), user=Depends(admin_required)):
    """Create a new promo code."""
    existing_promo = await db[PROMOS].find_one({"code": promo.code})
    if existing_promo:
        raise ValidationError("Promo code already exists.")

    promo_data = promo.model_dump()
    promo_data["id"] = str(uuid.uuid4())
    promo_data["created_by"] = user["id"]
    await db[PROMOS].insert_one(dict(promo_data))

    return Promo(**promo_data)


@router.get("/promo-codes", response_model=List[Promo])
async def get_promos(db=Depends(get_database), user=Depends(admin_required)):
    promos = await db[PROMOS].find({}, {"_id": 0}).to_list(length=100)
    return [Promo(**promo) for promo in promos]


@router.get("/analytics")
async def analytics(refresh: bool = False, db=Depends(get_database), user=Depends(admin_required)):
    return await get_summary(db, force_refresh=refresh)


def _export_response(kind: str, columns: List[str], rows: List[dict], export_format: str, event_id: Optional[str]):
    if export_format == "json":
        return {
            "success": True,
            "data": rows,
            "count": len(rows),
            "exported_at": datetime.now(timezone.utc).isoformat(),
        }
    filename = reports.export_filename(kind, event_id)
    return Response(
        content=reports.to_csv(columns, rows),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/export-bookings")
async def export_bookings(
    export_format: str = Query("csv", alias="format", pattern="^(csv|json)$"),
    event_id: Optional[str] = Query(None, alias="eventId"),
    db=Depends(get_database),
    user=Depends(admin_required),
):
    rows = await reports.booking_rows(db, event_id)
    logger.info(f"{user['username']} exported {len(rows)} bookings as {export_format}")
    return _export_response("bookings", reports.BOOKING_COLUMNS, rows, export_format, event_id)


@router.get("/export-attendance")
async def export_attendance(
    export_format: str = Query("csv", alias="format", pattern="^(csv|json)$"),
    event_id: Optional[str] = Query(None, alias="eventId"),
    db=Depends(get_database),
    user=Depends(admin_required),
):
    rows = await reports.attendance_rows(db, event_id)
    logger.info(f"{user['username']} exported {len(rows)} attendance records as {export_format}")
    return _export_response("attendance", reports.ATTENDANCE_COLUMNS, rows, export_format, event_id)


@router.get("/attendance")
async def attendance(event_id: Optional[str] = Query(None, alias="eventId"), db=Depends(get_database), user=Depends(admin_required)):
    return await reports.attendance_summary(db, event_id)


@router.get("/users", response_model=List[User])
async def list_users(db=Depends(get_database), user=Depends(admin_required)):
    users = await db[USERS].find({}, {"_id": 0, "password": 0}).to_list(length=None)
    return [User(**account) for account in sorted(users, key=lambda account: account["username"])]


@router.post("/users", response_model=User)
async def add_user(new_user: UserCreate, db=Depends(get_database), user=Depends(admin_required)):
    created = await create_user(db, new_user)
    logger.info(f"{user['username']} created {created.role} account {created.username}")
    return created


@router.patch("/users/{user_id}", response_model=User)
async def update_user(user_id: str, changes: UserUpdate, db=Depends(get_database), user=Depends(admin_required)):
    update = changes.model_dump(exclude_none=True)
    if not update:
        raise ValidationError("Nothing to update")
    if "role" in update:
        check_role(update["role"])
    if user_id == user["id"] and (update.get("is_active") is False or update.get("role", "admin") != "admin"):
        raise ValidationError("Admins cannot demote or disable their own account")

    result = await db[USERS].update_one({"id": user_id}, {"$set": update})
    if result.matched_count == 0:
        raise NotFoundError("User not found")
    logger.info(f"{user['username']} updated user {user_id}: {update}")

    updated = await db[USERS].find_one({"id": user_id}, {"_id": 0, "password": 0})
    return User(**updated)
