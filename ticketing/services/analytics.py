# ticketing/services/analytics.py
import time
from datetime import datetime, timezone

from ticketing import config
from ticketing.database import ANALYTICS
from ticketing.models.booking import AnalyticsRecord

_cache = {"expires_at": 0.0, "value": None}


async def record_booking(db, booking_id: str, event_id: str, revenue: float) -> AnalyticsRecord:
    record = AnalyticsRecord(
        booking_id=booking_id,
        event_id=event_id,
        revenue=revenue,
        date=datetime.now(timezone.utc).date().isoformat(),
    )
    await db[ANALYTICS].insert_one(record.model_dump())
    return record


async def _compute_summary(db) -> dict:
    per_event = {}
    total_revenue = 0.0
    total_bookings = 0
    async for row in db[ANALYTICS].find({}, {"_id": 0}):
        revenue = float(row.get("revenue", 0))
        entry = per_event.setdefault(row["event_id"], {"event_id": row["event_id"], "bookings": 0, "revenue": 0.0})
        entry["bookings"] += 1
        entry["revenue"] += revenue
        total_bookings += 1
        total_revenue += revenue
    return {
        "total_bookings": total_bookings,
        "total_revenue": round(total_revenue, 2),
        "events": sorted(per_event.values(), key=lambda e: e["revenue"], reverse=True),
        "generated_at": datetime.now(timezone.utc).isoformat(),
    }


async def get_summary(db, force_refresh: bool = False) -> dict:
    """Dashboard totals, recomputed at most once per ``ANALYTICS_CACHE_TTL`` seconds."""
    now = time.monotonic()
    if not force_refresh and _cache["value"] is not None and now < _cache["expires_at"]:
        return _cache["value"]
    summary = await _compute_summary(db)
    _cache["value"] = summary
    _cache["expires_at"] = now + config.ANALYTICS_CACHE_TTL
    return summary


def clear_cache():
    _cache["value"] = None
    _cache["expires_at"] = 0.0
