# ticketing/database.py
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING

from ticketing import config

client = AsyncIOMotorClient(config.MONGO_URI)
database = client[config.MONGO_DB_NAME]

# Collection names
USERS = "users"
EVENTS = "events"
BOOKINGS = "bookings"
ANALYTICS = "booking_analytics"
COUNTERS = "ticket_counters"
ATTENDANCE = "attendance_logs"
PROMOS = "promo_codes"
SYSTEM = "system_flags"


def get_database():
    """FastAPI dependency; tests override it with an in-memory database."""
    return database


async def ensure_indexes(db=None):
    db = db if db is not None else database
    await db[BOOKINGS].create_index([("payment_id", ASCENDING)], unique=True)
    await db[BOOKINGS].create_index([("ticket_id", ASCENDING)], unique=True, sparse=True)
    await db[PROMOS].create_index([("code", ASCENDING)], unique=True)
    await db[ATTENDANCE].create_index([("booking_id", ASCENDING)], unique=True)
    await db[USERS].create_index([("username", ASCENDING)], unique=True)
