# ticketing/utils/ticket_id.py
from pymongo import ReturnDocument

from ticketing import config
from ticketing.database import COUNTERS


def ticket_id_prefix(day_number: int) -> str:
    return f"{config.TICKET_PREFIX}-{config.TICKET_YEAR_TAG}-D{day_number}"


def generate_ticket_id(day_number: int = 1, sequence_number: int = 1) -> str:
    """Format a scanner-readable ticket id, e.g. ``TGIN-25-D1-00001``."""
    if day_number < 1 or sequence_number < 1:
        raise ValueError("day and sequence numbers start at 1")
    return f"{ticket_id_prefix(day_number)}-{sequence_number:05d}"


async def next_ticket_sequence(db, day_number: int) -> int:
    """Atomically bump and return the per-day counter.

    One ``findAndModify`` with ``$inc`` and ``upsert``: concurrent callers on any
    number of server instances each get a distinct value.
    """
    counter = await db[COUNTERS].find_one_and_update(
        {"_id": ticket_id_prefix(day_number)},
        {"$inc": {"seq": 1}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    return counter["seq"]
