# ticketing/routes/promo.py
import uuid

from fastapi import APIRouter, Depends
from pymongo import ReturnDocument

from ticketing.database import PROMOS, get_database
from ticketing.exceptions import NotFoundError, ValidationError
from ticketing.logger_config import logger
from ticketing.models.promo import PromoUsageRequest, PromoValidationRequest, sanitize_code
from ticketing.utils.pricing import apply_promo

router = APIRouter()


@router.post("/validate-promo")
async def validate_promo(request: PromoValidationRequest, db=Depends(get_database)):
    code = sanitize_code(request.code)
    promo = await db[PROMOS].find_one({"code": code}, {"_id": 0})

    error, discount = apply_promo(promo, request.event_id, request.order_amount)
    if error:
        return {"isValid": False, "error": error}

    return {
        "isValid": True,
        "promo": {
            "id": promo["id"],
            "code": promo["code"],
            "discountType": promo["discount_type"],
            "discountValue": promo["discount_value"],
            "minimumAmount": promo.get("minimum_amount"),
            "maxUsage": promo.get("max_usage"),
            "currentUsage": promo.get("current_usage", 0),
            "validFrom": promo.get("valid_from"),
            "validUntil": promo.get("valid_until"),
        },
        "discountAmount": discount,
    }


@router.patch("/validate-promo")
async def increment_promo_usage(request: PromoUsageRequest, db=Depends(get_database)):
    """Count one more use of a promo code after a successful booking."""
    try:
        uuid.UUID(request.promo_code_id)
    except ValueError:
        raise ValidationError("Invalid promo code ID format")

    promo = await db[PROMOS].find_one_and_update(
        {"id": request.promo_code_id},
        {"$inc": {"current_usage": 1}},
        return_document=ReturnDocument.AFTER,
    )
    if promo is None:
        raise NotFoundError("Promo code not found")

    logger.info(f"Promo {promo['code']} usage now {promo['current_usage']}")
    return {"success": True, "message": "Usage count updated"}
