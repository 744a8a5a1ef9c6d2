# ticketing/routes/health.py
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ticketing import config
from ticketing.database import get_database
from ticketing.logger_config import logger

router = APIRouter()

VERSION = "1.0.0"
NO_CACHE = {"Cache-Control": "no-cache, no-store, must-revalidate"}


@router.get("/health")
async def health(db=Depends(get_database)):
    started = time.perf_counter()
    db_error = None
    try:
        await db.command("ping")
    except Exception as exc:
        logger.error(f"Health check: database unreachable: {exc}")
        db_error = str(exc)
    elapsed_ms = round((time.perf_counter() - started) * 1000)

    missing = config.missing_settings()
    healthy = db_error is None and not missing
    body = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": VERSION,
        "services": {
            "database": {
                "status": "healthy" if db_error is None else "unhealthy",
                "responseTime": f"{elapsed_ms}ms",
                "error": db_error,
            },
            "environment": {
                "status": "healthy" if not missing else "unhealthy",
                "missingVariables": missing,
            },
        },
    }
    return JSONResponse(body, status_code=200 if healthy else 503, headers=NO_CACHE)
