# ticketing/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI

from ticketing.database import ensure_indexes
from ticketing.exceptions import register_exception_handlers
from ticketing.logger_config import logger
from ticketing.routes import admin, auth, health, payments, promo, tickets


@asynccontextmanager
async def lifespan(app: FastAPI):
    await ensure_indexes()
    logger.info("Indexes ensured; booking API ready")
    yield


def create_app(with_lifespan: bool = True) -> FastAPI:
    app = FastAPI(title="Event Ticketing System", lifespan=lifespan if with_lifespan else None)
    register_exception_handlers(app)

    # Include routers with appropriate prefixes
    app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
    app.include_router(payments.router, prefix="/api", tags=["Payments"])
    app.include_router(promo.router, prefix="/api", tags=["Promo Codes"])
    app.include_router(tickets.router, prefix="/api", tags=["Check-in"])
    app.include_router(health.router, prefix="/api", tags=["Health"])
    app.include_router(admin.router, prefix="/admin", tags=["Admin"])
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
