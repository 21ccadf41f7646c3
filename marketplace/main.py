import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from marketplace.config import settings
from marketplace.database import create_db_and_tables
from marketplace.errors import register_exception_handlers
from marketplace.routes import (
    cart,
    health,
    notifications,
    payments,
    wallet,
)

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Run DB creation ONLY in local
    if settings.env == "local":
        create_db_and_tables()
    yield

app = FastAPI(title="Creator Marketplace API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(health.router, prefix="/health", tags=["Health"])
app.include_router(cart.router, prefix="/api/cart", tags=["Cart"])
app.include_router(payments.router, prefix="/api/payments", tags=["Payments"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["Notifications"])
app.include_router(wallet.router, prefix="/api/wallet", tags=["Wallet"])


@app.get("/")
def root():
    return {
        "cart": ["/api/cart"],
        "payments": [
            "/api/payments/initialize",
            "/api/payments/verify",
            "/api/payments/webhook",
            "/api/payments/config",
        ],
        "notifications": ["/api/notifications"],
        "wallet": ["/api/wallet", "/api/wallet/withdrawals"],
    }
