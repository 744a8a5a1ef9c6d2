# ticketing/config.py
from decouple import config

# Database
MONGO_URI = config("MONGO_URI", default="mongodb://localhost:27017")
MONGO_DB_NAME = config("MONGO_DB_NAME", default="event_ticketing")

# Payment gateway
RAZORPAY_KEY_ID = config("RAZORPAY_KEY_ID", default="")
RAZORPAY_KEY_SECRET = config("RAZORPAY_KEY_SECRET", default="")
# Razorpay signs checkout responses with the key secret unless told otherwise
PAYMENT_SIGNATURE_SECRET = config("PAYMENT_SIGNATURE_SECRET", default=RAZORPAY_KEY_SECRET)
MAX_ORDER_AMOUNT = config("MAX_ORDER_AMOUNT", default=1_000_000, cast=float)
DEFAULT_CURRENCY = config("DEFAULT_CURRENCY", default="INR")

# Tickets
TICKET_PREFIX = config("TICKET_PREFIX", default="TGIN")
TICKET_YEAR_TAG = config("TICKET_YEAR_TAG", default="25")
TICKET_QR_SECRET = config("TICKET_QR_SECRET", default=PAYMENT_SIGNATURE_SECRET)
TICKET_BRAND = config("TICKET_BRAND", default="797 EVENTS")

# Email
SMTP_HOST = config("SMTP_HOST", default="smtp.gmail.com")
SMTP_PORT = config("SMTP_PORT", default=587, cast=int)
SMTP_USER = config("SMTP_USER", default="")
SMTP_PASS = config("SMTP_PASS", default="")
SMTP_FROM = config("SMTP_FROM", default=SMTP_USER)
SMTP_TIMEOUT = config("SMTP_TIMEOUT", default=30, cast=int)

# Auth
JWT_SECRET_KEY = config("JWT_SECRET_KEY", default="change-me")
JWT_ALGORITHM = config("JWT_ALGORITHM", default="HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = config("ACCESS_TOKEN_EXPIRE_MINUTES", default=30, cast=int)

# Admin analytics
ANALYTICS_CACHE_TTL = config("ANALYTICS_CACHE_TTL", default=30, cast=int)

# Logging
LOG_LEVEL = config("LOG_LEVEL", default="INFO")
LOG_DIR = config("LOG_DIR", default="")

REQUIRED_SETTINGS = ("RAZORPAY_KEY_ID", "RAZORPAY_KEY_SECRET", "PAYMENT_SIGNATURE_SECRET")


def missing_settings():
    """Names of required settings that are empty."""
    return [name for name in REQUIRED_SETTINGS if not globals()[name]]
