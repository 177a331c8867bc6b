"""
Django settings for the Snap cashier service.

Everything deployment-specific comes from the environment.
"""
import os


def env_bool(name, default):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def env_list(name, default=""):
    return [v.strip() for v in os.getenv(name, default).split(",") if v.strip()]


SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-only-secret-key")
DEBUG = env_bool("DJANGO_DEBUG", False)
ALLOWED_HOSTS = env_list("DJANGO_ALLOWED_HOSTS", "*")

INSTALLED_APPS = [
    "cashier.apps.CashierConfig",
]

MIDDLEWARE = [
    "django.middleware.common.CommonMiddleware",
    "cashier.middleware.RequestLogMiddleware",
]

ROOT_URLCONF = "cashier_site.urls"
WSGI_APPLICATION = "cashier_site.wsgi.application"
APPEND_SLASH = False

# orders live in DynamoDB; Django has no relational database here
DATABASES = {}

USE_TZ = True
TIME_ZONE = "UTC"

# -----------------------------
# Store
# -----------------------------
STORE_TIMEZONE = os.getenv("STORE_TIMEZONE", "Asia/Jakarta")

# -----------------------------
# Midtrans
# -----------------------------
MIDTRANS_SERVER_KEY = os.getenv("MIDTRANS_SERVER_KEY", "")
MIDTRANS_IS_PRODUCTION = env_bool("MIDTRANS_IS_PRODUCTION", False)
MIDTRANS_SNAP_URL = os.getenv(
    "MIDTRANS_SNAP_URL",
    "https://app.midtrans.com/snap/v1/transactions" if MIDTRANS_IS_PRODUCTION
    else "https://app.sandbox.midtrans.com/snap/v1/transactions",
)
MIDTRANS_TIMEOUT = float(os.getenv("MIDTRANS_TIMEOUT", "10"))
MIDTRANS_MAX_RETRIES = int(os.getenv("MIDTRANS_MAX_RETRIES", "2"))
MIDTRANS_SANDBOX_AUTO_SETTLE = env_bool("MIDTRANS_SANDBOX_AUTO_SETTLE", not MIDTRANS_IS_PRODUCTION)
MIDTRANS_SANDBOX_SETTLE_TYPES = env_list("MIDTRANS_SANDBOX_SETTLE_TYPES", "bank_transfer")
MIDTRANS_VERIFY_SIGNATURE = env_bool("MIDTRANS_VERIFY_SIGNATURE", MIDTRANS_IS_PRODUCTION)

# -----------------------------
# Inventory
# -----------------------------
TAKEAWAY_CONSUMABLE_IDS = env_list("TAKEAWAY_CONSUMABLE_IDS")
TAKEAWAY_CONSUMABLE_BASIS = os.getenv("TAKEAWAY_CONSUMABLE_BASIS", "per_quantity")
LOW_STOCK_THRESHOLD = int(os.getenv("LOW_STOCK_THRESHOLD", "5"))
ALERTS_SNS_ENABLED = env_bool("ALERTS_SNS_ENABLED", False)

# -----------------------------
# Back office
# -----------------------------
# bearer token for staff endpoints such as restock; empty disables them
CASHIER_STAFF_TOKEN = os.getenv("CASHIER_STAFF_TOKEN", "")

# -----------------------------
# Logging
# -----------------------------
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "default"},
    },
    "root": {"handlers": ["console"], "level": os.getenv("LOG_LEVEL", "INFO")},
    "loggers": {
        "botocore": {"level": "WARNING"},
        "urllib3": {"level": "WARNING"},
    },
}
