import os

# PostgreSQL settings
POSTGRES_USER = os.getenv("POSTGRES_USER", "postgres")
POSTGRES_PASSWORD = os.getenv("POSTGRES_PASSWORD", "postgres")
POSTGRES_DB = os.getenv("POSTGRES_DB", "freegym")
POSTGRES_HOST = os.getenv("POSTGRES_HOST", "db")
POSTGRES_PORT = os.getenv("POSTGRES_PORT", "5432")

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql+asyncpg://{POSTGRES_USER}:{POSTGRES_PASSWORD}@{POSTGRES_HOST}:{POSTGRES_PORT}/{POSTGRES_DB}",
)

# Connection pool
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "20"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "10"))
DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))

# Retry settings for transient database failures
DB_RETRY_ATTEMPTS = int(os.getenv("DB_RETRY_ATTEMPTS", "3"))
DB_RETRY_DELAY = float(os.getenv("DB_RETRY_DELAY", "1.0"))
DB_RETRY_BACKOFF_FACTOR = float(os.getenv("DB_RETRY_BACKOFF_FACTOR", "2.0"))

# Environment
ENVIRONMENT = os.getenv("ENVIRONMENT", "production").lower()
DEBUG = ENVIRONMENT in ["development", "dev", "test"]

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO" if not DEBUG else "DEBUG")
LOG_FORMAT = os.getenv("LOG_FORMAT", "json" if not DEBUG else "text")

# Application
APP_NAME = os.getenv("APP_NAME", "FreeGym API")
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")

# Identity tokens issued by the auth service
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("JWT_ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

# Key for check-in tokens printed as QR codes
CHECKIN_TOKEN_SECRET = os.getenv("CHECKIN_TOKEN_SECRET")

# Business rules
REFERRAL_REWARD_CREDITS = int(os.getenv("REFERRAL_REWARD_CREDITS", "5"))
REFERRAL_CODE_LENGTH = int(os.getenv("REFERRAL_CODE_LENGTH", "8"))
PAYMENT_REQUEST_TTL_HOURS = int(os.getenv("PAYMENT_REQUEST_TTL_HOURS", "48"))
MAX_INSTALLMENTS = int(os.getenv("MAX_INSTALLMENTS", "3"))
# 0 disables the no-refund window before a lesson starts
CANCELLATION_CUTOFF_MINUTES = int(os.getenv("CANCELLATION_CUTOFF_MINUTES", "0"))
GYM_TIMEZONE = os.getenv("GYM_TIMEZONE", "UTC")

RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
# Peers allowed to set X-Forwarded-For / X-Real-IP (comma-separated)
TRUSTED_PROXIES = {
    ip.strip() for ip in os.getenv("TRUSTED_PROXIES", "").split(",") if ip.strip()
}
SEED_DEFAULT_PACKAGES = os.getenv("SEED_DEFAULT_PACKAGES", "false").lower() == "true"


def validate_config():
    """Validate configuration on startup"""
    errors = []

    if not JWT_SECRET_KEY:
        errors.append("JWT_SECRET_KEY is required")

    if not CHECKIN_TOKEN_SECRET:
        errors.append("CHECKIN_TOKEN_SECRET is required")

    if not DATABASE_URL:
        errors.append("DATABASE_URL is required")

    if DB_RETRY_ATTEMPTS < 1:
        errors.append("DB_RETRY_ATTEMPTS must be >= 1")

    if DB_RETRY_DELAY < 0:
        errors.append("DB_RETRY_DELAY must be >= 0")

    if REFERRAL_REWARD_CREDITS < 0:
        errors.append("REFERRAL_REWARD_CREDITS must be >= 0")

    if PAYMENT_REQUEST_TTL_HOURS < 1:
        errors.append("PAYMENT_REQUEST_TTL_HOURS must be >= 1")

    if MAX_INSTALLMENTS < 1:
        errors.append("MAX_INSTALLMENTS must be >= 1")

    if CANCELLATION_CUTOFF_MINUTES < 0:
        errors.append("CANCELLATION_CUTOFF_MINUTES must be >= 0")

    if errors:
        raise ValueError(f"Configuration errors: {'; '.join(errors)}")


# Optional validation on import
if os.getenv("VALIDATE_CONFIG_ON_IMPORT", "true").lower() == "true":
    try:
        validate_config()
    except ValueError as e:
        print(f"⚠️  Configuration warning: {e}")
