from typing import List, Optional, Literal
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    # ============================================================
    # APPLICATION INFO
    # ============================================================
    PROJECT_NAME: str = "Flightpadi Holiday Booking"
    API_V1_STR: str = "/api/v1"
    VERSION: str = "1.0.0"
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"
    DEBUG: bool = False

    # ============================================================
    # COMPANY / BRANDING
    # ============================================================
    COMPANY_NAME: str = "Flightpadi"
    COMPANY_PHONE: str = "+234 912 411 8963"
    COMPANY_DOMAIN: str = "flightpadi.com"
    COMPANY_LOGO: str = "https://flightpadi.com/wp-content/uploads/2023/12/flightpadi-150x150.png"
    COMPANY_WHATSAPP: str = "+234 912 411 8963"
    POST_PAYMENT_REDIRECT_URL: str = "https://flightpadi.com/travel-guides/"

    # Bank transfer fallback (amounts above the card processor ceiling)
    BANK_NAME: str = "FCMB"
    BANK_DESCRIPTION: str = "First City Monument Bank"
    BANK_ACCOUNT_NUMBER: str = "1234567890"
    BANK_ACCOUNT_NAME: str = "FLIGHTPADI LTD"

    # ============================================================
    # REDIS (BOOKING SESSION STORE)
    # ============================================================
    REDIS_URI: str = "redis://localhost:6379/0"
    SESSION_BACKEND: Literal["redis", "memory"] = "redis"  # memory: local development only
    REDIS_URL: Optional[str] = None  # alias
    BOOKING_SESSION_TTL: int = 86400
    BOOKING_SESSION_KEY_PREFIX: str = "booking:state:"
    PENDING_PAYMENT_KEY_PREFIX: str = "booking:payment:"

    @property
    def get_redis_url(self) -> str:
        return self.REDIS_URL or self.REDIS_URI

    # ============================================================
    # CATALOG
    # ============================================================
    CATALOG_PATH: str = "data/catalog.json"

    # ============================================================
    # PRICING & BOOKING POLICY
    # ============================================================
    CURATION_FEE: float = 5000.0
    MIN_STAY_DAYS: int = 2
    MIN_ADVANCE_BOOKING_DAYS: int = 7

    # ============================================================
    # NOTIFICATION WEBHOOK (MAKE.COM SCENARIO)
    # ============================================================
    NOTIFICATION_WEBHOOK_URL: str = Field(default="https://hook.eu2.make.com/lmfioe0m1t26fjg2ih52cxcsnndps6ro")
    NOTIFICATION_TIMEOUT: float = 15.0

    # ============================================================
    # PAYMENTS (FLUTTERWAVE)
    # ============================================================
    FLUTTERWAVE_PUBLIC_KEY: str = ""
    PAYMENT_CURRENCY: str = "NGN"
    PAYMENT_OPTIONS: str = "card,ussd,banktransfer"
    PAYMENT_PROVIDER_MAX_AMOUNT: float = 499999.0
    PAYMENT_TITLE_SUFFIX: str = "Holiday"
    PAYMENT_DESCRIPTION: str = "Your Dream Vacation Package"

    # ============================================================
    # FRONTEND / CORS
    # ============================================================
    BACKEND_CORS_ORIGINS: List[str] = ["*"]
    FRONTEND_URL: str = "https://holiday.flightpadi.com"

    # ============================================================
    # LOGGING
    # ============================================================
    LOG_LEVEL: str = "INFO"

    # ============================================================
    # PYDANTIC CONFIG
    # ============================================================
    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


# ============================================================
# GLOBAL INSTANCE
# ============================================================
settings = Settings()


# ============================================================
# VALIDATION
# ============================================================
def validate_required_settings():
    missing = []

    if not settings.FLUTTERWAVE_PUBLIC_KEY:
        missing.append("FLUTTERWAVE_PUBLIC_KEY")
    if not settings.NOTIFICATION_WEBHOOK_URL:
        missing.append("NOTIFICATION_WEBHOOK_URL")

    if missing:
        raise ValueError(f"Missing required env vars: {', '.join(missing)}")


try:
    validate_required_settings()
except ValueError as e:
    import logging
    logging.warning(f"Config warning: {e}")
