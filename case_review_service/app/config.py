# Application Configuration using Pydantic BaseSettings
import logging
from typing import Optional

from pydantic import ValidationInfo, field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

WEAK_ADMIN_SECRETS = {"secret", "changeme", "change-me", "default", "admin", "admin-secret"}
MIN_ADMIN_SECRET_LENGTH = 32


class AppSettings(BaseSettings):
    ENVIRONMENT: str = "development"

    # MongoDB
    MONGO_DETAILS: str = "mongodb://mongo:27017"
    DB_NAME: str = "claimy"
    CASES_COLLECTION: str = "cases"
    STORES_COLLECTION: str = "stores"

    # Admin access
    ADMIN_EMAIL: Optional[str] = None
    ADMIN_SECRET_TOKEN: str = "change-me" # Signs admin session JWTs; must be overridden in production
    SESSION_TTL_SECONDS: int = 60 * 60
    GOOGLE_CLIENT_ID: Optional[str] = None # When set, ID tokens must carry this audience
    GOOGLE_TOKENINFO_URL: str = "https://oauth2.googleapis.com/tokeninfo"

    # Gmail (OAuth2 refresh-token grant)
    GMAIL_CLIENT_ID: Optional[str] = None
    GMAIL_CLIENT_SECRET: Optional[str] = None
    GMAIL_REFRESH_TOKEN: Optional[str] = None
    GMAIL_USER: Optional[str] = None
    GMAIL_API_BASE_URL: str = "https://gmail.googleapis.com/gmail/v1/users/me"
    GOOGLE_OAUTH_TOKEN_URL: str = "https://oauth2.googleapis.com/token"

    # Cloudinary
    CLOUDINARY_CLOUD_NAME: Optional[str] = None
    CLOUDINARY_API_KEY: Optional[str] = None
    CLOUDINARY_API_SECRET: Optional[str] = None

    # Kafka (status notifications for the end-user app); empty disables publishing
    KAFKA_BOOTSTRAP_SERVERS: Optional[str] = None
    NOTIFICATION_KAFKA_TOPIC: str = "case_status_notifications"

    # Mail sync
    SYNC_MAILS_BATCH_SIZE: int = 20

    # HTTP client
    DEFAULT_HTTP_TIMEOUT: float = 15.0

    # Observability
    LOG_LEVEL: str = "INFO"
    OTEL_EXPORTER_OTLP_TRACES_ENDPOINT: Optional[str] = None
    OTEL_EXPORTER_OTLP_METRICS_ENDPOINT: Optional[str] = None
    SERVICE_NAME_API: str = "case-review-api"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator("ADMIN_SECRET_TOKEN")
    @classmethod
    def validate_admin_secret_token(cls, v: str, info: ValidationInfo) -> str:
        """Rejects an empty secret, and a weak one in production."""
        if not v or not v.strip():
            raise ValueError("ADMIN_SECRET_TOKEN cannot be empty")

        environment = str(info.data.get("ENVIRONMENT", "development")).lower()
        if v.lower() in WEAK_ADMIN_SECRETS:
            if environment == "production":
                raise ValueError("ADMIN_SECRET_TOKEN uses a weak/default value in production")
            logger.warning("ADMIN_SECRET_TOKEN uses a weak value - change it via environment variable")

        if len(v) < MIN_ADMIN_SECRET_LENGTH:
            logger.warning(f"ADMIN_SECRET_TOKEN is shorter than the recommended {MIN_ADMIN_SECRET_LENGTH} characters")

        return v

# Instantiate settings to be imported by other modules
settings = AppSettings()

# Secrets are never logged here.
logger.info("Application settings module initialized.")
