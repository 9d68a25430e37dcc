"""
Application Configuration
"""
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database
    DATABASE_CLIENT: str = "postgres"
    DATABASE_HOST: str = "localhost"
    DATABASE_PORT: int = 5432
    DATABASE_NAME: str = "review_responder"
    DATABASE_USERNAME: str = "postgres"
    DATABASE_PASSWORD: str = ""
    DATABASE_SSL: bool = False
    DATABASE_URI: Optional[str] = None  # Full URL, overrides the components above

    @property
    def DATABASE_URL(self) -> str:
        """Construct database URL from components"""
        if self.DATABASE_URI:
            return self.DATABASE_URI
        url = (
            f"postgresql://{self.DATABASE_USERNAME}:{self.DATABASE_PASSWORD}"
            f"@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"
        )
        if self.DATABASE_SSL:
            url += "?sslmode=require"
        return url

    # JWT
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 10080  # 7 days

    # API
    API_V1_PREFIX: str = "/api/v1"
    PROJECT_NAME: str = "Local Review Responder API"
    DEBUG: bool = False
    ALLOWED_ORIGINS: str = "*"
    APP_BASE_URL: str = "https://local-review-responder.vercel.app"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """Parse CORS origins from string"""
        if self.ALLOWED_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    # Google OAuth + Business Profile
    GOOGLE_CLIENT_ID: str = ""
    GOOGLE_CLIENT_SECRET: str = ""
    GOOGLE_TOKEN_URL: str = "https://oauth2.googleapis.com/token"
    GOOGLE_TOKEN_EXPIRY_MARGIN_SECONDS: int = 300
    GOOGLE_REVIEWS_PAGE_SIZE: int = 50
    GOOGLE_HTTP_TIMEOUT: float = 30.0

    # Review sync trigger
    CRON_SECRET: str = ""
    REVIEW_SYNC_SCHEDULE_ENABLED: bool = False
    REVIEW_SYNC_HOUR: int = 6
    REVIEW_SYNC_MINUTE: int = 0

    # Email (SendGrid)
    SENDGRID_API_URL: str = "https://api.sendgrid.com/v3/mail/send"
    SENDGRID_API_KEY: str = ""
    SENDGRID_FROM_EMAIL: str = "notifications@localreviewresponder.com"
    SENDGRID_FROM_NAME: str = "Local Review Responder"

    # Stripe billing
    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""
    STRIPE_MONTHLY_PRICE_CENTS: int = 2900
    STRIPE_YEARLY_PRICE_CENTS: int = 29000
    STRIPE_TRIAL_DAYS: int = 14

    # Public widget
    WIDGET_RATE_LIMIT: str = "120/minute"
    WIDGET_CACHE_SECONDS: int = 300

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8001

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
