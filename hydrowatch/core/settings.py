"""
Core settings and environment variables for HydroWatch.
Uses pydantic-settings for type-safe environment variable loading.
"""

import secrets
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Create a .env file in the root directory to configure these.
    """

    # Application
    APP_NAME: str = "HydroWatch"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = "production"  # "development" exposes error details in 500 responses
    LOG_LEVEL: str = "INFO"
    PORT: int = 3000

    # CORS - comma separated list, "*" allows every origin
    CORS_ORIGINS: str = "*"

    # Security
    JWT_SECRET: str = secrets.token_urlsafe(32)
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_HOURS: int = 24
    RESET_TOKEN_EXPIRE_MINUTES: int = 60

    # Bootstrap administrator (created at startup when both are set)
    ADMIN_EMAIL: Optional[str] = None
    ADMIN_PASSWORD: Optional[str] = None
    ADMIN_NAME: str = "Administrator"

    # Firebase/Firestore
    FIREBASE_PROJECT_ID: Optional[str] = None
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None  # Path to service account JSON

    # Mock DB mode for local development without Firebase credentials.
    # An empty MOCK_DB_PATH keeps the mock database purely in memory.
    USE_MOCK_DB: bool = False
    MOCK_DB_PATH: str = "./mock_db.json"

    # Uploaded issue photos
    UPLOAD_DIR: str = "./uploads"
    MAX_PHOTOS_PER_ISSUE: int = 5
    MAX_PHOTO_BYTES: int = 5_000_000

    # Outbound mail (password reset)
    MAIL_ENABLED: bool = False
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    EMAIL_USER: Optional[str] = None
    EMAIL_PASSWORD: Optional[str] = None
    FRONTEND_URL: str = "http://localhost:3000"

    # Payments: "stripe" or "mock"
    PAYMENT_PROVIDER: str = "stripe"
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_WEBHOOK_SECRET: Optional[str] = None

    # Map view
    GOOGLE_MAPS_API_KEY: Optional[str] = None

    # Issue lifecycle
    ISSUE_STRICT_TRANSITIONS: bool = False  # Enforce the transition table in issue_lifecycle
    NEAREST_SERVICE_RADIUS_METERS: float = 5000.0

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

    @property
    def cors_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"  # Allow extra env vars to prevent crashes


# Global settings instance
settings = Settings()
