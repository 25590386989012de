# styledecor/core/config.py
from typing import List, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # MongoDB
    MONGO_URL: str = "mongodb://localhost:27017"
    MONGO_DB_NAME: str = "styleDecor"
    MONGO_TLS: bool = False
    CREATE_INDEXES: bool = True

    # Identity: "firebase" in production, "jwt" for local development
    AUTH_PROVIDER: Literal["firebase", "jwt"] = "firebase"
    FIREBASE_SERVICE_KEY: str = ""  # base64 encoded service account JSON
    JWT_SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"

    # Stripe Checkout
    STRIPE_SECRET_KEY: str = ""
    CLIENT_DOMAIN: str = "http://localhost:5173"
    CURRENCY: str = "usd"

    CORS_ORIGINS: List[str] = ["http://localhost:5173"]

    # Booking policy
    ENFORCE_STATUS_TRANSITIONS: bool = False
    ALLOW_DUPLICATE_PENDING_BOOKINGS: bool = True
    REPAIR_DECORATOR_PROFILES: bool = True

    LOG_LEVEL: str = "INFO"


settings = Settings()
