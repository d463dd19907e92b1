"""
Configuration management for the PhotoFlow application.
Uses Pydantic Settings for environment variable management.
"""
from pydantic_settings import BaseSettings
from typing import List, Literal


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Configuration
    API_TITLE: str = "PhotoFlow"
    API_VERSION: str = "0.1.0"
    API_DESCRIPTION: str = "Photography portfolio with an admin panel for managing photos"

    # "development" disables the secure flag on the session cookie
    ENVIRONMENT: Literal["development", "production"] = "development"

    # CORS Configuration (public JSON API only)
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:8000",
    ]

    # Backend database
    # DATABASE_URL connects with the privileged (service role) credentials.
    # PUBLIC_DATABASE_URL connects with the anon role; falls back to DATABASE_URL.
    DATABASE_URL: str = ""
    PUBLIC_DATABASE_URL: str = ""

    # Object storage (Cloudinary)
    CLOUDINARY_CLOUD_NAME: str = ""
    CLOUDINARY_API_KEY: str = ""
    CLOUDINARY_API_SECRET: str = ""
    PHOTO_BUCKET_NAME: str = "photoflow_photos"

    # Which create contract the admin panel exposes:
    #   upload - binary file stored in the bucket
    #   link   - external image URL, nothing stored
    PHOTO_SOURCE_MODE: Literal["upload", "link"] = "upload"
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024

    # Admin credentials
    # ADMIN_PASSWORD_HASH (bcrypt) takes precedence over ADMIN_PASSWORD when set
    ADMIN_USERNAME: str = ""
    ADMIN_PASSWORD: str = ""
    ADMIN_PASSWORD_HASH: str = ""

    # Session cookie
    # SESSION_SECRET_KEY signs the session token (e.g. openssl rand -hex 32)
    SESSION_SECRET_KEY: str = ""
    SESSION_COOKIE_NAME: str = "admin-session"
    SESSION_MAX_AGE_DAYS: int = 7

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"


# Global settings instance
settings = Settings()
