"""
Configuration management for the practice website API.
Uses Pydantic Settings for environment variable management.
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Configuration
    API_TITLE: str = "Psychology Practice CMS API"
    API_VERSION: str = "0.1.0"
    API_DESCRIPTION: str = "Backend API for the practice website and its content-management panel"

    # CORS Configuration
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ]

    # Empty means an in-memory SQLite database (useful for local runs only)
    DATABASE_URL: str = ""

    # Cloudinary Configuration
    CLOUDINARY_CLOUD_NAME: str = ""
    CLOUDINARY_API_KEY: str = ""
    CLOUDINARY_API_SECRET: str = ""

    # Admin Password (bcrypt hash, see scripts/create_admin_user.py)
    ADMIN_PASSWORD_HASH: str = ""

    # Uploads
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024
    PLACEHOLDER_IMAGE_URL: str = "/images/placeholder.svg"

    # Used by the admin editor gateway
    ADMIN_API_BASE_URL: str = "http://localhost:8000"
    ADMIN_API_TIMEOUT: float = 10.0

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


# Global settings instance
settings = Settings()
