"""
Application Configuration
"""
from pydantic_settings import BaseSettings
from typing import List, Optional
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "Sol de Maria Sales Dashboard"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Firebase
    FIREBASE_PROJECT_ID: Optional[str] = None
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None  # service-account JSON; ADC when unset

    # Firestore collections
    SALES_COLLECTION: str = "vendas"
    LOGISTICS_COLLECTION: str = "logistica"
    FEES_COLLECTION: str = "taxas"
    COSTS_COLLECTION: str = "custos"
    PACKAGING_COSTS_COLLECTION: str = "custos-embalagem"
    USERS_COLLECTION: str = "users"
    SETTINGS_COLLECTION: str = "configuracoes"
    SETTINGS_DOCUMENT: str = "main"

    # Remote data cache (seconds)
    CACHE_CAPACITY: int = 256
    SALES_CACHE_TTL: int = 5 * 60
    LOGISTICS_CACHE_TTL: int = 5 * 60
    FEES_CACHE_TTL: int = 15 * 60
    SALES_QUERY_LIMIT: int = 5000
    LOGISTICS_QUERY_LIMIT: int = 5000
    # Firestore caps a write batch at 500 operations
    WRITE_BATCH_SIZE: int = 450

    # Monthly report buckets are taken in this zone
    BUSINESS_TIMEZONE: str = "America/Sao_Paulo"

    # Generative AI (Gemini)
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-1.5-flash"
    GEMINI_API_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    GEMINI_TIMEOUT_SECONDS: float = 60.0
    CHAT_SNAPSHOT_LIMIT: int = 100

    # CORS / hosts
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:9002"]
    ALLOWED_HOSTS: List[str] = ["*"]

    # Rate Limiting
    RATE_LIMIT_PER_MINUTE: int = 100
    CHAT_RATE_LIMIT: str = "20/minute"

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
