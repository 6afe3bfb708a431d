"""
Application configuration
Reads settings from environment variables
"""
from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "Menu Recommendation Service"
    DEBUG: bool = False
    PORT: int = 8080
    LOG_LEVEL: str = "INFO"
    ENABLE_SCHEDULER: bool = True

    # Database
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str = "postgres"
    DB_PASSWORD: str = "root"
    DB_NAME: str = "restaurant"

    # SSL
    SSL_ENABLED: bool = False
    SSL_KEY_PATH: Optional[str] = "/certs/privkey.pem"
    SSL_CERT_PATH: Optional[str] = "/certs/fullchain.pem"

    # Recommendations
    RECOMMENDATION_DEFAULT_BUSINESS_TYPE: str = "food-delivery"
    RECOMMENDATION_DEFAULT_LIMIT: int = 10
    RECOMMENDATION_MAX_LIMIT: int = 50
    RECOMMENDATION_CANDIDATE_POOL: int = 500  # Max catalog items scored per request
    RECOMMENDATION_SEED: Optional[int] = None  # Pin exploration draws (tests, replays)
    RECOMMENDATION_RECORD_IMPRESSIONS: bool = True

    # Collaborator signals
    HISTORY_ORDER_LIMIT: int = 100
    HISTORY_DECAY_RATE: float = 0.05  # Per day, half-life ~14 days
    AFFINITY_ORDER_SAMPLE: int = 1000
    AFFINITY_MIN_SUPPORT: float = 0.01
    AFFINITY_MIN_CONFIDENCE: float = 0.1
    AFFINITY_MAX_RULES: int = 50
    BUNDLE_MIN_ORDERS: int = 3  # Orders an itemset must appear in
    COMPLETE_MEAL_DEFAULT_LIMIT: int = 5

    # Signal cache
    SIGNAL_CACHE_MAX_SIZE: int = 1000
    AFFINITY_CACHE_TTL: int = 3600  # 1 hour
    VELOCITY_CACHE_TTL: int = 600  # 10 minutes
    CACHE_CLEANUP_INTERVAL_MINUTES: int = 15

    @property
    def DATABASE_URL(self) -> str:
        """Construct database URL"""
        return f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


# Global settings instance
settings = Settings()
