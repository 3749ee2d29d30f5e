from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Engine settings loaded from environment variables"""
    
    # Redis (variant cache)
    REDIS_URL: str = "redis://localhost:6379"
    
    # Logging
    LOG_LEVEL: str = "INFO"
    
    # Bayesian Knowledge Tracing parameters (fixed per deployment)
    BKT_P_INIT: float = 0.3
    BKT_P_LEARN: float = 0.1
    BKT_P_SLIP: float = 0.1
    BKT_P_GUESS: float = 0.25
    
    # Variant readiness polling
    VARIANT_POLL_INTERVAL_MS: int = 2000
    VARIANT_POLL_TIMEOUT_MS: int = 30000
    VARIANT_CACHE_TTL_DAYS: int = 90
    
    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
