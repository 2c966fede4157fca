from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "Stock Ledger"
    DATABASE_URL: str = "sqlite:///./stockledger.db"

    # Seconds to wait for a tenant's write scope before giving up
    LOCK_TIMEOUT_SECONDS: float = 10.0

    # Stock defaults
    DEFAULT_ALERT_THRESHOLD: float = 5
    DEFAULT_CATEGORY: str = "other"
    NEW_PRODUCT_CATEGORY: str = "new"  # items created by order validation

    # Sales
    DEFAULT_CLIENT: str = "anonymous"

    HISTORY_LIMIT: int = 200

    LOG_LEVEL: str = "INFO"

    model_config = {"env_file": ".env"}


settings = Settings()
