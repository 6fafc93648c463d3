from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    # Application settings
    app_name: str = "OrderDesk"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"

    # Database settings
    database_url: str = "sqlite+aiosqlite:///./orderdesk.db"

    # Principal decoding (tokens are issued elsewhere)
    secret_key: str = "change-me"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    # Tenant context
    org_header_name: str = "X-Organization-ID"

    # Order numbering
    order_number_prefix: str = "ORD"
    order_number_padding: int = 6

    # Transparent retry of transient write conflicts
    conflict_max_retries: int = 3
    conflict_retry_backoff_ms: list[int] = [25, 50, 100]

    # Listing
    default_page_limit: int = 50
    max_page_limit: int = 200
    top_products_default_limit: int = 10

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # CORS settings
    allowed_origins: list[str] = ["http://localhost:3000", "http://localhost:8000"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


settings = Settings()
