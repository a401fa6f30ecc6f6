from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="AGROERP_",
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./data/agroerp.db"

    # Auth
    secret_key: str = "dev-secret-change-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: list[str] = ["http://localhost:5173"]
    log_level: str = "INFO"

    # Reports
    report_cache_ttl_seconds: int = 300

    # Valuation ($/kg). Stand-ins until a market price feed is wired in.
    livestock_placeholder_prices: dict[str, float] = {
        "weighted_avg": 500.0,
        "historical": 480.0,
        "market": 520.0,
        "mixed": 500.0,
    }
    livestock_default_price: float = 500.0

    @property
    def is_sqlite(self) -> bool:
        return "sqlite" in self.database_url
