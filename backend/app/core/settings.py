import os


DEV_JWT_SECRET = "photopro-dev-secret-do-not-use-in-production"


def _getenv(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None:
        return default
    value = value.strip()
    return value if value else default


def _getenv_bool(name: str, default: bool = False) -> bool:
    raw = _getenv(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "y", "on"}


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


class Settings:
    def __init__(self) -> None:
        self.environment = (_getenv("ENVIRONMENT", "development") or "development").lower()
        self.log_level = (_getenv("LOG_LEVEL", "INFO") or "INFO").upper()
        self.database_url = _getenv("DATABASE_URL", "sqlite:///./photopro.db") or "sqlite:///./photopro.db"
        self.db_auto_create = _getenv_bool("DB_AUTO_CREATE", default=True)
        self.cors_allow_origins = _getenv("CORS_ALLOW_ORIGINS")
        self.app_base_url = (_getenv("APP_BASE_URL", "http://localhost:5173") or "http://localhost:5173").rstrip("/")

        self.jwt_secret = _getenv("JWT_SECRET", DEV_JWT_SECRET) or DEV_JWT_SECRET
        self.jwt_ttl_hours = _getenv_int("JWT_TTL_HOURS", 12)

        self.airwallex_client_id = _getenv("AIRWALLEX_CLIENT_ID")
        self.airwallex_api_key = _getenv("AIRWALLEX_API_KEY")
        self.airwallex_webhook_secret = _getenv("AIRWALLEX_WEBHOOK_SECRET")
        self.airwallex_webhook_tolerance_s = _getenv_int("AIRWALLEX_WEBHOOK_TOLERANCE_S", 300)
        self.airwallex_base_url = (_getenv("AIRWALLEX_BASE_URL") or self._default_airwallex_base_url()).rstrip("/")
        self.airwallex_timeout_s = _getenv_int("AIRWALLEX_TIMEOUT_S", 30)
        self.billing_currency = (_getenv("BILLING_CURRENCY", "USD") or "USD").upper()

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def airwallex_env(self) -> str:
        return "prod" if self.airwallex_base_url == "https://api.airwallex.com" else "demo"

    def _default_airwallex_base_url(self) -> str:
        if self.is_production:
            return "https://api.airwallex.com"
        return "https://api-demo.airwallex.com"

    def resolved_cors_origins(self) -> list[str]:
        raw = self.cors_allow_origins
        if raw is None:
            return ["http://localhost:5173", "http://localhost:8000"]
        if raw.strip() == "*":
            return ["*"]
        origins = [o.strip() for o in raw.split(",") if o.strip()]
        return origins


settings = Settings()
