import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()

logger = logging.getLogger(__name__)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid integer for %s: %r, using default %d", name, raw, default)
        return default


class Settings(BaseModel):
    database_url: str = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
    database_name: str = os.getenv("DATABASE_NAME", "shop")

    jwt_secret: str = os.getenv("JWT_SECRET", "devsecret")
    jwt_algo: str = os.getenv("JWT_ALGO", "HS256")
    jwt_expire_hours: int = _int_env("JWT_EXPIRE_HOURS", 24)
    admin_jwt_expire_hours: int = _int_env("ADMIN_JWT_EXPIRE_HOURS", 4)

    bcrypt_rounds: int = _int_env("BCRYPT_ROUNDS", 10)
    admin_bcrypt_rounds: int = _int_env("ADMIN_BCRYPT_ROUNDS", 12)

    app_env: str = os.getenv("APP_ENV", "production")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    resend_api_key: str = os.getenv("RESEND_API_KEY", "").strip()
    sender_email: str = os.getenv("SENDER_EMAIL", "onboarding@resend.dev")
    frontend_url: str = os.getenv("FRONTEND_URL", "http://localhost:5173")

    max_failed_logins: int = _int_env("MAX_FAILED_LOGINS", 5)
    lockout_minutes: int = _int_env("LOCKOUT_MINUTES", 15)
    rate_limit_requests: int = _int_env("RATE_LIMIT_REQUESTS", 20)
    rate_limit_window_seconds: int = _int_env("RATE_LIMIT_WINDOW_SECONDS", 60)

    @property
    def is_development(self) -> bool:
        return self.app_env.strip().lower() == "development"


settings = Settings()
