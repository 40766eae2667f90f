from functools import lru_cache
from typing import Any, List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_CORS = ["*"]


def _parse_cors_origins(v: Any) -> List[str]:
    if v is None or v == "":
        return _DEFAULT_CORS.copy()
    if isinstance(v, list):
        return [x for x in v if isinstance(x, str) and x.strip()]
    s = str(v).strip()
    if not s:
        return _DEFAULT_CORS.copy()
    if s.startswith("["):
        import json
        try:
            out = json.loads(s)
        except ValueError:
            return _DEFAULT_CORS.copy()
        return [x for x in out if isinstance(x, str) and x.strip()] or _DEFAULT_CORS.copy()
    return [x.strip() for x in s.split(",") if x.strip()] or _DEFAULT_CORS.copy()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # App
    env: str = Field(default="development", description="ENV")
    debug: bool = Field(default=False, description="DEBUG")

    # MongoDB
    mongodb_uri: str = Field(default="mongodb://localhost:27017", alias="MONGODB_URI")
    mongodb_db_name: str = Field(default="rewards", alias="MONGODB_DB_NAME")

    # Sentry
    sentry_dsn: str | None = Field(default=None, alias="SENTRY_DSN")

    # CORS: env as string, exposed as list
    cors_origins_raw: str = Field(
        default="*",
        alias="CORS_ORIGINS",
        description="Comma-separated or JSON list",
    )

    @property
    def cors_origins(self) -> List[str]:
        return _parse_cors_origins(getattr(self, "cors_origins_raw", None))

    # Referral program
    referral_link_base: str = Field(default="https://t.me/winzoplay_bot?start=", alias="REFERRAL_LINK_BASE")
    referral_commission: float = Field(default=3.0, alias="REFERRAL_COMMISSION")
    referral_code_attempts: int = Field(default=10, alias="REFERRAL_CODE_ATTEMPTS")

    # Wallet / withdrawals
    default_currency: str = Field(default="INR", alias="DEFAULT_CURRENCY")
    withdrawal_fee: float = Field(default=3.0, alias="WITHDRAWAL_FEE")
    withdrawal_eta: str = Field(default="2-4 hours", alias="WITHDRAWAL_ETA")

    max_page_size: int = Field(default=200, alias="MAX_PAGE_SIZE")


@lru_cache
def get_settings() -> Settings:
    return Settings()
