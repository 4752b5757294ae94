# domain_agent/config.py
from dataclasses import dataclass
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"  # text | json
    ENABLE_FILE_LOGGING: bool = False

    DATABASE_URL: str
    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 5

    # Auth
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_DAYS: int = 30
    RESET_TOKEN_EXPIRE_MINUTES: int = 60

    CORS_ORIGINS: List[str] = Field(default_factory=lambda: ["http://localhost:5173"])
    CLIENT_URL: str = "http://localhost:5173"

    # Rate limiting (slowapi). Falls back to in-memory storage without Redis.
    REDIS_URL: Optional[str] = None
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_DEFAULT: str = "100 per 15 minutes"
    AUTH_RATE_LIMIT: str = "10/minute"

    # Stripe
    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""

    # Namecheap
    NAMECHEAP_API_USER: str = ""
    NAMECHEAP_API_KEY: str = ""
    NAMECHEAP_USERNAME: str = ""
    NAMECHEAP_CLIENT_IP: str = "127.0.0.1"
    NAMECHEAP_SANDBOX: bool = True

    # Gemini API Settings
    GEMINI_API_KEY: str = ""
    GEMINI_LLM_MODEL: str = "gemini-2.5-flash"

    # SMTP
    MAIL_HOST: str = "smtp.gmail.com"
    MAIL_PORT: int = 587
    MAIL_USERNAME: str = ""
    MAIL_PASSWORD: str = ""
    MAIL_FROM: str = "Domain Buying Agent <noreply@domainbuyingagent.com>"
    MAIL_SECURITY: str = "starttls"  # starttls | ssl | none

    EXTERNAL_TIMEOUT_SECONDS: float = 30.0

    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')


settings = Settings()


# ============================================================================
# ADAPTER CONFIGURATION
# ============================================================================
# Adapters receive one of these instead of reading settings directly,
# so tests can build them with throwaway values.

@dataclass(frozen=True)
class StripeConfig:
    secret_key: str
    webhook_secret: str
    timeout_seconds: float = 30.0


@dataclass(frozen=True)
class RegistrarConfig:
    api_user: str
    api_key: str
    username: str
    client_ip: str
    sandbox: bool = True
    timeout_seconds: float = 30.0


@dataclass(frozen=True)
class GeminiConfig:
    api_key: str
    model: str = "gemini-2.5-flash"
    timeout_seconds: float = 30.0


@dataclass(frozen=True)
class SmtpConfig:
    host: str
    port: int
    username: str
    password: str
    sender: str
    timeout_seconds: float = 30.0
    security: str = "starttls"


def stripe_config_from_settings(s: Settings = settings) -> StripeConfig:
    return StripeConfig(
        secret_key=s.STRIPE_SECRET_KEY,
        webhook_secret=s.STRIPE_WEBHOOK_SECRET,
        timeout_seconds=s.EXTERNAL_TIMEOUT_SECONDS,
    )


def registrar_config_from_settings(s: Settings = settings) -> RegistrarConfig:
    return RegistrarConfig(
        api_user=s.NAMECHEAP_API_USER,
        api_key=s.NAMECHEAP_API_KEY,
        username=s.NAMECHEAP_USERNAME,
        client_ip=s.NAMECHEAP_CLIENT_IP,
        sandbox=s.NAMECHEAP_SANDBOX,
        timeout_seconds=s.EXTERNAL_TIMEOUT_SECONDS,
    )


def gemini_config_from_settings(s: Settings = settings) -> GeminiConfig:
    return GeminiConfig(
        api_key=s.GEMINI_API_KEY,
        model=s.GEMINI_LLM_MODEL,
        timeout_seconds=s.EXTERNAL_TIMEOUT_SECONDS,
    )


def smtp_config_from_settings(s: Settings = settings) -> SmtpConfig:
    return SmtpConfig(
        host=s.MAIL_HOST,
        port=s.MAIL_PORT,
        username=s.MAIL_USERNAME,
        password=s.MAIL_PASSWORD,
        sender=s.MAIL_FROM,
        security=s.MAIL_SECURITY.lower(),
        timeout_seconds=s.EXTERNAL_TIMEOUT_SECONDS,
    )
