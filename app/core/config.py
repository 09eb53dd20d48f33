# app/core/config.py
from typing import List, Union, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator


class Settings(BaseSettings):
    # ==== Інфраструктура ====
    database_url: str = "postgresql+asyncpg://app:app@db:5432/helpdesk"
    redis_url: str = "redis://redis:6379/0"

    # ==== Нотифікації (RQ) ====
    notifications_enabled: bool = True     # False → лише in-app, без черги
    notifications_queue: str = "notifications"
    webhook_url: Optional[str] = None
    webhook_secret: Optional[str] = None

    # ==== Безпека / Auth ====
    jwt_secret: str = "changeme"
    jwt_expires_min: int = 60  # 1 година

    # ==== CORS ====
    # CORS_ORIGINS=http://localhost:3000,http://127.0.0.1:3000,...
    cors_origins: Union[str, List[str]] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    # ==== Політика реєстрації ====
    allow_self_signup: bool = True

    # ==== Bootstrap Admin / Demo Users ====
    admin_email: str = "admin@example.com"
    admin_password: str = "ChangeMe123!"
    admin_name: str = "Admin"
    create_demo_technician: bool = True
    create_demo_client: bool = True

    # ==== Логування / Оточення ====
    env: str = "dev"          # dev|staging|prod
    log_level: str = "INFO"   # DEBUG|INFO|WARNING|ERROR

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("[") and s.endswith("]"):
                import json
                try:
                    parsed = json.loads(s)
                except ValueError:
                    parsed = None
                if isinstance(parsed, list):
                    return [str(i).strip() for i in parsed if str(i).strip()]
            return [i.strip() for i in s.split(",") if i.strip()]
        return v


settings = Settings()
