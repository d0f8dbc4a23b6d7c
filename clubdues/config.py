import os
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    app_env: str
    database_url: str
    secret_key: str
    access_token_expire_days: int
    cors_origins: List[str]
    storage_backend: str
    upload_dir: str
    cloudinary_cloud_name: Optional[str]
    cloudinary_api_key: Optional[str]
    cloudinary_api_secret: Optional[str]
    cloudinary_folder: str
    smtp_host: Optional[str]
    smtp_port: Optional[int]
    smtp_user: Optional[str]
    smtp_pass: Optional[str]
    smtp_from: Optional[str]
    default_admin_username: str
    default_admin_password: Optional[str]
    default_admin_email: Optional[str]
    bcrypt_rounds: int
    log_level: str
    log_dir: Optional[str]

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_port and self.smtp_user and self.smtp_pass)


@lru_cache
def get_settings() -> Settings:
    app_env = os.getenv("APP_ENV", "development")
    secret_key = os.getenv("SECRET_KEY")
    if not secret_key:
        if app_env != "development":
            raise RuntimeError("SECRET_KEY environment variable is not set")
        secret_key = "dev-secret-change-me"

    smtp_port = os.getenv("SMTP_PORT")
    return Settings(
        app_env=app_env,
        database_url=os.getenv("DATABASE_URL", "sqlite:///./club.db"),
        secret_key=secret_key,
        access_token_expire_days=int(os.getenv("ACCESS_TOKEN_EXPIRE_DAYS", "7")),
        cors_origins=_split_csv(os.getenv("CORS_ORIGINS", "")),
        storage_backend=os.getenv("STORAGE_BACKEND", "local").lower(),
        upload_dir=os.getenv("UPLOAD_DIR", "./uploads"),
        cloudinary_cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME"),
        cloudinary_api_key=os.getenv("CLOUDINARY_API_KEY"),
        cloudinary_api_secret=os.getenv("CLOUDINARY_API_SECRET"),
        cloudinary_folder=os.getenv("CLOUDINARY_FOLDER", "club-management"),
        smtp_host=os.getenv("SMTP_HOST"),
        smtp_port=int(smtp_port) if smtp_port else None,
        smtp_user=os.getenv("SMTP_USER"),
        smtp_pass=os.getenv("SMTP_PASS"),
        smtp_from=os.getenv("SMTP_FROM"),
        default_admin_username=os.getenv("DEFAULT_ADMIN_USERNAME", "admin"),
        default_admin_password=os.getenv("DEFAULT_ADMIN_PASSWORD"),
        default_admin_email=os.getenv("DEFAULT_ADMIN_EMAIL", "admin@club.com"),
        bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", "12")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_dir=os.getenv("LOG_DIR"),
    )
