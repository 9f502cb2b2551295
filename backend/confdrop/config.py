"""Application configuration from environment variables."""
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All config comes from env vars or .env file."""

    API_HOST: str = "0.0.0.0"
    API_PORT: int = 3000
    CORS_ORIGINS: str = "*"
    LOG_LEVEL: str = "INFO"

    # bcrypt hash of the admin code. Generate with: confdrop hash-code <code>
    ADMIN_HASH: str = ""
    ADMIN_CODE_LENGTH: int = 14

    DATA_FILE: Path = Path("./data/files.json")
    UPLOAD_DIR: Path = Path("./uploads")
    PUBLIC_DIR: Path = Path("./public")

    MAX_UPLOAD_BYTES: int = 50 * 1024 * 1024
    ALLOWED_EXTENSIONS: str = ".ovpn,.conf,.config,.txt,.crt,.key,.pem,.zip,.rar,.7z"

    # Limits use the "limits" notation, e.g. "5/15 minutes"
    RATE_LIMIT_ENABLED: bool = True
    LOGIN_RATE_LIMIT: str = "5/15 minutes"
    PUBLIC_RATE_LIMIT: str = "100/minute"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def allowed_extensions(self) -> set[str]:
        exts = set()
        for ext in self.ALLOWED_EXTENSIONS.split(","):
            ext = ext.strip().lower()
            if ext:
                exts.add(ext if ext.startswith(".") else f".{ext}")
        return exts

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
