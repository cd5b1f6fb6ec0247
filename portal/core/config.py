from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "Customer Feedback Portal API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Empty string = "not set". Validators below reject blank values so a
    # missing env var is caught at startup with a clear error message.
    DATABASE_URL: str = ""

    # Comma-separated string of allowed CORS origins.
    # In .env: ALLOWED_ORIGINS=https://feedback.alliance.com,http://localhost:3000
    # Kept as str to avoid pydantic-settings attempting JSON parsing on list fields.
    ALLOWED_ORIGINS: str = ""

    # ── Auth ────────────────────────────────────────────────────────────────
    JWT_SECRET_KEY: str = ""
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_MINUTES: int = 60
    BCRYPT_ROUNDS: int = 12

    # Bootstrap admin, created on startup when both email and password are set
    ADMIN_NAME: str = "System Administrator"
    ADMIN_EMAIL: str = ""
    ADMIN_PASSWORD: str = ""

    # ── QR codes ────────────────────────────────────────────────────────────
    # Deep links printed into QR images point at the public frontend.
    PUBLIC_BASE_URL: str = "http://localhost:3000"
    QR_FILL_COLOR: str = "#DC2626"
    QR_BACK_COLOR: str = "#FFFFFF"
    QR_BOX_SIZE: int = 10
    QR_BORDER: int = 2

    RATE_LIMIT_ENABLED: bool = True

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator("ALLOWED_ORIGINS")
    @classmethod
    def allowed_origins_must_not_be_empty(cls, v: str) -> str:
        origins = [o.strip() for o in v.split(",") if o.strip()]
        if not origins:
            raise ValueError(
                "ALLOWED_ORIGINS is required. "
                "Set it in .env as a comma-separated list: "
                "ALLOWED_ORIGINS=https://feedback.alliance.com,http://localhost:3000"
            )
        return v

    @field_validator("DATABASE_URL")
    @classmethod
    def database_url_must_be_async(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("DATABASE_URL is required")
        if not v.startswith(("postgresql+asyncpg://", "sqlite+aiosqlite://")):
            raise ValueError(
                "DATABASE_URL must use the 'postgresql+asyncpg://' or "
                f"'sqlite+aiosqlite://' scheme. Got: '{v}'"
            )
        return v

    @field_validator("JWT_SECRET_KEY")
    @classmethod
    def jwt_secret_must_not_be_empty(cls, v: str, info) -> str:
        if not v.strip():
            raise ValueError(f"{info.field_name} is required and must not be empty")
        return v

    @field_validator("PUBLIC_BASE_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("BCRYPT_ROUNDS")
    @classmethod
    def bcrypt_rounds_in_range(cls, v: int) -> int:
        if not 4 <= v <= 31:
            raise ValueError(f"BCRYPT_ROUNDS must be between 4 and 31. Got: {v}")
        return v


settings = Settings()
