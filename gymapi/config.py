from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional
from urllib.parse import quote_plus


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file="gymapi/.env",
        env_file_encoding="utf-8",
        extra="allow",
    )
    # Application
    APP_NAME: str = "Studio Booking API"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USERNAME: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DATABASE: str = "studio"

    # 설정되어 있으면 POSTGRES_* 값보다 우선
    DATABASE_URL: Optional[str] = None
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    @property
    def database_url(self) -> str:
        """Resolve the effective database URL"""
        if self.DATABASE_URL:
            return self.DATABASE_URL

        # URL encode the password to handle special characters
        encoded_password = quote_plus(self.POSTGRES_PASSWORD)
        return f"postgresql+psycopg2://{self.POSTGRES_USERNAME}:{encoded_password}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DATABASE}"

    # Auth (외부 인증 제공자가 발급한 JWT 검증용)
    AUTH_JWT_SECRET: str = ""
    JWT_ALGORITHM: str = "HS256"
    ADMIN_ROLE: str = "admin"

    # Notifications
    NOTIFICATION_BASE_URL: str = ""  # 비어 있으면 알림 전송 생략
    NOTIFICATION_TIMEOUT_SECONDS: float = 10.0

    # CORS
    ALLOWED_ORIGINS: List[str] = ["*"]


settings = Settings()
