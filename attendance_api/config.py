from pydantic_settings import BaseSettings
from typing import List, Optional
from pydantic import Field

class Settings(BaseSettings):
    APP_NAME: str = Field("Employee Attendance System")
    ENVIRONMENT: str = Field("development")

    SECRET_KEY: str = Field("change-me-in-production")
    ALGORITHM: str = Field("HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(60 * 24)

    DATABASE_URL: str = Field("sqlite+aiosqlite:///./attendance.db")
    SQLALCHEMY_DATABASE_URL: Optional[str] = None
    SQL_ECHO: bool = Field(False)

    LOG_LEVEL: str = Field("INFO")
    API_PREFIX: str = Field("/api")
    FRONTEND_URL: str = Field("http://localhost:5173")

    # Attendance policy. Both default to the permissive rule.
    ONE_CHECKIN_PER_DAY: bool = Field(False)
    REQUIRE_LOCATION: bool = Field(False)

    # Bootstrap admin seeded at startup
    DEFAULT_ADMIN_NAME: str = Field("Admin")
    DEFAULT_ADMIN_MOBILE: Optional[str] = Field("9999999999")
    DEFAULT_ADMIN_EMPLOYEE_ID: Optional[str] = Field("ADMIN001")
    DEFAULT_ADMIN_PASSWORD: Optional[str] = None

    model_config = {
        "env_file": ".env",
        "extra": "allow",
    }

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

    @property
    def effective_database_url(self) -> str:
        return self.SQLALCHEMY_DATABASE_URL or self.DATABASE_URL or "sqlite+aiosqlite:///./attendance.db"

    @property
    def bootstrap_admin_password(self) -> Optional[str]:
        """
        Returns:
          - DEFAULT_ADMIN_PASSWORD when set
          - "admin123" in development
          - None otherwise → bootstrap is skipped
        """
        if self.DEFAULT_ADMIN_PASSWORD:
            return self.DEFAULT_ADMIN_PASSWORD
        return "admin123" if self.is_development else None

    @property
    def cors_origins(self) -> List[str]:
        if self.is_development:
            return ["http://localhost:5173", "http://localhost:3000", "http://127.0.0.1:5173"]
        return [origin.strip() for origin in self.FRONTEND_URL.split(",") if origin.strip()]

settings = Settings()
