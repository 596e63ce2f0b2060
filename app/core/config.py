from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    APP_ENV: str = "local"
    APP_NAME: str = "scholarship-forms"

    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:8081"

    DATABASE_URL: str

    S3_ENDPOINT: str
    S3_ACCESS_KEY: str
    S3_SECRET_KEY: str
    S3_BUCKET: str
    S3_REGION: str = "us-east-1"
    S3_USE_SSL: bool = False
    MAX_FILE_MB: int = 10
    MAX_FILES_PER_FIELD: int = 10
    ATTACHMENT_ALLOWED_MIME_TYPES: str = (
        "application/pdf,image/jpeg,image/jpg,image/png,"
        "application/msword,"
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document,"
        "application/vnd.ms-excel,"
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    UPLOAD_URL_TTL_SECONDS: int = 900
    # SigV4 presigned URLs cannot outlive 7 days
    FILE_URL_TTL_SECONDS: int = 7 * 24 * 3600

    # Validation errors shown one by one before the rest collapse into a count
    FORM_ERROR_DISPLAY_LIMIT: int = 3

    CLIENT_TIMEOUT_SECONDS: float = 30.0

    # Compose/infra vars that may exist in shared .env
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "scholarships"

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def allowed_mime_types(self) -> set[str]:
        return {m.strip().lower() for m in self.ATTACHMENT_ALLOWED_MIME_TYPES.split(",") if m.strip()}

settings = Settings()
