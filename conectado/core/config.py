import json

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str

    REDIS_URL: str = "redis://redis:6379/0"

    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    LOGIN_RATE_LIMIT: str = "10/minute"

    BACKEND_URL: str = "http://localhost:8000"

    BACKEND_CORS_ORIGINS: str = '["http://localhost:5173","http://localhost:3000"]'

    API_V1_PREFIX: str = "/api"
    PROJECT_NAME: str = "Voluntariado Conectado API"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    UPLOAD_DIR: str = "./uploads"

    # Storage backend: "local" for development, "s3" for any S3-compatible bucket
    STORAGE_BACKEND: str = "local"
    S3_ENDPOINT_URL: str = ""
    S3_ACCESS_KEY_ID: str = ""
    S3_SECRET_ACCESS_KEY: str = ""
    S3_BUCKET_NAME: str = "conectado-uploads"
    S3_PUBLIC_URL: str = ""

    # Messaging
    MESSAGE_ATTACHMENT_MAX_BYTES: int = 5 * 1024 * 1024
    MESSAGE_EDIT_WINDOW_MINUTES: int = 15
    SEND_MESSAGE_RATE_LIMIT: str = "30/minute"

    # Realtime
    PRESENCE_OFFLINE_GRACE_SECONDS: float = 5.0
    NOTIFICATION_FANOUT_CONCURRENCY: int = 10

    UNREAD_COUNT_CACHE_TTL_SECONDS: int = 30

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    @property
    def cors_origins(self) -> list[str]:
        if isinstance(self.BACKEND_CORS_ORIGINS, str):
            try:
                parsed: list[str] = json.loads(self.BACKEND_CORS_ORIGINS)
                return parsed
            except json.JSONDecodeError:
                return ["http://localhost:5173", "http://localhost:3000"]
        return self.BACKEND_CORS_ORIGINS


settings = Settings()
