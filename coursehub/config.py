from pydantic_settings import BaseSettings
from pydantic import Field, validator
from dotenv import load_dotenv
from typing import Optional
import logging
import sys

load_dotenv()
logger = logging.getLogger(__name__)

URI_SCHEMES = {
    'MONGO_URI': ('mongodb://', 'mongodb+srv://'),
    'REDIS_URL': ('redis://',),
}

def _check_scheme(name: str, value: str) -> str:
    if not value.startswith(URI_SCHEMES[name]):
        raise ValueError(f'{name} must start with one of {", ".join(URI_SCHEMES[name])}')
    return value

class Settings(BaseSettings):
    # Required
    MONGO_URI: str = Field(..., description="MongoDB connection URI, including the database name")
    REDIS_URL: str = Field(..., description="Redis URL for sessions, revoked tokens and flash data")
    JWT_SECRET: str = Field(..., description="JWT signing key (minimum 32 characters)")

    # Tokens
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=15, ge=1, le=1440)
    REFRESH_TOKEN_EXPIRE_DAYS: int = Field(default=7, ge=1, le=30)

    # Uploaded thumbnails, lesson videos and lesson materials
    MEDIA_ROOT: str = Field(default="storage")

    # Courses ranked on the home page
    POPULAR_COURSES_LIMIT: int = Field(default=4, ge=1, le=50)

    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=False)

    @validator('JWT_SECRET')
    def validate_jwt_secret(cls, v):
        if len(v) < 32:
            raise ValueError('JWT_SECRET must be at least 32 characters long')
        return v

    @validator('MONGO_URI')
    def validate_mongo_uri(cls, v):
        return _check_scheme('MONGO_URI', v)

    @validator('REDIS_URL')
    def validate_redis_url(cls, v):
        return _check_scheme('REDIS_URL', v)

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def log_level(self) -> str:
        return "DEBUG" if self.DEBUG else "INFO"

    @property
    def log_file(self) -> Optional[str]:
        return "logs/app.log" if self.is_production else None

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

try:
    settings = Settings()
except Exception as e:
    logger.critical(f"Failed to load configuration: {str(e)}")
    sys.exit(1)
