"""Settings validation."""

import pytest
from pydantic import ValidationError

from config import Settings

VALID = {
    "MONGO_URI": "mongodb://localhost:27017/coursehub",
    "REDIS_URL": "redis://localhost:6379/0",
    "JWT_SECRET": "s" * 32,
}


def test_defaults():
    settings = Settings(**VALID)
    assert settings.ACCESS_TOKEN_EXPIRE_MINUTES == 15
    assert settings.POPULAR_COURSES_LIMIT == 4
    assert settings.MEDIA_ROOT == "storage"
    assert settings.log_file is None


def test_production_logs_to_file():
    settings = Settings(**VALID, ENVIRONMENT="production", DEBUG=True)
    assert settings.log_file == "logs/app.log"
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize("field,value", [
    ("MONGO_URI", "postgres://localhost/db"),
    ("REDIS_URL", "http://localhost:6379"),
    ("JWT_SECRET", "too-short"),
])
def test_invalid_values_are_rejected(field, value):
    with pytest.raises(ValidationError):
        Settings(**{**VALID, field: value})
