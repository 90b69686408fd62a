import pytest
from pydantic import ValidationError

from quote_engine.config import Settings


def test_postgres_urls_use_psycopg3_driver():
    s = Settings(DATABASE_URL="postgres://user:pw@db:5432/quotes")
    assert s.database_url == "postgresql+psycopg://user:pw@db:5432/quotes"


def test_cors_origins_accept_csv_and_json():
    s = Settings(CORS_ORIGINS="http://a.example/, http://b.example")
    assert s.cors_origins == ["http://a.example", "http://b.example"]

    s = Settings(CORS_ORIGINS='["http://c.example"]')
    assert s.cors_origins == ["http://c.example"]


def test_api_prefix_gets_leading_slash():
    assert Settings(API_V1_STR="api/v2").api_prefix == "/api/v2"
    assert Settings(API_V1_STR="C:/Program Files/Git/api/v1").api_prefix == "/api/v1"


def test_docs_enabled_outside_production():
    assert Settings(ENVIRONMENT="dev").enable_docs is True


def test_weak_secret_is_refused():
    with pytest.raises(ValidationError):
        Settings(SECRET_KEY="change-me")


def test_sqlite_is_refused_in_production():
    with pytest.raises(ValidationError):
        Settings(
            ENVIRONMENT="prod",
            DATABASE_URL="sqlite:///./quotes.db",
            CORS_ORIGINS="https://app.example",
        )
