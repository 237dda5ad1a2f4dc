import pytest

from app.db.url import normalize_database_url


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("postgres://u:p@db:5432/loan", "postgresql+asyncpg://u:p@db:5432/loan"),
        ("postgresql://u:p@db/loan", "postgresql+asyncpg://u:p@db/loan"),
        ("postgresql+psycopg2://u:p@db/loan", "postgresql+asyncpg://u:p@db/loan"),
        ("postgresql+asyncpg://u:p@db/loan", "postgresql+asyncpg://u:p@db/loan"),
        ("postgresql://u:p@db/loan?sslmode=require", "postgresql+asyncpg://u:p@db/loan?ssl=require"),
        ("postgresql://u:p@db/loan?sslmode=disable", "postgresql+asyncpg://u:p@db/loan?ssl=disable"),
    ],
)
def test_normalize_database_url(raw, expected):
    assert normalize_database_url(raw) == expected


def test_blank_url_is_left_alone():
    assert normalize_database_url("  ") == ""
