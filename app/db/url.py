from __future__ import annotations

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

ASYNC_DRIVER = "postgresql+asyncpg"


def normalize_database_url(url: str) -> str:
    """Point postgres URLs at the asyncpg driver and translate libpq ssl options."""
    url = (url or "").strip()
    if not url:
        return url

    parts = urlsplit(url)
    scheme = parts.scheme
    if scheme in {"postgres", "postgresql", "postgresql+psycopg", "postgresql+psycopg2"}:
        scheme = ASYNC_DRIVER

    query = dict(parse_qsl(parts.query, keep_blank_values=True))
    if scheme == ASYNC_DRIVER:
        # asyncpg understands ``ssl`` but not libpq's ``sslmode``
        sslmode = query.pop("sslmode", None)
        if sslmode is not None and "ssl" not in query:
            normalized = sslmode.lower().strip()
            query["ssl"] = "disable" if normalized in {"disable", "allow"} else normalized

    new_query = urlencode(query, doseq=True)
    return urlunsplit((scheme, parts.netloc, parts.path, new_query, parts.fragment))
