"""Runtime configuration: database location, income limits and providers."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Callable, Mapping
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from pausal_fx.db import default_sqlite_url
from pausal_fx.ingestion.strategy import DEFAULT_TIMEOUT

# Serbian flat-rate taxation thresholds, in RSD.
DEFAULT_CALENDAR_YEAR_LIMIT = Decimal("6000000")
DEFAULT_ROLLING_365_LIMIT = Decimal("8000000")

ENV_PREFIX = "PAUSAL_"


class DatabaseBackend(str, Enum):
    """Supported database engines for the rate cache."""

    SQLITE = "sqlite"
    MYSQL = "mysql"
    POSTGRES = "postgres"
    MONGODB = "mongodb"

    @classmethod
    def resolve_backend_and_scheme(cls, scheme: str) -> tuple["DatabaseBackend", str]:
        """Return backend enum + canonical scheme used in connection URLs."""

        if not scheme:
            raise ValueError("DB_URL must include a scheme (e.g. sqlite:// or postgres://)")
        scheme_lower = scheme.lower()
        base_scheme, _, driver = scheme_lower.partition("+")
        if base_scheme in {"postgresql", "postgres"}:
            canonical_scheme = f"postgresql+{driver}" if driver else "postgresql"
            return cls.POSTGRES, canonical_scheme
        if base_scheme == "sqlite":
            return cls.SQLITE, "sqlite"
        if base_scheme == "mysql":
            # Preserve optional driver hints such as ``mysql+pymysql``.
            canonical_scheme = scheme_lower if driver else "mysql"
            return cls.MYSQL, canonical_scheme
        if base_scheme == "mongodb":
            # Keep srv-style schemes intact so pymongo can route via DNS.
            canonical_scheme = scheme_lower if driver else "mongodb"
            return cls.MONGODB, canonical_scheme
        raise ValueError(
            "Unsupported database backend. Supported values are SQLite, MySQL, "
            "Postgres, and MongoDB."
        )


@dataclass(slots=True)
class DatabaseConnectionInfo:
    """Represents how the rate cache should talk to the persistence layer."""

    backend: DatabaseBackend
    url: str
    name: str | None
    host: str | None
    port: int | None

    @classmethod
    def from_url(cls, url: str) -> "DatabaseConnectionInfo":
        """Create a connection object by parsing a database URL/DSN."""

        scheme = urlparse(url).scheme
        if not scheme or "://" not in url:
            raise ValueError("DB_URL must include a scheme (e.g. sqlite:// or postgres://)")
        backend, canonical_scheme = DatabaseBackend.resolve_backend_and_scheme(scheme)
        if backend is DatabaseBackend.SQLITE:
            # ``sqlite:////abs/path.db`` would lose a slash in a urlunparse round trip,
            # so the file path is sliced out of the raw URL instead.
            remainder = url.split("://", 1)[1]
            name = remainder[1:] if remainder.startswith("/") else remainder
            return cls(backend=backend, url=url, name=name or None, host=None, port=None)

        cleaned_url, query_db_name = cls._normalise_database_name_parameter(url)
        parsed = urlparse(cleaned_url)
        if parsed.scheme != canonical_scheme:
            parsed = parsed._replace(scheme=canonical_scheme)
            cleaned_url = urlunparse(parsed)
        resolved_name = parsed.path[1:] if parsed.path and parsed.path != "/" else None
        return cls(
            backend=backend,
            url=cleaned_url,
            name=resolved_name or query_db_name,
            host=parsed.hostname,
            port=parsed.port,
        )

    @staticmethod
    def _normalise_database_name_parameter(url: str) -> tuple[str, str | None]:
        """Support a ``DATABASE_NAME`` query parameter for MongoDB style URLs."""

        patched_url = re.sub(r"(?i)(?<![?&])DATABASE_NAME=", "&DATABASE_NAME=", url)
        parsed = urlparse(patched_url)
        remaining_pairs: list[tuple[str, str]] = []
        database_name: str | None = None
        for key, value in parse_qsl(parsed.query, keep_blank_values=True):
            if key.lower() == "database_name":
                database_name = value or database_name
                continue
            remaining_pairs.append((key, value))

        new_path = parsed.path
        if (not new_path or new_path == "/") and database_name:
            new_path = f"/{database_name}"
        cleaned = parsed._replace(query=urlencode(remaining_pairs, doseq=True), path=new_path)
        return urlunparse(cleaned), database_name

    @property
    def is_sqlite(self) -> bool:
        return self.backend is DatabaseBackend.SQLITE

    @property
    def is_mongodb(self) -> bool:
        return self.backend is DatabaseBackend.MONGODB


@dataclass(slots=True)
class Settings:
    """Everything the facade needs to compose a resolver and run checks."""

    db_url: str = ""
    calendar_year_limit: Decimal = DEFAULT_CALENDAR_YEAR_LIMIT
    rolling_365_limit: Decimal = DEFAULT_ROLLING_365_LIMIT
    reporting_currency: str = "RSD"
    payment_currency: str = "EUR"
    provider: str = "nbs"
    fallback_provider: str | None = "ecb"
    timeout: float = DEFAULT_TIMEOUT

    def __post_init__(self) -> None:
        self.db_url = self.db_url or default_sqlite_url()
        self.calendar_year_limit = Decimal(str(self.calendar_year_limit))
        self.rolling_365_limit = Decimal(str(self.rolling_365_limit))
        if self.calendar_year_limit <= 0 or self.rolling_365_limit <= 0:
            raise ValueError("income limits must be positive")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        self.reporting_currency = self.reporting_currency.upper()
        self.payment_currency = self.payment_currency.upper()
        self.provider = self.provider.lower()
        self.fallback_provider = self.fallback_provider.lower() if self.fallback_provider else None

    @property
    def connection_info(self) -> DatabaseConnectionInfo:
        return DatabaseConnectionInfo.from_url(self.db_url)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from ``PAUSAL_*`` environment variables."""

        env = os.environ if environ is None else environ
        kwargs: dict[str, object] = {}
        for key, (field_name, convert) in _ENV_FIELDS.items():
            raw = env.get(f"{ENV_PREFIX}{key}")
            if raw is None:
                continue
            value = raw.strip()
            if not value:
                # An explicitly empty fallback disables it.
                if field_name == "fallback_provider":
                    kwargs[field_name] = None
                continue
            kwargs[field_name] = convert(value)
        return cls(**kwargs)  # type: ignore[arg-type]


def _parse_amount(value: str) -> Decimal:
    return Decimal(value.replace("_", "").replace(",", ""))


_ENV_FIELDS: dict[str, tuple[str, Callable[[str], object]]] = {
    "DB_URL": ("db_url", str),
    "CALENDAR_YEAR_LIMIT": ("calendar_year_limit", _parse_amount),
    "ROLLING_365_LIMIT": ("rolling_365_limit", _parse_amount),
    "REPORTING_CURRENCY": ("reporting_currency", str),
    "PAYMENT_CURRENCY": ("payment_currency", str),
    "PROVIDER": ("provider", str),
    "FALLBACK_PROVIDER": ("fallback_provider", str),
    "HTTP_TIMEOUT": ("timeout", float),
}


__all__ = [
    "DEFAULT_CALENDAR_YEAR_LIMIT",
    "DEFAULT_ROLLING_365_LIMIT",
    "DatabaseBackend",
    "DatabaseConnectionInfo",
    "Settings",
]
