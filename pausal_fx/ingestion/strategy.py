"""Abstractions for pluggable rate sources."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date

import requests

from pausal_fx.errors import SourceUnavailable
from pausal_fx.ingestion.models import ProviderQuoteSet, QuoteConvention
from pausal_fx.utils.logger import get_logger

LOGGER = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0
USER_AGENT = "pausal-fx-rate-fetcher/1.0"


class RateSource(ABC):
    """Contract for fetching one day of quotes from an authority.

    Implementations never retry; the resolver (or its caller) decides what to
    do with a failure. Sources hold an HTTP session between ``open()`` and
    ``close()`` and may be used as context managers.
    """

    name: str = ""
    base_currency: str = ""
    convention: QuoteConvention = QuoteConvention.UNITS_PER_BASE

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        self.timeout = timeout
        self._owns_session = session is None
        self.session: requests.Session | None = session

    @property
    def is_open(self) -> bool:
        return self.session is not None

    def open(self) -> "RateSource":
        if self.session is None:
            self.session = requests.Session()
            self.session.headers.update({"User-Agent": USER_AGENT})
            self._owns_session = True
        return self

    def close(self) -> None:
        if self.session is not None and self._owns_session:
            self.session.close()
        self.session = None

    def __enter__(self) -> "RateSource":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @abstractmethod
    def fetch_daily_quotes(self, rate_date: date) -> ProviderQuoteSet:
        """Return every quote the authority published for ``rate_date``."""

    def _get(self, url: str, params: dict[str, str]) -> requests.Response:
        if self.session is None:
            raise RuntimeError(f"{self.name} source was not opened before use")
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
        except requests.Timeout as exc:
            raise SourceUnavailable(self.name, f"timed out after {self.timeout}s") from exc
        except requests.RequestException as exc:
            raise SourceUnavailable(self.name, f"request to {url} failed: {exc}") from exc
        LOGGER.debug("Fetched %s (%s bytes)", response.url, len(response.content))
        return response

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, base={self.base_currency!r})"


__all__ = ["RateSource", "DEFAULT_TIMEOUT", "USER_AGENT"]
