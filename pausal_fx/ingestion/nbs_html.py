"""National Bank of Serbia middle exchange rates scraped from the public web app."""

from __future__ import annotations

import re
from datetime import date
from typing import Iterable

import pandas as pd
from bs4 import BeautifulSoup

from pausal_fx.errors import NoData, SourceUnavailable
from pausal_fx.ingestion.models import ProviderQuoteSet, QuoteConvention
from pausal_fx.ingestion.strategy import RateSource
from pausal_fx.utils.logger import get_logger

LOGGER = get_logger(__name__)

NBS_PAGE_URL = "https://webappcenter.nbs.rs/ExchangeRateWebApp/ExchangeRate/IndexByDate"
NBS_DATE_FORMAT = "%d.%m.%Y."
# List type 3 is the official middle rate list.
NBS_MIDDLE_RATE_LIST = "3"
NBS_SOURCE_NAME = "nbs"

_CODE_PATTERN = re.compile(r"^[A-Z]{3}$")
_COLUMNS = ("code", "numeric_code", "country", "unit", "rate")
_HEADER_KEYWORDS: dict[str, set[str]] = {
    "code": {"oznaka", "currency code"},
    "unit": {"važi za", "vazi za", "unit"},
    "rate": {"srednji", "middle"},
}


def _cell_text(cell) -> str:
    return " ".join(cell.stripped_strings).strip()


def _parse_number(value: object) -> float | None:
    """Parse NBS numbers such as ``117,1753`` or ``1.234,50``."""

    if value is None:
        return None
    cleaned = re.sub(r"[^0-9,.-]", "", str(value))
    if cleaned.rfind(",") > cleaned.rfind("."):
        cleaned = cleaned.replace(".", "").replace(",", ".")
    else:
        cleaned = cleaned.replace(",", "")
    try:
        return float(cleaned)
    except ValueError:
        return None


def _find_column(columns: Iterable[object], keywords: set[str]) -> object | None:
    for column in columns:
        lower = str(column).lower()
        if any(keyword in lower for keyword in keywords):
            return column
    return None


def _table_frame(table) -> pd.DataFrame | None:
    headers = [_cell_text(th) for th in table.find_all("th") if _cell_text(th)]
    rows: list[list[str]] = []
    for tr in table.find_all("tr"):
        cols = tr.find_all("td")
        if not cols:
            continue
        rows.append([_cell_text(col) for col in cols])
    if not rows:
        return None
    width = max(len(row) for row in rows)
    rows = [row + [""] * (width - len(row)) for row in rows]
    if headers and len(headers) == width:
        frame = pd.DataFrame(rows, columns=headers)
        mapped = {
            key: _find_column(frame.columns, keywords) for key, keywords in _HEADER_KEYWORDS.items()
        }
        if all(column is not None for column in mapped.values()):
            return frame.rename(columns={column: key for key, column in mapped.items()})
    if width < len(_COLUMNS):
        return None
    frame = pd.DataFrame([row[: len(_COLUMNS)] for row in rows], columns=list(_COLUMNS))
    return frame


def parse_nbs_table(html: str, rate_date: date) -> ProviderQuoteSet:
    """Parse the NBS "IndexByDate" page into per-unit RSD quotes.

    Every row carries a lot size (``Važi za``), e.g. JPY is quoted per 100
    units, so the middle rate is divided by it before it is returned.
    """

    soup = BeautifulSoup(html, "html.parser")
    frames = [frame for frame in map(_table_frame, soup.find_all("table")) if frame is not None]
    if not frames:
        raise SourceUnavailable(NBS_SOURCE_NAME, "exchange rate table not found in response")

    quotes: dict[str, float] = {}
    for frame in frames:
        for _, row in frame.iterrows():
            code = str(row.get("code", "")).strip().upper()
            if not _CODE_PATTERN.match(code):
                continue
            unit = _parse_number(row.get("unit"))
            rate = _parse_number(row.get("rate"))
            if not unit or not rate or unit <= 0 or rate <= 0:
                LOGGER.debug("Skipping malformed NBS row for %s: %s", code, dict(row))
                continue
            quotes[code] = rate if unit == 1 else rate / unit

    if not quotes:
        raise NoData(NBS_SOURCE_NAME, f"no currency rows parsed for {rate_date.isoformat()}")
    return ProviderQuoteSet(
        rate_date=rate_date,
        base_currency="RSD",
        quotes=quotes,
        convention=QuoteConvention.BASE_PER_UNIT,
        source=NBS_SOURCE_NAME,
    )


class NBSRateSource(RateSource):
    """Authority-A source: RSD based, quotes are RSD per one unit of currency."""

    name = NBS_SOURCE_NAME
    base_currency = "RSD"
    convention = QuoteConvention.BASE_PER_UNIT

    def __init__(self, *, page_url: str = NBS_PAGE_URL, **kwargs) -> None:
        super().__init__(**kwargs)
        self.page_url = page_url

    def fetch_daily_quotes(self, rate_date: date) -> ProviderQuoteSet:
        params = {
            "isSearchExecuted": "true",
            "Date": rate_date.strftime(NBS_DATE_FORMAT),
            "ExchangeRateListTypeID": NBS_MIDDLE_RATE_LIST,
        }
        LOGGER.info("Fetching NBS middle rates for %s", rate_date)
        response = self._get(self.page_url, params)
        if not response.text:
            raise SourceUnavailable(self.name, "empty response body")
        return parse_nbs_table(response.text, rate_date)


__all__ = ["NBSRateSource", "parse_nbs_table", "NBS_PAGE_URL", "NBS_SOURCE_NAME"]
