"""ECB reference rates served as XML by the Bank of Latvia mirror."""

from __future__ import annotations

import warnings
from datetime import date

from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning

from pausal_fx.errors import NoData
from pausal_fx.ingestion.models import ProviderQuoteSet, QuoteConvention
from pausal_fx.ingestion.strategy import RateSource
from pausal_fx.utils.logger import get_logger

LOGGER = get_logger(__name__)

ECB_URL = "https://www.bank.lv/vk/ecb.xml"
ECB_DATE_FORMAT = "%Y%m%d"
ECB_SOURCE_NAME = "ecb"


def _text(node) -> str:
    return node.get_text(strip=True) if node is not None else ""


def parse_ecb_xml(xml: str, rate_date: date) -> ProviderQuoteSet:
    """Parse ``CRates/Currencies/Currency`` entries into per-EUR quotes."""

    with warnings.catch_warnings():
        warnings.simplefilter("ignore", XMLParsedAsHTMLWarning)
        soup = BeautifulSoup(xml, "html.parser")

    # html.parser lower-cases tag names.
    currencies = soup.find("currencies")
    if currencies is None:
        raise NoData(ECB_SOURCE_NAME, f"currency list missing for {rate_date.isoformat()}")

    quotes: dict[str, float] = {}
    for entry in currencies.find_all("currency"):
        code = _text(entry.find("id")).upper()
        raw_rate = _text(entry.find("rate"))
        try:
            rate = float(raw_rate)
        except ValueError:
            LOGGER.debug("Skipping malformed ECB entry %r=%r", code, raw_rate)
            continue
        if len(code) != 3 or rate <= 0:
            continue
        quotes[code] = rate

    if not quotes:
        raise NoData(ECB_SOURCE_NAME, f"empty currency list for {rate_date.isoformat()}")

    published = _text(soup.find("date"))
    if published and published != rate_date.strftime(ECB_DATE_FORMAT):
        # Weekends and holidays return the last published fixing.
        LOGGER.debug("ECB feed for %s carries publication date %s", rate_date, published)

    return ProviderQuoteSet(
        rate_date=rate_date,
        base_currency="EUR",
        quotes=quotes,
        convention=QuoteConvention.UNITS_PER_BASE,
        source=ECB_SOURCE_NAME,
    )


class ECBRateSource(RateSource):
    """Authority-B source: EUR based, quotes are units of currency per one EUR."""

    name = ECB_SOURCE_NAME
    base_currency = "EUR"
    convention = QuoteConvention.UNITS_PER_BASE

    def __init__(self, *, feed_url: str = ECB_URL, **kwargs) -> None:
        super().__init__(**kwargs)
        self.feed_url = feed_url

    def fetch_daily_quotes(self, rate_date: date) -> ProviderQuoteSet:
        LOGGER.info("Fetching ECB reference rates for %s", rate_date)
        response = self._get(self.feed_url, {"date": rate_date.strftime(ECB_DATE_FORMAT)})
        return parse_ecb_xml(response.text, rate_date)


__all__ = ["ECBRateSource", "parse_ecb_xml", "ECB_URL", "ECB_SOURCE_NAME"]
