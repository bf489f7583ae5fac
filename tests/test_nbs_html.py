"""Tests for the NBS middle rate page parser and source."""

from __future__ import annotations

from datetime import date
from typing import Any

import pytest
import requests

from pausal_fx.errors import NoData, SourceUnavailable
from pausal_fx.ingestion.models import QuoteConvention
from pausal_fx.ingestion.nbs_html import NBS_PAGE_URL, NBSRateSource, _parse_number, parse_nbs_table

DAY = date(2025, 3, 3)

NBS_PAGE = """
<html><body>
<table id="index">
  <thead>
    <tr>
      <th>Oznaka valute</th><th>Šifra valute</th><th>Zemlja</th>
      <th>Važi za</th><th>Srednji kurs</th>
    </tr>
  </thead>
  <tbody>
    <tr><td>EUR</td><td>978</td><td>EMU</td><td>1</td><td>117,1753</td></tr>
    <tr><td>JPY</td><td>392</td><td>Japan</td><td>100</td><td>72,5000</td></tr>
    <tr><td>USD</td><td>840</td><td>SAD</td><td>1</td><td>108,4500</td></tr>
    <tr><td>Ukupno</td><td></td><td></td><td></td><td></td></tr>
  </tbody>
</table>
</body></html>
"""

HEADERLESS_PAGE = """
<table>
  <tr><td>EUR</td><td>978</td><td>EMU</td><td>1</td><td>117,1753</td></tr>
  <tr><td>HUF</td><td>348</td><td>Mađarska</td><td>100</td><td>29,4100</td></tr>
</table>
"""


class _FakeResponse:
    def __init__(self, text: str, *, status_error: Exception | None = None) -> None:
        self.text = text
        self.content = text.encode("utf-8")
        self.url = NBS_PAGE_URL
        self._status_error = status_error

    def raise_for_status(self) -> None:
        if self._status_error is not None:
            raise self._status_error


class _FakeSession:
    def __init__(self, response: _FakeResponse | None = None, error: Exception | None = None):
        self.response = response
        self.error = error
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    def get(self, url: str, params: dict[str, str], timeout: float) -> _FakeResponse:
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        if self.error is not None:
            raise self.error
        assert self.response is not None
        return self.response

    def close(self) -> None:
        self.closed = True


def test_parse_nbs_table_divides_by_lot_size() -> None:
    quote_set = parse_nbs_table(NBS_PAGE, DAY)

    assert quote_set.base_currency == "RSD"
    assert quote_set.convention is QuoteConvention.BASE_PER_UNIT
    assert quote_set.quotes["EUR"] == pytest.approx(117.1753)
    assert quote_set.quotes["USD"] == pytest.approx(108.45)
    assert quote_set.quotes["JPY"] == pytest.approx(0.725)
    assert quote_set.currencies() == ["EUR", "JPY", "USD"]
    assert "RSD" in quote_set


def test_parse_nbs_table_without_headers_uses_column_positions() -> None:
    quote_set = parse_nbs_table(HEADERLESS_PAGE, DAY)

    assert quote_set.quotes["HUF"] == pytest.approx(0.2941)
    assert quote_set.quotes["EUR"] == pytest.approx(117.1753)


def test_page_without_table_is_source_unavailable() -> None:
    with pytest.raises(SourceUnavailable):
        parse_nbs_table("<html><body><p>Maintenance</p></body></html>", DAY)


def test_notice_table_without_rate_columns_is_source_unavailable() -> None:
    with pytest.raises(SourceUnavailable):
        parse_nbs_table("<table><tr><td>Servis privremeno nedostupan</td></tr></table>", DAY)


def test_rate_table_without_currency_rows_is_no_data() -> None:
    page = "<table><tr><td>Ukupno</td><td></td><td></td><td></td><td></td></tr></table>"

    with pytest.raises(NoData):
        parse_nbs_table(page, DAY)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("117,1753", 117.1753),
        ("1.234,50", 1234.5),
        ("1,234.50", 1234.5),
        ("108.45", 108.45),
        ("n/a", None),
    ],
)
def test_parse_number_handles_both_separator_styles(raw: str, expected: float | None) -> None:
    assert _parse_number(raw) == expected


def test_source_sends_nbs_query_parameters() -> None:
    session = _FakeSession(_FakeResponse(NBS_PAGE))
    source = NBSRateSource(session=session, timeout=5)

    quote_set = source.fetch_daily_quotes(DAY)

    assert quote_set.rate_date == DAY
    call = session.calls[0]
    assert call["url"] == NBS_PAGE_URL
    assert call["params"] == {
        "isSearchExecuted": "true",
        "Date": "03.03.2025.",
        "ExchangeRateListTypeID": "3",
    }
    assert call["timeout"] == 5


def test_timeout_maps_to_source_unavailable() -> None:
    source = NBSRateSource(session=_FakeSession(error=requests.Timeout("slow")), timeout=1)

    with pytest.raises(SourceUnavailable, match="timed out"):
        source.fetch_daily_quotes(DAY)


def test_http_error_maps_to_source_unavailable() -> None:
    response = _FakeResponse("", status_error=requests.HTTPError("503 Service Unavailable"))
    source = NBSRateSource(session=_FakeSession(response))

    with pytest.raises(SourceUnavailable) as excinfo:
        source.fetch_daily_quotes(DAY)

    assert excinfo.value.source == "nbs"


def test_empty_body_is_source_unavailable() -> None:
    source = NBSRateSource(session=_FakeSession(_FakeResponse("")))

    with pytest.raises(SourceUnavailable):
        source.fetch_daily_quotes(DAY)


def test_unopened_source_refuses_to_fetch() -> None:
    with pytest.raises(RuntimeError):
        NBSRateSource().fetch_daily_quotes(DAY)


def test_borrowed_session_is_not_closed() -> None:
    session = _FakeSession(_FakeResponse(NBS_PAGE))

    with NBSRateSource(session=session) as source:
        assert source.is_open

    assert not source.is_open
    assert session.closed is False


def test_owned_session_lifecycle() -> None:
    source = NBSRateSource()

    with source:
        assert isinstance(source.session, requests.Session)
        assert source.session.headers["User-Agent"].startswith("pausal-fx")

    assert source.session is None
