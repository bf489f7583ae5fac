from __future__ import annotations

import pytest

from pausal_fx.errors import InvalidProvider
from pausal_fx.ingestion.ecb_xml import ECBRateSource
from pausal_fx.ingestion.nbs_html import NBSRateSource
from pausal_fx.ingestion.sources import SOURCE_CLASSES, build_sources, normalise_provider


def test_registry_names() -> None:
    assert set(SOURCE_CLASSES) == {"nbs", "ecb"}


@pytest.mark.parametrize("raw", ["nbs", "NBS", " Nbs "])
def test_normalise_provider(raw: str) -> None:
    assert normalise_provider(raw) == "nbs"


@pytest.mark.parametrize("raw", ["fed", "", None, 3])
def test_normalise_provider_rejects_unknown_values(raw) -> None:
    with pytest.raises(InvalidProvider):
        normalise_provider(raw)


def test_normalise_provider_against_custom_set() -> None:
    with pytest.raises(InvalidProvider):
        normalise_provider("ecb", ["nbs"])


def test_build_sources_returns_unopened_instances() -> None:
    sources = build_sources(timeout=3)

    assert isinstance(sources["nbs"], NBSRateSource)
    assert isinstance(sources["ecb"], ECBRateSource)
    assert all(not source.is_open for source in sources.values())
    assert sources["ecb"].timeout == 3


def test_build_sources_subset() -> None:
    assert list(build_sources(["ECB"])) == ["ecb"]
