"""Tests for the TCGdex provider."""

from datetime import date

import httpx
import pytest
import respx

from card_catalog.adapters import BulkDatasetProvider, DetailProvider
from card_catalog.errors import DetailFetchError, SetListingError
from card_catalog.providers.tcgdex import TcgdexProvider

BASE = "https://api.tcgdex.net/v2/en"

BULBASAUR = {
    "id": "A1-001",
    "localId": "001",
    "name": "Bulbasaur",
    "category": "Pokemon",
    "rarity": "One Diamond",
    "image": "https://assets.tcgdex.net/en/tcgp/A1/001",
    "set": {"id": "A1", "name": "Genetic Apex"},
}


@pytest.fixture
def provider():
    return TcgdexProvider()


@respx.mock(base_url=BASE)
async def test_list_sets(respx_mock, provider):
    respx_mock.get("/series/tcgp").mock(return_value=httpx.Response(200, json={
        "id": "tcgp",
        "sets": [
            {"id": "A1", "name": "Genetic Apex", "releaseDate": "2024-10-30"},
            {"id": "P-A", "name": "Promos-A"},
        ],
    }))
    sets = await provider.list_sets()
    assert [s.id for s in sets] == ["A1", "P-A"]
    assert sets[0].release_date == date(2024, 10, 30)
    assert sets[1].release_date is None
    await provider.close()


@respx.mock(base_url=BASE)
async def test_list_sets_http_error(respx_mock, provider):
    respx_mock.get("/series/tcgp").mock(return_value=httpx.Response(500))
    with pytest.raises(SetListingError):
        await provider.list_sets()
    await provider.close()


@respx.mock(base_url=BASE)
async def test_list_sets_transport_error(respx_mock, provider):
    respx_mock.get("/series/tcgp").mock(side_effect=httpx.ConnectError("offline"))
    with pytest.raises(SetListingError) as excinfo:
        await provider.list_sets()
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)
    await provider.close()


@respx.mock(base_url=BASE)
async def test_list_set_cards(respx_mock, provider):
    respx_mock.get("/sets/A1").mock(return_value=httpx.Response(200, json={
        "id": "A1",
        "cards": [
            {"id": "A1-001", "localId": "001", "name": "Bulbasaur", "image": "https://x/A1/001"},
            {"id": "A1-002", "localId": "002", "name": "Ivysaur"},
        ],
    }))
    stubs = await provider.list_set_cards("A1")
    assert [s.id for s in stubs] == ["A1-001", "A1-002"]
    assert stubs[1].local_id == "002"
    assert all(s.set_id == "A1" for s in stubs)
    await provider.close()


@respx.mock(base_url=BASE)
async def test_list_set_cards_empty(respx_mock, provider):
    respx_mock.get("/sets/A9").mock(return_value=httpx.Response(200, json={"id": "A9"}))
    assert await provider.list_set_cards("A9") == []
    await provider.close()


@respx.mock(base_url=BASE)
async def test_list_set_cards_not_found(respx_mock, provider):
    respx_mock.get("/sets/NOPE").mock(return_value=httpx.Response(404))
    with pytest.raises(SetListingError) as excinfo:
        await provider.list_set_cards("NOPE")
    assert excinfo.value.set_id == "NOPE"
    await provider.close()


@respx.mock(base_url=BASE)
async def test_fetch_card_detail(respx_mock, provider):
    respx_mock.get("/cards/A1-001").mock(return_value=httpx.Response(200, json=BULBASAUR))
    card = await provider.fetch_card_detail("A1-001")
    assert card.id == "A1-001"
    assert card.local_id == "001"
    assert card.name == "Bulbasaur"
    assert card.category == "Pokemon"
    assert card.rarity == "One Diamond"
    assert card.set_id == "A1"
    assert card.source == "tcgdex"
    assert card.image_primary_ref == "https://assets.tcgdex.net/en/tcgp/A1/001/high.webp"
    assert card.image_fallback_ref == "https://assets.tcgdex.net/en/tcgp/A1/001/high.png"
    await provider.close()


@respx.mock(base_url=BASE)
async def test_fetch_card_detail_without_image(respx_mock, provider):
    raw = {k: v for k, v in BULBASAUR.items() if k != "image"}
    respx_mock.get("/cards/A1-001").mock(return_value=httpx.Response(200, json=raw))
    card = await provider.fetch_card_detail("A1-001")
    assert card.image_primary_ref is None
    assert card.image_fallback_ref is None
    await provider.close()


@respx.mock(base_url=BASE)
async def test_fetch_card_detail_failure(respx_mock, provider):
    respx_mock.get("/cards/A1-999").mock(return_value=httpx.Response(404))
    with pytest.raises(DetailFetchError) as excinfo:
        await provider.fetch_card_detail("A1-999")
    assert excinfo.value.card_id == "A1-999"
    await provider.close()


@respx.mock(base_url=BASE)
async def test_fetch_card_detail_malformed(respx_mock, provider):
    respx_mock.get("/cards/A1-001").mock(return_value=httpx.Response(200, text="<html>"))
    with pytest.raises(DetailFetchError):
        await provider.fetch_card_detail("A1-001")
    await provider.close()


def test_image_refs_from_configuration():
    provider = TcgdexProvider(image_variant="low", image_format="jpg", image_fallback_format=None)
    assert provider.image_refs("https://assets/A1/001/") == ("https://assets/A1/001/low.jpg", None)


def test_image_refs_same_format_has_no_fallback():
    provider = TcgdexProvider(image_format="png", image_fallback_format="png")
    assert provider.image_refs("https://assets/A1/001")[1] is None


def test_provider_capabilities(provider):
    assert provider.name == "tcgdex"
    assert provider.intrinsic_set_order
    assert isinstance(provider, DetailProvider)
    assert not isinstance(provider, BulkDatasetProvider)
