"""Candidate sources: museum APIs over httpx.MockTransport, static catalogs, registry and build_sources."""

import json

import httpx
import pytest

from artlens.core.config import Settings
from artlens.sources import build_sources
from artlens.sources.museums import ChicagoMuseumSource, ClevelandMuseumSource
from artlens.sources.registry import RegistrySource
from artlens.sources.static_catalog import StaticCatalogSource, load_catalog

pytestmark = [pytest.mark.fast]


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


CHICAGO_PAYLOAD = {
    "config": {"iiif_url": "https://iiif.example/iiif/2"},
    "data": [
        {
            "id": 27992,
            "title": "A Sunday on La Grande Jatte",
            "artist_display": "Georges Seurat",
            "image_id": "abc-123",
            "classification_titles": ["oil on canvas"],
            "style_titles": ["Pointillism"],
            "subject_titles": ["landscapes", "leisure"],
        },
        {"id": 1, "title": "No image", "image_id": None},
    ],
}


@pytest.mark.asyncio
async def test_chicago_search_builds_iiif_records():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=CHICAGO_PAYLOAD)

    async with _client(handler) as client:
        source = ChicagoMuseumSource(client=client)
        records = await source.search(["river", "leisure"], 5)

    assert len(records) == 1
    record = records[0]
    assert record["image_url"] == "https://iiif.example/iiif/2/abc-123/full/843,/0/default.jpg"
    assert record["thumbnail_url"] == "https://iiif.example/iiif/2/abc-123/full/400,/0/default.jpg"
    assert record["keywords"] == ["oil on canvas", "Pointillism", "landscapes", "leisure"]
    assert record["platform"] == "Art Institute of Chicago"
    assert record["source_url"] == "https://www.artic.edu/artworks/27992"
    params = requests[0].url.params
    assert params["q"] == "river leisure"
    assert params["limit"] == "5"


@pytest.mark.asyncio
async def test_chicago_default_iiif_when_config_missing():
    payload = {"data": [{"id": 5, "title": "T", "image_id": "img"}]}
    async with _client(lambda r: httpx.Response(200, json=payload)) as client:
        records = await ChicagoMuseumSource(client=client).search(["sea"], 3)
    assert records[0]["image_url"].startswith("https://www.artic.edu/iiif/2/img/")


@pytest.mark.asyncio
async def test_museum_source_empty_keywords_makes_no_request():
    def handler(request):
        raise AssertionError("no request expected")

    async with _client(handler) as client:
        assert await ChicagoMuseumSource(client=client).search([], 5) == []
        assert await ClevelandMuseumSource(client=client).search([], 5) == []


@pytest.mark.asyncio
async def test_museum_source_http_error_raises():
    async with _client(lambda r: httpx.Response(503)) as client:
        with pytest.raises(httpx.HTTPStatusError):
            await ChicagoMuseumSource(client=client).search(["sea"], 5)


@pytest.mark.asyncio
async def test_museum_source_non_object_body_raises():
    async with _client(lambda r: httpx.Response(200, json=[1, 2])) as client:
        with pytest.raises(ValueError, match="JSON object"):
            await ClevelandMuseumSource(client=client).search(["sea"], 5)


@pytest.mark.asyncio
async def test_cleveland_search_derives_keywords_and_url():
    requests = []
    payload = {
        "data": [
            {
                "id": 94979,
                "accession_number": "1958.31",
                "title": "Water Lilies",
                "creators": [{"description": "Claude Monet (French, 1840-1926)"}],
                "images": {"web": {"url": "https://openaccess-cdn.example/1958.31_web.jpg"}},
                "department": "Modern European Painting and Sculpture",
                "type": "Painting",
                "technique": "oil on canvas",
                "culture": ["France, 19th century"],
            },
            "not a record",
        ]
    }

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json=payload)

    async with _client(handler) as client:
        records = await ClevelandMuseumSource(client=client).search(["lilies"], 500)

    assert len(records) == 1
    record = records[0]
    assert record["keywords"] == [
        "Modern European Painting and Sculpture",
        "Painting",
        "oil on canvas",
        "France, 19th century",
    ]
    assert record["platform"] == "Cleveland Museum of Art"
    assert record["url"] == "https://www.clevelandart.org/art/1958.31"
    params = requests[0].url.params
    assert params["limit"] == "100"
    assert params["has_image"] == "1"
    assert params["cc0"] == "1"


@pytest.mark.asyncio
async def test_borrowed_client_is_not_closed():
    client = _client(lambda r: httpx.Response(200, json={"data": []}))
    source = ChicagoMuseumSource(client=client)
    await source.aclose()
    assert not client.is_closed
    await client.aclose()


@pytest.mark.asyncio
async def test_owned_client_is_closed():
    source = ClevelandMuseumSource()
    await source.aclose()
    assert source._client.is_closed


CATALOG = [
    {"id": "c1", "title": "Harbor", "image_url": "https://img.example/c1.jpg", "keywords": ["Harbor", "boats"]},
    {"id": "c2", "title": "Meadow", "image_url": "https://img.example/c2.jpg", "tags": "meadow, flowers"},
    {"id": "c3", "title": "Docks", "image_url": "https://img.example/c3.jpg", "keywords": ["boats"]},
    "garbage",
]


def test_load_catalog_json_and_yaml(tmp_path):
    json_path = tmp_path / "catalog.json"
    json_path.write_text(json.dumps(CATALOG))
    yaml_path = tmp_path / "catalog.yml"
    yaml_path.write_text("""
artworks:
  - id: y1
    title: Night Sky
    keywords: [stars, night]
""")
    assert [r["id"] for r in load_catalog(json_path)] == ["c1", "c2", "c3"]
    assert [r["id"] for r in load_catalog(yaml_path)] == ["y1"]


def test_load_catalog_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_catalog(tmp_path / "missing.yml")
    bad = tmp_path / "bad.yml"
    bad.write_text("just a string\n")
    with pytest.raises(ValueError):
        load_catalog(bad)


@pytest.mark.asyncio
async def test_static_catalog_keyword_overlap_in_catalog_order():
    source = StaticCatalogSource([r for r in CATALOG if isinstance(r, dict)])
    assert len(source) == 3
    assert [r["id"] for r in await source.search(["BOATS", "harbor"], 10)] == ["c1", "c3"]
    assert [r["id"] for r in await source.search(["boats"], 1)] == ["c1"]
    assert [r["id"] for r in await source.search(["flowers"], 10)] == ["c2"]
    assert await source.search(["  "], 10) == []


class _Artworks:
    def __init__(self):
        self.calls = []

    def search_by_keywords(self, keywords, limit=20):
        self.calls.append((keywords, limit))
        return [{"id": 1, "title": "Registry piece", "keywords": keywords}]


@pytest.mark.asyncio
async def test_registry_source_is_internal_and_delegates():
    artworks = _Artworks()
    source = RegistrySource(artworks)
    records = await source.search(["sea"], 7)
    assert source.is_internal is True
    assert records[0]["title"] == "Registry piece"
    assert artworks.calls == [(["sea"], 7)]


@pytest.mark.asyncio
async def test_build_sources_in_configured_order(tmp_path):
    catalog = tmp_path / "legacy.json"
    catalog.write_text(json.dumps(CATALOG))
    settings = Settings(
        sources=["museum:cleveland", "catalog:legacy", "registry", "museum:chicago"],
        legacy_catalog_path=str(catalog),
    )
    sources = build_sources(settings, _Artworks())
    try:
        assert [s.source_id for s in sources] == ["museum:cleveland", "catalog:legacy", "registry", "museum:chicago"]
    finally:
        for s in sources:
            await s.aclose()


def test_build_sources_skips_unavailable():
    sources = build_sources(Settings(sources=["registry", "catalog:legacy"]))
    assert sources == []


def test_build_sources_unknown_name_raises():
    with pytest.raises(ValueError, match="Unknown candidate source"):
        build_sources(Settings(sources=["museum:louvre"]))
