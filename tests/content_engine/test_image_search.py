"""Tests for the Pexels image search.

Tests cover:
- Request shape (auth header, query params)
- Mapping photos to ImageAsset with attribution
- Fallback query when keywords find nothing
- Failures degrade to an empty list
"""

import httpx
import pytest

from src.content_engine.image_search import PEXELS_SEARCH_URL, PexelsImageSearch


def photo(photo_id: int, photographer: str = "Jane Doe") -> dict:
    return {
        "id": photo_id,
        "width": 6000,
        "height": 4000,
        "url": f"https://www.pexels.com/photo/{photo_id}/",
        "photographer": photographer,
        "alt": f"Couple {photo_id}",
        "src": {
            "original": f"https://images.pexels.com/photos/{photo_id}/original.jpeg",
            "large": f"https://images.pexels.com/photos/{photo_id}/large.jpeg",
        },
    }


# === Test: Search ===


class TestSearch:
    def test_request_and_mapping(self, mock_client):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"photos": [photo(1)]})

        search = PexelsImageSearch(api_key="px-key", client=mock_client(handler))
        images = search.search("couple walking", per_page=1)

        request = seen[0]
        assert str(request.url).startswith(PEXELS_SEARCH_URL)
        assert request.headers["Authorization"] == "px-key"
        assert request.url.params["query"] == "couple walking"
        assert request.url.params["orientation"] == "landscape"

        image = images[0]
        assert image.url == "https://images.pexels.com/photos/1/large.jpeg"
        assert image.alt == "Couple 1"
        assert (image.width, image.height) == (6000, 4000)
        assert image.attribution == "Photo by Jane Doe on Pexels"
        assert image.source_url == "https://www.pexels.com/photo/1/"

    def test_alt_defaults_to_query(self, mock_client):
        data = photo(2)
        data["alt"] = ""
        search = PexelsImageSearch(
            api_key="px-key",
            client=mock_client(lambda request: httpx.Response(200, json={"photos": [data]})),
        )
        assert search.search("coffee date")[0].alt == "coffee date"

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(401, json={"error": "Unauthorized"}),
            httpx.Response(200, content=b"not json"),
            httpx.Response(200, json={"photos": [{"id": 1}]}),
        ],
    )
    def test_failures_return_empty(self, mock_client, response):
        search = PexelsImageSearch(api_key="px-key", client=mock_client(lambda request: response))
        assert search.search("couple") == []

    def test_network_error_returns_empty(self, mock_client):
        def handler(request):
            raise httpx.ConnectTimeout("timed out")

        search = PexelsImageSearch(api_key="px-key", client=mock_client(handler))
        assert search.search("couple") == []

    def test_missing_key_returns_empty(self, mock_client, monkeypatch):
        monkeypatch.delenv("PEXELS_API_KEY", raising=False)

        def handler(request):
            raise AssertionError("no request expected")

        search = PexelsImageSearch(client=mock_client(handler))
        assert search.search("couple") == []


# === Test: Find Images ===


class TestFindImages:
    def test_one_per_query(self, mock_client):
        def handler(request):
            photo_id = 1 if request.url.params["query"] == "a" else 2
            return httpx.Response(200, json={"photos": [photo(photo_id)]})

        search = PexelsImageSearch(api_key="px-key", client=mock_client(handler))
        images = search.find_images(["a", "b", "c"], count=2)
        assert [img.url.split("/")[-2] for img in images] == ["1", "2"]

    def test_duplicates_skipped(self, mock_client):
        search = PexelsImageSearch(
            api_key="px-key",
            client=mock_client(lambda request: httpx.Response(200, json={"photos": [photo(7)]})),
        )
        assert len(search.find_images(["a", "b"], count=2)) == 1

    def test_fallback_query(self, mock_client):
        queries = []

        def handler(request):
            query = request.url.params["query"]
            queries.append(query)
            if query == "relationship couple":
                return httpx.Response(200, json={"photos": [photo(3), photo(4)]})
            return httpx.Response(200, json={"photos": []})

        search = PexelsImageSearch(api_key="px-key", client=mock_client(handler))
        images = search.find_images(["nothing here"], count=2)

        assert queries == ["nothing here", "relationship couple"]
        assert len(images) == 2

    def test_zero_count(self, mock_client):
        def handler(request):
            raise AssertionError("no request expected")

        search = PexelsImageSearch(api_key="px-key", client=mock_client(handler))
        assert search.find_images(["a"], count=0) == []
