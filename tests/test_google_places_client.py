"""
Tests for the Google Places client and listing -> place mapping.

Note: These tests use mocking to avoid actual API calls.
"""

from unittest.mock import Mock

import pytest
from flexreviews.data.config import GooglePlacesConfig
from flexreviews.data.google_places_client import (
    GooglePlacesClient,
    PlaceMapping,
    PlaceMappingRegistry,
    PlaceSummary,
)
from flexreviews.exceptions import SourceUnavailableError


def make_response(payload, status_code: int = 200) -> Mock:
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    return response


class TestGooglePlacesClient:
    """Tests for GooglePlacesClient."""

    def setup_method(self):
        self.session = Mock()
        self.client = GooglePlacesClient(
            config=GooglePlacesConfig(api_key="gkey", base_url="https://places.test/api"),
            session=self.session,
        )

    def test_not_configured(self):
        client = GooglePlacesClient(config=GooglePlacesConfig(api_key=None), session=Mock())
        assert client.is_configured is False
        with pytest.raises(SourceUnavailableError):
            client.search_place("anything")

    def test_search_place(self):
        self.session.get.return_value = make_response({
            "status": "OK",
            "results": [{
                "place_id": "ChIJ123",
                "name": "Shoreditch Heights",
                "formatted_address": "29 Shoreditch High St, London",
                "rating": 4.6,
            }],
        })

        place = self.client.search_place("29 Shoreditch Heights, London")

        assert place == PlaceSummary(
            place_id="ChIJ123",
            name="Shoreditch Heights",
            address="29 Shoreditch High St, London",
            rating=4.6,
        )
        args, kwargs = self.session.get.call_args
        assert args[0] == "https://places.test/api/textsearch/json"
        assert kwargs["params"]["key"] == "gkey"
        assert kwargs["params"]["query"] == "29 Shoreditch Heights, London"

    def test_search_place_no_results(self):
        self.session.get.return_value = make_response({"status": "ZERO_RESULTS", "results": []})
        assert self.client.search_place("nowhere") is None

    def test_fetch_place_details(self):
        self.session.get.return_value = make_response({
            "status": "OK",
            "result": {
                "name": "Shoreditch Heights",
                "rating": 4.5,
                "user_ratings_total": 120,
                "reviews": [{"rating": 5, "text": "Great"}, "junk"],
            },
        })

        details = self.client.fetch_place_details("ChIJ123")

        assert details.place_id == "ChIJ123"
        assert details.name == "Shoreditch Heights"
        assert details.user_ratings_total == 120
        assert details.reviews == [{"rating": 5, "text": "Great"}]

    def test_fetch_place_details_api_error(self):
        self.session.get.return_value = make_response({
            "status": "REQUEST_DENIED",
            "error_message": "The provided API key is invalid.",
        })
        with pytest.raises(SourceUnavailableError) as exc_info:
            self.client.fetch_place_details("ChIJ123")
        assert "REQUEST_DENIED" in str(exc_info.value)

    def test_http_error(self):
        self.session.get.return_value = make_response({}, status_code=503)
        with pytest.raises(SourceUnavailableError) as exc_info:
            self.client.fetch_place_details("ChIJ123")
        assert exc_info.value.status_code == 503

    def test_integration_info(self):
        info = self.client.integration_info()
        assert info["configured"] is True
        assert "Maximum 5 reviews per place" in info["limitations"]


class TestPlaceMappingRegistry:
    """Tests for PlaceMappingRegistry.resolve()."""

    def setup_method(self):
        self.client = Mock()

    def test_known_place_id(self):
        registry = PlaceMappingRegistry(self.client, {"L1": PlaceMapping("Some Flat", "ChIJknown")})

        assert registry.resolve("L1") == "ChIJknown"
        self.client.search_place.assert_not_called()

    def test_unknown_listing(self):
        registry = PlaceMappingRegistry(self.client, {})
        assert registry.resolve("L404") is None

    def test_name_only_mapping_is_searched_once(self):
        self.client.search_place.return_value = PlaceSummary(place_id="ChIJfound", name="Flat")
        registry = PlaceMappingRegistry(self.client, {"L1": PlaceMapping("15 Southbank, London")})

        assert registry.resolve("L1") == "ChIJfound"
        assert registry.resolve("L1") == "ChIJfound"
        self.client.search_place.assert_called_once_with("15 Southbank, London")

    def test_name_only_mapping_not_found(self):
        self.client.search_place.return_value = None
        registry = PlaceMappingRegistry(self.client, {"L1": PlaceMapping("Nowhere")})
        assert registry.resolve("L1") is None

    def test_defaults_are_copied(self):
        registry = PlaceMappingRegistry(self.client)
        registry.save("2B-N1-A", "ChIJoverride")

        assert registry.resolve("2B-N1-A") == "ChIJoverride"
        assert PlaceMappingRegistry(self.client).resolve("2B-N1-A") != "ChIJoverride"
