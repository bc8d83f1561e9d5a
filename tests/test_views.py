from decimal import Decimal
from unittest import mock

import pytest
from PIL import Image

from api.models import CacheStatus, Country
from api.services import CacheWriteError, ExternalServiceError

pytestmark = pytest.mark.django_db


@pytest.fixture
def europe_and_africa(make_country):
    make_country("Germany", estimated_gdp=Decimal("500.00"))
    make_country("Vatican", estimated_gdp=None)
    make_country("France", estimated_gdp=Decimal("900.00"))
    make_country("Nigeria", region="Africa", currency_code="NGN", estimated_gdp=Decimal("700.00"))


class TestRefreshEndpoint:

    def test_success(self, api_client, countries_payload, cache_status, django_capture_on_commit_callbacks):
        rates = {"NGN": Decimal("1600.25"), "EUR": Decimal("0.92")}
        with mock.patch("api.services.fetch_upstream_data", return_value=(countries_payload, rates)), \
                mock.patch("api.services.schedule_summary_image") as mocked_schedule:
            with django_capture_on_commit_callbacks(execute=True):
                response = api_client.post("/api/countries/refresh")
        assert response.status_code == 200
        assert response.json()["countries_processed"] == 4
        assert Country.objects.count() == 4
        mocked_schedule.assert_called_once_with()

    def test_upstream_failure_is_503(self, api_client):
        with mock.patch("api.views.refresh_country_data",
                        side_effect=ExternalServiceError("RestCountries API")):
            response = api_client.post("/api/countries/refresh")
        assert response.status_code == 503
        assert response.json() == {"error": "External data source unavailable",
                                   "details": "Could not fetch data from RestCountries API"}

    def test_write_failure_is_500(self, api_client):
        with mock.patch("api.views.refresh_country_data",
                        side_effect=CacheWriteError("Failed to save data to the database.")):
            response = api_client.post("/api/countries/refresh")
        assert response.status_code == 500
        assert response.json()["error"] == "Internal server error"

    def test_get_not_allowed(self, api_client):
        assert api_client.get("/api/countries/refresh").status_code == 405


class TestCountryList:

    def test_region_filter_with_gdp_desc(self, api_client, europe_and_africa):
        response = api_client.get("/api/countries", {"region": "Europe", "sort": "gdp_desc"})
        assert response.status_code == 200
        assert [c["name"] for c in response.json()] == ["France", "Germany", "Vatican"]

    def test_gdp_asc_keeps_nulls_last(self, api_client, europe_and_africa):
        response = api_client.get("/api/countries", {"sort": "gdp_asc"})
        assert [c["name"] for c in response.json()] == ["Germany", "Nigeria", "France", "Vatican"]

    def test_default_order_is_insertion(self, api_client, europe_and_africa):
        response = api_client.get("/api/countries")
        assert [c["name"] for c in response.json()] == ["Germany", "Vatican", "France", "Nigeria"]

    def test_currency_filter(self, api_client, europe_and_africa):
        response = api_client.get("/api/countries", {"currency": "ngn"})
        assert [c["name"] for c in response.json()] == ["Nigeria"]

    def test_decimals_are_numbers(self, api_client, europe_and_africa):
        nigeria = api_client.get("/api/countries", {"currency": "NGN"}).json()[0]
        assert nigeria["estimated_gdp"] == 700.0
        assert nigeria["exchange_rate"] == 0.92

    def test_invalid_sort(self, api_client, europe_and_africa):
        response = api_client.get("/api/countries", {"sort": "name_desc"})
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Validation failed"
        assert "sort" in body["details"]

    def test_empty_cache(self, api_client):
        response = api_client.get("/api/countries")
        assert response.status_code == 200
        assert response.json() == []


class TestCountryDetail:

    def test_case_insensitive_substring(self, api_client, europe_and_africa):
        response = api_client.get("/api/countries/GERM")
        assert response.status_code == 200
        assert response.json()["name"] == "Germany"

    def test_not_found(self, api_client, europe_and_africa):
        response = api_client.get("/api/countries/atlantis")
        assert response.status_code == 404
        assert response.json() == {"error": "Country not found"}

    def test_delete(self, api_client, europe_and_africa):
        response = api_client.delete("/api/countries/france")
        assert response.status_code == 204
        assert not Country.objects.filter(name="France").exists()
        assert Country.objects.count() == 3

    def test_delete_removes_every_match(self, api_client, make_country):
        make_country("Niger", region="Africa")
        make_country("Nigeria", region="Africa")
        make_country("Germany")
        response = api_client.delete("/api/countries/niger")
        assert response.status_code == 204
        assert list(Country.objects.values_list("name", flat=True)) == ["Germany"]

    def test_get_returns_first_match(self, api_client, make_country):
        make_country("Niger", region="Africa")
        make_country("Nigeria", region="Africa")
        assert api_client.get("/api/countries/niger").json()["name"] == "Niger"

    def test_delete_nonexistent(self, api_client, europe_and_africa):
        response = api_client.delete("/api/countries/nonexistent")
        assert response.status_code == 404
        assert Country.objects.count() == 4


class TestStatus:

    def test_status(self, api_client, europe_and_africa, cache_status):
        response = api_client.get("/api/status")
        assert response.status_code == 200
        assert response.json() == {"total_countries": 4, "last_refreshed_at": None}

    def test_status_without_metadata(self, api_client):
        CacheStatus.objects.all().delete()
        response = api_client.get("/api/status")
        assert response.status_code == 404
        assert "error" in response.json()


class TestSummaryImage:

    def test_missing_image(self, api_client, image_settings):
        response = api_client.get("/api/countries/image")
        assert response.status_code == 404
        assert "error" in response.json()

    def test_serves_png(self, api_client, image_settings, tmp_path):
        path = tmp_path / "cache" / "summary.png"
        path.parent.mkdir()
        Image.new("RGB", (800, 400), color="white").save(path, "PNG")
        response = api_client.get("/api/countries/image")
        assert response.status_code == 200
        assert response["Content-Type"] == "image/png"
        assert b"".join(response.streaming_content).startswith(b"\x89PNG")
