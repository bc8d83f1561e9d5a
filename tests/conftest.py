from decimal import Decimal
from unittest import mock

import httpx
import pytest
from rest_framework.test import APIClient

from api.models import CacheStatus, Country


@pytest.fixture
def countries_payload():
    return [
        {"name": "Nigeria", "capital": "Abuja", "region": "Africa", "population": 206139587,
         "flag": "https://flagcdn.com/ng.svg",
         "currencies": [{"code": "NGN", "name": "Nigerian naira", "symbol": "N"}]},
        {"name": "Germany", "capital": "Berlin", "region": "Europe", "population": 83240525,
         "flag": "https://flagcdn.com/de.svg",
         "currencies": [{"code": "EUR", "name": "Euro", "symbol": "E"}]},
        {"name": "Antarctica", "capital": "", "region": "Polar", "population": 1000,
         "flag": "https://flagcdn.com/aq.svg"},
        {"name": "Atlantis", "region": "Oceania", "population": 500,
         "flag": "https://flagcdn.com/xx.svg",
         "currencies": [{"code": "ATL", "name": "Atlantean pearl"}]},
    ]


@pytest.fixture
def rates_payload():
    return {"result": "success", "base_code": "USD",
            "rates": {"USD": 1, "NGN": 1600.25, "EUR": 0.92}}


@pytest.fixture
def make_transport(countries_payload, rates_payload):
    """Build an httpx.MockTransport that serves both upstream APIs."""
    def _make(countries_status=200, rates_status=200, countries_error=None, rates_error=None,
              countries_body=None, rates_body=None):
        calls = []

        def handler(request):
            calls.append(request.url.host)
            if request.url.host == "restcountries.com":
                if countries_error is not None:
                    raise countries_error(f"{countries_error.__name__}", request=request)
                if countries_body is not None:
                    return httpx.Response(countries_status, content=countries_body)
                return httpx.Response(countries_status, json=countries_payload)
            if rates_error is not None:
                raise rates_error(f"{rates_error.__name__}", request=request)
            if rates_body is not None:
                return httpx.Response(rates_status, content=rates_body)
            return httpx.Response(rates_status, json=rates_payload)

        transport = httpx.MockTransport(handler)
        transport.calls = calls
        return transport
    return _make


@pytest.fixture
def fixed_rng():
    """A stand-in for the random module that always draws 1500."""
    return mock.Mock(randint=mock.Mock(return_value=1500))


@pytest.fixture
def cache_status(db):
    status, _ = CacheStatus.objects.get_or_create(pk=CacheStatus.SINGLETON_PK)
    return status


@pytest.fixture
def image_settings(settings, tmp_path):
    settings.SUMMARY_IMAGE_PATH = str(tmp_path / "cache" / "summary.png")
    settings.SUMMARY_FONT_PATH = str(tmp_path / "no-such-font.ttf")
    return settings


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def make_country(db):
    def _make(name, **kwargs):
        defaults = {"region": "Europe", "population": 1000, "currency_code": "EUR",
                    "exchange_rate": Decimal("0.920000"), "estimated_gdp": None}
        defaults.update(kwargs)
        return Country.objects.create(name=name, **defaults)
    return _make
