# api/services.py
import asyncio
import logging
import os
import random
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal, InvalidOperation

import httpx
from django.conf import settings
from django.db import DatabaseError, close_old_connections, transaction
from django.db.models import F
from django.utils import timezone
from PIL import Image, ImageDraw, ImageFont

from .models import CacheStatus, Country


# ==============================================================================
# CONFIGURATION AND SETUP
# ==============================================================================

logger = logging.getLogger('api')
render_logger = logging.getLogger('api.render')

COUNTRIES_SERVICE = "RestCountries API"
EXCHANGE_RATE_SERVICE = "Open Exchange Rate API"

# Inclusive bounds of the per-country GDP multiplier.
GDP_MULTIPLIER_MIN = 1000
GDP_MULTIPLIER_MAX = 2000

RATE_PLACES = Decimal('0.000001')
GDP_PLACES = Decimal('0.01')

# Every column a refresh overwrites on an existing row.
COUNTRY_FIELDS = [
    'name', 'capital', 'region', 'population', 'currency_code',
    'exchange_rate', 'estimated_gdp', 'flag_url',
]
BATCH_SIZE = 100

IMAGE_SIZE = (800, 400)
TOP_COUNTRIES_LIMIT = 5

# Single worker: summary renders run one at a time, off the request thread.
_render_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='summary-image')


class ExternalServiceError(Exception):
    """An upstream data source failed, timed out or returned unusable data."""

    def __init__(self, service_name, status_code=None):
        self.service_name = service_name
        self.status_code = status_code
        super().__init__(f"Could not fetch data from {service_name}")


class CacheWriteError(Exception):
    """The batch write to the database failed and was rolled back."""


# ==============================================================================
# EXTERNAL DATA FETCHING
# ==============================================================================

def _read_payload(response, service_name):
    """Turn one gathered result into decoded JSON, or raise ExternalServiceError."""
    if isinstance(response, BaseException):
        logger.error(f"Failed to fetch from {service_name}: {response!r}")
        raise ExternalServiceError(service_name) from response

    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        logger.error(f"{service_name} returned non-2xx status: {response.status_code}")
        raise ExternalServiceError(service_name, response.status_code) from e
    logger.debug(f"{service_name} responded with status {response.status_code}")

    try:
        return response.json()
    except ValueError as e:
        logger.error(f"{service_name} returned a body that is not valid JSON.")
        raise ExternalServiceError(service_name, response.status_code) from e


def normalize_exchange_rates(raw_rates):
    """
    Convert the upstream rates mapping to Decimals.

    Anything that is not a finite positive number is dropped, so such a
    currency behaves exactly like one the rates API does not list.
    """
    rates = {}
    for code, value in raw_rates.items():
        try:
            rate = Decimal(str(value))
            if not rate.is_finite():
                raise InvalidOperation
            rate = rate.quantize(RATE_PLACES)
        except (InvalidOperation, TypeError, ValueError):
            logger.warning(f"Ignoring unparseable exchange rate for {code}: {value!r}")
            continue
        if rate <= 0:
            logger.warning(f"Ignoring non-positive exchange rate for {code}: {value!r}")
            continue
        rates[code] = rate
    return rates


async def _fetch_api_data(transport=None):
    """
    Fetch countries and exchange rates concurrently.

    Both requests are sent before either is awaited. If either one fails the
    whole fetch fails with an ExternalServiceError naming the source.
    """
    logger.info("Starting concurrent fetch from external APIs...")
    async with httpx.AsyncClient(timeout=settings.UPSTREAM_TIMEOUT, transport=transport) as client:
        countries_response, rates_response = await asyncio.gather(
            client.get(settings.COUNTRIES_API_URL),
            client.get(settings.EXCHANGE_RATE_API_URL),
            return_exceptions=True,
        )

    countries_data = _read_payload(countries_response, COUNTRIES_SERVICE)
    rates_data = _read_payload(rates_response, EXCHANGE_RATE_SERVICE)

    if not isinstance(countries_data, list):
        logger.error(f"{COUNTRIES_SERVICE} returned {type(countries_data).__name__}, expected a list.")
        raise ExternalServiceError(COUNTRIES_SERVICE)
    raw_rates = rates_data.get('rates') if isinstance(rates_data, dict) else None
    if not isinstance(raw_rates, dict):
        logger.error(f"{EXCHANGE_RATE_SERVICE} response has no 'rates' mapping.")
        raise ExternalServiceError(EXCHANGE_RATE_SERVICE)

    logger.info("Successfully fetched data from both APIs.")
    return countries_data, normalize_exchange_rates(raw_rates)


def fetch_upstream_data(transport=None):
    return asyncio.run(_fetch_api_data(transport=transport))


# ==============================================================================
# RECORD TRANSFORMATION
# ==============================================================================

def build_country_record(country_data, exchange_rates, rng=random):
    """
    Build the row values for one upstream country entry.

    estimated_gdp = population * multiplier / exchange_rate, where multiplier
    is drawn from rng.randint(1000, 2000) for every country. The result is
    deliberately different on each refresh; pass a seeded rng to pin it.
    It is None whenever population or exchange_rate is None.
    """
    currency_code = None
    currencies = country_data.get('currencies')
    if currencies:
        currency_code = (currencies[0] or {}).get('code')

    exchange_rate = exchange_rates.get(currency_code) if currency_code else None

    population = country_data.get('population')
    if population is not None:
        population = int(population)

    estimated_gdp = None
    if population is not None and exchange_rate is not None:
        multiplier = rng.randint(GDP_MULTIPLIER_MIN, GDP_MULTIPLIER_MAX)
        estimated_gdp = (Decimal(population) * multiplier / exchange_rate).quantize(GDP_PLACES)

    return {
        'name': country_data.get('name'),
        'capital': country_data.get('capital') or None,
        'region': country_data.get('region') or None,
        'population': population,
        'currency_code': currency_code,
        'exchange_rate': exchange_rate,
        'estimated_gdp': estimated_gdp,
        'flag_url': country_data.get('flag') or None,
    }


# ==============================================================================
# CACHE WRITING
# ==============================================================================

def _writable_records(records):
    """Drop records the table cannot hold; later duplicates of a name win."""
    writable = {}
    for record in records:
        name = record.get('name')
        if not name:
            logger.warning(f"Skipping country with missing name: {record}")
            continue
        population = record.get('population')
        if population is None or population < 0:
            logger.warning(f"Skipping {name}: population is {population!r}")
            continue
        writable[name.lower()] = record
    return writable


def write_country_cache(records):
    """
    Upsert every record by name and stamp the cache status, all in one transaction.

    Returns (number of countries written, refresh timestamp). On any database
    error nothing is kept and CacheWriteError is raised.
    """
    writable = _writable_records(records)

    try:
        with transaction.atomic():
            logger.debug("Starting atomic database transaction...")
            existing_countries = {c.name.lower(): c for c in Country.objects.all()}
            now = timezone.now()

            countries_to_create = []
            countries_to_update = []
            for key, record in writable.items():
                instance = existing_countries.get(key)
                if instance is None:
                    countries_to_create.append(Country(last_refreshed_at=now, **record))
                    continue
                for field in COUNTRY_FIELDS:
                    setattr(instance, field, record[field])
                # Same stamp as new rows and the cache status.
                instance.last_refreshed_at = now
                countries_to_update.append(instance)

            if countries_to_create:
                Country.objects.bulk_create(countries_to_create, batch_size=BATCH_SIZE)
                logger.info(f"Bulk-created {len(countries_to_create)} countries.")
            if countries_to_update:
                Country.objects.bulk_update(
                    countries_to_update,
                    COUNTRY_FIELDS + ['last_refreshed_at'],
                    batch_size=BATCH_SIZE,
                )
                logger.info(f"Bulk-updated {len(countries_to_update)} countries.")

            cache_status, _ = CacheStatus.objects.select_for_update().get_or_create(
                pk=CacheStatus.SINGLETON_PK
            )
            previous = cache_status.last_refreshed_at
            cache_status.last_refreshed_at = now if previous is None else max(now, previous)
            cache_status.save(update_fields=['last_refreshed_at'])
            logger.info(f"Updated cache status with new refresh time: {cache_status.last_refreshed_at}")

            transaction.on_commit(schedule_summary_image)
            logger.debug("Committing database transaction.")
    except DatabaseError as e:
        logger.error(f"Database error during refresh, transaction rolled back: {e}", exc_info=True)
        raise CacheWriteError("Failed to save data to the database.") from e

    return len(writable), cache_status.last_refreshed_at


# ==============================================================================
# SUMMARY IMAGE
# ==============================================================================

def format_gdp(value):
    if value is None:
        return "N/A"
    return f"${value:,.0f}"


def summary_lines(total_countries, top_countries, refreshed_at):
    """Return (title, total line, ranking lines, refresh line) for the image."""
    ranking = [
        f"{rank}. {country.name} — {format_gdp(country.estimated_gdp)}"
        for rank, country in enumerate(top_countries, start=1)
    ]
    if refreshed_at:
        refreshed = refreshed_at.strftime('%Y-%m-%d %H:%M:%S UTC')
    else:
        refreshed = "N/A"
    return (
        "Country Data Summary",
        f"Total Countries: {total_countries}",
        ranking,
        f"Last Refreshed: {refreshed}",
    )


def _load_fonts():
    font_path = settings.SUMMARY_FONT_PATH
    try:
        return ImageFont.truetype(font_path, 30), ImageFont.truetype(font_path, 20)
    except OSError:
        render_logger.warning(f"Font not found at {font_path}. Falling back to default font.")
        default = ImageFont.load_default()
        return default, default


def render_summary_image():
    """Draw the summary PNG from the current cache and write it to SUMMARY_IMAGE_PATH."""
    render_logger.debug("Starting summary image generation...")
    total_countries = Country.objects.count()
    top_countries = list(
        Country.objects.order_by(F('estimated_gdp').desc(nulls_last=True), 'id')
        .only('name', 'estimated_gdp')[:TOP_COUNTRIES_LIMIT]
    )
    cache_status = CacheStatus.objects.filter(pk=CacheStatus.SINGLETON_PK).first()
    refreshed_at = cache_status.last_refreshed_at if cache_status else None

    title, total_line, ranking, refreshed_line = summary_lines(total_countries, top_countries, refreshed_at)
    title_font, text_font = _load_fonts()

    img = Image.new('RGB', IMAGE_SIZE, color='white')
    d = ImageDraw.Draw(img)
    d.text((30, 25), title, fill=(0, 0, 0), font=title_font)
    d.text((30, 80), total_line, fill=(50, 50, 50), font=text_font)
    d.text((30, 120), "Top 5 Countries by Estimated GDP:", fill=(0, 0, 0), font=text_font)
    y_pos = 155
    for line in ranking:
        d.text((50, y_pos), line, fill=(20, 20, 20), font=text_font)
        y_pos += 32
    d.text((30, 350), refreshed_line, fill=(50, 50, 50), font=text_font)

    path = settings.SUMMARY_IMAGE_PATH
    os.makedirs(os.path.dirname(path), exist_ok=True)
    img.save(path, 'PNG')
    render_logger.info(f"Summary image successfully generated and saved to {path}")
    return path


def _render_in_background():
    try:
        render_summary_image()
    except Exception as e:
        # A failed render must never affect the refresh that triggered it.
        render_logger.error(f"Failed to generate summary image: {e}", exc_info=True)
    finally:
        close_old_connections()


def schedule_summary_image():
    """Queue a summary render on the background worker and return its future."""
    render_logger.debug("Queued summary image generation.")
    return _render_executor.submit(_render_in_background)


# ==============================================================================
# MAIN DATA REFRESH LOGIC
# ==============================================================================

def refresh_country_data(transport=None, rng=random):
    """
    Fetch, transform and store all countries, then queue the summary image.

    Raises ExternalServiceError when an upstream API fails and
    CacheWriteError when the database write fails; in both cases the
    stored data is left as it was.
    """
    logger.info("Country data refresh process initiated.")

    countries_data, exchange_rates = fetch_upstream_data(transport=transport)
    logger.info(f"Processing {len(countries_data)} countries and {len(exchange_rates)} exchange rates.")

    records = [build_country_record(c, exchange_rates, rng=rng) for c in countries_data]
    processed, refreshed_at = write_country_cache(records)

    logger.info("Country data refresh process completed successfully.")
    return {
        "message": "Country data refreshed successfully",
        "countries_processed": processed,
        "last_refreshed_at": refreshed_at.isoformat(),
    }


# ==============================================================================
# LOOKUPS
# ==============================================================================

def _name_matches(needle, country):
    return needle.lower() in country.name.lower()


def find_country_by_name(name):
    """First country (by id) whose name contains `name`, ignoring case."""
    for country in Country.objects.order_by('id').iterator():
        if _name_matches(name, country):
            return country
    return None


def find_countries_by_name(name):
    """Every country whose name contains `name`, ignoring case, in id order."""
    return [c for c in Country.objects.order_by('id').iterator() if _name_matches(name, c)]
