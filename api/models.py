# api/models.py
from django.db import models
from django.utils import timezone


class Country(models.Model):
    name = models.CharField(max_length=255, unique=True)
    capital = models.CharField(max_length=255, null=True, blank=True)
    region = models.CharField(max_length=100, null=True, blank=True)
    population = models.PositiveBigIntegerField()
    currency_code = models.CharField(max_length=10, null=True, blank=True)
    # Units of local currency per 1 USD.
    exchange_rate = models.DecimalField(max_digits=20, decimal_places=6, null=True, blank=True)
    # Synthetic figure: population * random(1000..2000) / exchange_rate.
    estimated_gdp = models.DecimalField(max_digits=24, decimal_places=2, null=True, blank=True)
    flag_url = models.URLField(max_length=255, null=True, blank=True)
    # Bulk writes bypass save(), so the refresh stamps this column itself.
    last_refreshed_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name_plural = "Countries"

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        self.last_refreshed_at = timezone.now()
        update_fields = kwargs.get('update_fields')
        if update_fields is not None:
            kwargs['update_fields'] = {*update_fields, 'last_refreshed_at'}
        super().save(*args, **kwargs)


class CacheStatus(models.Model):
    """Singleton row (pk=1) recording when the country cache was last refreshed."""

    SINGLETON_PK = 1

    # Null until the first successful refresh.
    last_refreshed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name_plural = "Cache status"

    def __str__(self):
        if self.last_refreshed_at:
            return f"Last refreshed at {self.last_refreshed_at}"
        return "Never refreshed"
