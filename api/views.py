# api/views.py
import logging
from django.conf import settings
from django.http import FileResponse, Http404
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import generics, status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from .filters import CountryFilter, GdpSortFilter
from .models import Country, CacheStatus
from .serializers import CountrySerializer, StatusSerializer
from .services import (
    ExternalServiceError,
    find_countries_by_name,
    find_country_by_name,
    refresh_country_data,
)

logger = logging.getLogger('api')


# --- Main Refresh Endpoint ---

@api_view(['POST'])
def refresh_countries_view(request):
    """
    Handles POST /api/countries/refresh.
    Maps upstream failures to 503 and everything else to 500.
    """
    logger.info(f"Received request to {request.path} from {request.META.get('REMOTE_ADDR')}")
    try:
        result = refresh_country_data()
        return Response(result, status=status.HTTP_200_OK)

    except ExternalServiceError as e:
        logger.error(f"External service error during refresh: {e.service_name}", exc_info=True)
        return Response(
            {"error": "External data source unavailable", "details": str(e)},
            status=status.HTTP_503_SERVICE_UNAVAILABLE
        )
    except Exception as e:
        logger.critical(f"An unexpected internal server error occurred during refresh: {e}", exc_info=True)
        return Response(
            {"error": "Internal server error", "details": str(e)},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


# --- Country List and Detail Views ---

class CountryListView(generics.ListAPIView):
    """
    Handles GET /api/countries.
    Supports ?region=, ?currency= and ?sort=gdp_asc|gdp_desc.
    """
    queryset = Country.objects.all()
    serializer_class = CountrySerializer
    filterset_class = CountryFilter
    filter_backends = [DjangoFilterBackend, GdpSortFilter]
    ordering = ['id']


class CountryDetailView(generics.RetrieveDestroyAPIView):
    """
    Handles GET and DELETE /api/countries/:name.
    `name` matches any country whose name contains it, ignoring case.
    GET returns the first match by id, DELETE removes every match.
    """
    queryset = Country.objects.all()
    serializer_class = CountrySerializer
    lookup_field = 'name'

    def get_object(self):
        name = self.kwargs[self.lookup_field]
        country = find_country_by_name(name)
        if country is None:
            logger.warning(f"Country matching '{name}' not found.")
            raise Http404
        return country

    def retrieve(self, request, *args, **kwargs):
        instance = self.get_object()
        logger.info(f"Successfully retrieved country: {instance.name}")
        serializer = self.get_serializer(instance)
        return Response(serializer.data, status=status.HTTP_200_OK)

    def destroy(self, request, *args, **kwargs):
        name = self.kwargs[self.lookup_field]
        matches = find_countries_by_name(name)
        if not matches:
            logger.warning(f"Country matching '{name}' not found.")
            raise Http404
        Country.objects.filter(pk__in=[c.pk for c in matches]).delete()
        logger.info(f"Deleted {len(matches)} countries matching '{name}': {[c.name for c in matches]}")
        return Response(status=status.HTTP_204_NO_CONTENT)


# --- Status and Image Endpoints ---

@api_view(['GET'])
def status_view(request):
    """
    Handles GET /api/status.
    Returns the number of cached countries and the last refresh timestamp.
    """
    logger.debug(f"Status endpoint requested by {request.META.get('REMOTE_ADDR')}")
    cache_status = CacheStatus.objects.filter(pk=CacheStatus.SINGLETON_PK).first()
    if cache_status is None:
        logger.warning("Cache status row is missing.")
        return Response(
            {"error": "Status information not available. Please run a refresh."},
            status=status.HTTP_404_NOT_FOUND
        )

    serializer = StatusSerializer({
        "total_countries": Country.objects.count(),
        "last_refreshed_at": cache_status.last_refreshed_at,
    })
    return Response(serializer.data)


@api_view(['GET'])
def summary_image_view(request):
    """
    Handles GET /api/countries/image.
    Serves the generated summary image file.
    """
    logger.debug(f"Image endpoint requested by {request.META.get('REMOTE_ADDR')}")
    try:
        return FileResponse(open(settings.SUMMARY_IMAGE_PATH, 'rb'), content_type='image/png')
    except FileNotFoundError:
        logger.warning(f"Summary image not found at {settings.SUMMARY_IMAGE_PATH}")
        return Response(
            {"error": "Summary image not found. Run the /api/countries/refresh endpoint first."},
            status=status.HTTP_404_NOT_FOUND
        )
