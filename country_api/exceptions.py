# country_api/exceptions.py
from django.http import Http404
from rest_framework.views import exception_handler


def custom_exception_handler(exc, context):
    """
    Custom exception handler for Django REST Framework.
    Rewrites DRF's default error bodies into the project's shape,
    e.g. {"error": "Country not found"}.
    """
    # Let DRF build the standard response (status code, headers) first.
    response = exception_handler(exc, context)

    if response is None:
        return response

    if response.status_code == 404:
        # A bare Http404 carries Django's generic message; use ours instead.
        if isinstance(exc, Http404) or not response.data.get('detail'):
            response.data = {'error': 'Country not found'}
        else:
            response.data = {'error': str(response.data['detail'])}
    elif response.status_code == 400:
        custom_data = {'error': 'Validation failed'}
        # ValidationError raised with {"details": {...}} keeps its details,
        # django-filter errors come through as {field: [messages]}.
        if 'details' in response.data:
            custom_data['details'] = response.data['details']
        else:
            custom_data['details'] = response.data
        response.data = custom_data
    elif response.status_code >= 500:
        response.data = {'error': 'Internal server error'}

    return response
