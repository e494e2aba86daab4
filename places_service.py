"""
Google Places lookups for school address entry
"""
import logging

import requests

from exceptions import ConfigurationError, PlacesError, ValidationError

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 3


class PlacesClient:

    def __init__(self, api_key, base_url='https://maps.googleapis.com/maps/api/place',
                 session=None, timeout=15):
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self.session = session or requests.Session()
        self.timeout = timeout

    def _get(self, path, params, ok_statuses=('OK',)):
        if not self.api_key:
            raise ConfigurationError('GOOGLE_MAPS_API_KEY is not configured')
        params = dict(params, key=self.api_key)
        try:
            response = self.session.get(f"{self.base_url}{path}", params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            logger.error("Places request %s failed: %s", path, e)
            raise PlacesError(f"Places request failed: {e}") from e
        except ValueError as e:
            raise PlacesError('Places returned invalid JSON') from e

        if data.get('status') not in ok_statuses:
            logger.error("Google Places API error: %s %s", data.get('status'), data.get('error_message'))
            raise PlacesError(data.get('error_message') or data.get('status') or 'Unknown error')
        return data

    def autocomplete(self, query):
        """Address predictions in Nigeria; short queries return nothing"""
        query = (query or '').strip()
        if len(query) < MIN_QUERY_LENGTH:
            return []
        data = self._get('/autocomplete/json', {
            'input': query,
            'components': 'country:ng',
            'types': 'address',
        }, ok_statuses=('OK', 'ZERO_RESULTS'))
        predictions = data.get('predictions') or []
        logger.info("Found %d predictions for %r", len(predictions), query)
        return predictions

    def details(self, place_id):
        if not place_id:
            raise ValidationError('place_id is required')
        data = self._get('/details/json', {
            'place_id': place_id,
            'fields': 'geometry,formatted_address,name',
        })
        result = data.get('result') or {}
        location = (result.get('geometry') or {}).get('location') or {}
        return {
            'formatted_address': result.get('formatted_address'),
            'name': result.get('name'),
            'lat': location.get('lat'),
            'lng': location.get('lng'),
        }
