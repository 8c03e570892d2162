"""
HTTP client for the marketplace admin API.

The backend owns every vendor, restaurant and listing record and makes
all verification and moderation decisions; this client only turns calls
into requests and responses into data or approvals errors.
"""
import logging

import requests
from django.conf import settings

from .entities import EntityType
from .exceptions import DependencyConflict, NetworkFailure, UnknownServerError

logger = logging.getLogger(__name__)

COLLECTION_PATHS = {
    EntityType.VENDOR: 'vendors',
    EntityType.RESTAURANT: 'restaurants',
    EntityType.LISTING: 'listings',
}


def _encode_params(params):
    """Drop empty values and send booleans the way the backend expects."""
    encoded = {}
    for key, value in (params or {}).items():
        if value is None or value == '':
            continue
        if isinstance(value, bool):
            value = 'true' if value else 'false'
        encoded[key] = value
    return encoded


def normalize_list_response(payload):
    """List endpoints always hand back ``data`` as a list."""
    if not isinstance(payload, dict):
        return {'data': []}
    normalized = dict(payload)
    if not isinstance(normalized.get('data'), list):
        normalized['data'] = []
    return normalized


class MarketplaceClient:
    """Thin wrapper around the ``/admin`` endpoints of the marketplace API."""

    def __init__(self, base_url, token='', timeout=10, session=None):
        self.base_url = base_url.rstrip('/') + '/admin/'
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self):
        headers = {
            'Content-Type': 'application/json',
            'Accept': 'application/json',
        }
        if self.token:
            headers['Authorization'] = f'Bearer {self.token}'
        return headers

    def _request(self, method, path, params=None, json=None):
        url = self.base_url + path
        logger.debug(f"{method} {url} params={params}")

        try:
            response = self.session.request(
                method,
                url,
                params=_encode_params(params),
                json=json,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            logger.warning(f"Marketplace API unreachable for {method} {path}: {e}")
            raise NetworkFailure() from e
        except requests.RequestException as e:
            logger.error(f"Marketplace API request failed for {method} {path}: {e}")
            raise UnknownServerError(str(e)) from e

        try:
            data = response.json()
        except ValueError:
            data = None

        if 200 <= response.status_code < 300:
            if data is None:
                if response.status_code == 204:
                    return {}
                raise UnknownServerError('The server returned an unreadable response.', response.status_code)
            return data

        body = data if isinstance(data, dict) else {}
        message = (
            body.get('message')
            or body.get('error')
            or f'Request failed with status {response.status_code}'
        )

        if body.get('dependencies'):
            logger.warning(f"{method} {path} blocked by dependencies: {body['dependencies']}")
            raise DependencyConflict(
                message,
                dependencies=body['dependencies'],
                suggestions=body.get('suggestions'),
            )

        logger.warning(f"{method} {path} failed with {response.status_code}: {message}")
        raise UnknownServerError(message, response.status_code)

    def _list(self, path, params):
        return normalize_list_response(self._request('GET', path, params=params))

    # ============ Collections ============

    def pending_vendors(self, params=None):
        return self._list('vendors/pending', params)

    def pending_restaurants(self, params=None):
        return self._list('restaurants/pending', params)

    def all_vendors(self, params=None):
        return self._list('vendors', params)

    def all_restaurants(self, params=None):
        return self._list('restaurants', params)

    def listings(self, params=None):
        return self._list('listings', params)

    def fetch_collection(self, entity_type, params=None, pending=False):
        """Fetch one collection, using the pending endpoint when asked."""
        entity_type = EntityType(entity_type)
        if entity_type == EntityType.VENDOR:
            return self.pending_vendors(params) if pending else self.all_vendors(params)
        if entity_type == EntityType.RESTAURANT:
            return self.pending_restaurants(params) if pending else self.all_restaurants(params)
        return self.listings(params)

    # ============ Verification ============

    def toggle_vendor_verification(self, vendor_id, is_verified, reason=''):
        return self._request(
            'PUT', f'vendors/{vendor_id}/verification',
            json={'isVerified': is_verified, 'reason': reason},
        )

    def toggle_restaurant_verification(self, restaurant_id, is_verified, reason=''):
        return self._request(
            'PUT', f'restaurants/{restaurant_id}/verification',
            json={'isVerified': is_verified, 'reason': reason},
        )

    def toggle_verification(self, entity_type, entity_id, is_verified, reason=''):
        entity_type = EntityType(entity_type)
        if entity_type == EntityType.VENDOR:
            return self.toggle_vendor_verification(entity_id, is_verified, reason)
        if entity_type == EntityType.RESTAURANT:
            return self.toggle_restaurant_verification(entity_id, is_verified, reason)
        raise ValueError(f'{entity_type.value} records have no verification flag')

    def bulk_verification(self, entity_ids, entity_type, is_verified, reason=''):
        return self._request('POST', 'bulk/verification', json={
            'entityIds': list(entity_ids),
            'entityType': EntityType(entity_type).value,
            'isVerified': is_verified,
            'reason': reason,
        })

    # ============ Moderation ============

    def bulk_moderate(self, payload):
        return self._request('POST', 'listings/bulk-moderate', json=payload)

    # ============ Destructive actions ============

    def deactivate(self, entity_type, entity_id, reason):
        path = COLLECTION_PATHS[EntityType(entity_type)]
        return self._request('PUT', f'{path}/{entity_id}/deactivate', json={'reason': reason})

    def safe_delete(self, entity_type, entity_id, reason):
        path = COLLECTION_PATHS[EntityType(entity_type)]
        return self._request('DELETE', f'{path}/{entity_id}/safe-delete', json={'reason': reason})


def get_client():
    """Client configured from Django settings."""
    return MarketplaceClient(
        base_url=settings.MARKETPLACE_API_URL,
        token=getattr(settings, 'MARKETPLACE_API_TOKEN', ''),
        timeout=getattr(settings, 'MARKETPLACE_API_TIMEOUT', 10),
    )
