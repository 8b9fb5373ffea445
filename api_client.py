"""
HTTP client for the Ether Rent API

Reads go through a single QueryCache with time-based staleness; any write
invalidates the cached paths it can affect. GET requests are retried a fixed
small number of times on connection errors and 5xx responses.
"""

import time
import logging
from typing import Any, Dict, Optional
import requests

logger = logging.getLogger(__name__)

DEFAULT_STALE_SECONDS = 3 * 60
DEFAULT_RETRIES = 2


class ApiError(Exception):
    """Raised when the API answers with success=false or a non-2xx status"""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class QueryCache:
    """Response cache keyed by request path and query string"""

    def __init__(self, stale_after: float = DEFAULT_STALE_SECONDS, clock=time.monotonic):
        self.stale_after = stale_after
        self._clock = clock
        self._entries: Dict[str, tuple] = {}

    def get(self, key: str):
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at > self.stale_after:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = (self._clock(), value)

    def invalidate(self, prefix: str = '') -> None:
        for key in [k for k in self._entries if k.startswith(prefix)]:
            del self._entries[key]

    def __len__(self):
        return len(self._entries)


class RentalApiClient:
    """Client for the public and admin endpoints.

    A requests.Session carries the login cookie between calls.
    """

    def __init__(self, base_url: str, cache: Optional[QueryCache] = None,
                 retries: int = DEFAULT_RETRIES, timeout: float = 10, session: requests.Session = None):
        self.base_url = base_url.rstrip('/')
        self.cache = cache if cache is not None else QueryCache()
        self.retries = retries
        self.timeout = timeout
        self.session = session or requests.Session()

    @staticmethod
    def _cache_key(path: str, params: Optional[dict]) -> str:
        if not params:
            return path
        query = '&'.join(f"{k}={params[k]}" for k in sorted(params) if params[k] is not None)
        return f"{path}?{query}" if query else path

    def _unwrap(self, response: requests.Response) -> Any:
        try:
            body = response.json()
        except ValueError:
            body = {'success': False, 'message': response.text or response.reason}

        if not response.ok or not body.get('success', False):
            raise ApiError(response.status_code, body.get('message') or response.reason)
        return body.get('data')

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        attempts = 1 + (self.retries if method == 'GET' else 0)

        for attempt in range(1, attempts + 1):
            try:
                response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            except (requests.ConnectionError, requests.Timeout) as e:
                if attempt == attempts:
                    raise
                logger.warning(f"{method} {path} failed ({e}), retry {attempt}/{self.retries}")
                continue

            if response.status_code >= 500 and attempt < attempts:
                logger.warning(f"{method} {path} returned {response.status_code}, retry {attempt}/{self.retries}")
                continue
            return response

    def get(self, path: str, params: Optional[dict] = None, use_cache: bool = True) -> Any:
        key = self._cache_key(path, params)
        if use_cache:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        data = self._unwrap(self._request('GET', path, params=params))
        if use_cache:
            self.cache.set(key, data)
        return data

    def send(self, method: str, path: str, payload: Optional[dict] = None, invalidates=()) -> Any:
        data = self._unwrap(self._request(method, path, json=payload))
        for prefix in invalidates:
            self.cache.invalidate(prefix)
        return data

    # Auth

    def login(self, username: str, password: str) -> Dict[str, Any]:
        user = self.send('POST', '/api/auth/login', {'username': username, 'password': password})
        # Admin-only responses differ per user
        self.cache.invalidate()
        return user

    def logout(self) -> None:
        self.send('POST', '/api/auth/logout')
        self.cache.invalidate()

    def me(self) -> Optional[Dict[str, Any]]:
        try:
            return self.get('/api/auth/me', use_cache=False)
        except ApiError as e:
            if e.status_code == 401:
                return None
            raise

    # Catalogue

    def cars(self, car_type: str = None, currency: str = None):
        return self.get('/api/cars', {'type': car_type, 'currency': currency})

    def available_cars(self, start_date: str, end_date: str, car_type: str = None, city: str = None):
        return self.get('/api/cars/available', {
            'startDate': start_date, 'endDate': end_date, 'type': car_type, 'city': city
        })

    def settings(self):
        return self.get('/api/settings')

    # Bookings

    def create_booking(self, booking: dict):
        return self.send('POST', '/api/bookings', booking, invalidates=('/api/bookings', '/api/customers'))

    def bookings(self, status: str = None):
        return self.get('/api/bookings', {'status': status})

    def set_booking_status(self, booking_id: int, status: str, rejection_reason: str = None):
        payload = {'status': status}
        if rejection_reason:
            payload['rejectionReason'] = rejection_reason
        return self.send('PATCH', f'/api/bookings/{booking_id}', payload,
                         invalidates=('/api/bookings', '/api/customers', '/api/admin'))

    def customers(self, query: str = None):
        return self.get('/api/customers', {'q': query})

    # Availability windows

    def create_window(self, window: dict):
        return self.send('POST', '/api/cars/availability', window, invalidates=('/api/cars',))

    def update_window(self, window_id: int, changes: dict):
        return self.send('PATCH', f'/api/cars/availability/{window_id}', changes, invalidates=('/api/cars',))

    def delete_window(self, window_id: int) -> None:
        self.send('DELETE', f'/api/cars/availability/{window_id}', invalidates=('/api/cars',))
