"""
Pytest configuration and fixtures for the Ether Rent API tests.
"""
import pytest
import sys
import os
from datetime import datetime
from unittest.mock import MagicMock
from werkzeug.security import generate_password_hash

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import app as app_module
import utils
from config import Config


class FakeDatabaseService:
    """In-memory stand-in for DatabaseService with the same method surface."""

    def __init__(self):
        self.tables = {name: {} for name in ('users', 'cars', 'car_availabilities', 'bookings', 'site_settings')}
        self._ids = {name: 0 for name in self.tables}

    def _insert(self, table, row):
        self._ids[table] += 1
        row = dict(row, id=self._ids[table])
        self.tables[table][row['id']] = row
        return dict(row)

    def _update(self, table, row_id, changes):
        row = self.tables[table].get(row_id)
        if row is None:
            return None
        row.update(changes)
        return dict(row)

    def _with_car(self, row):
        row = dict(row)
        car = self.tables['cars'].get(row.get('car_id'))
        row['cars'] = {'id': car['id'], 'name': car['name'], 'type': car['type']} if car else None
        return row

    def ping(self):
        return True

    # Users
    def get_user_by_username(self, username):
        for user in self.tables['users'].values():
            if user['username'] == username:
                return dict(user)
        return None

    def create_user(self, user_data):
        return self._insert('users', dict(user_data, created_at=datetime.now().isoformat()))

    # Cars
    def get_cars(self, car_type=None):
        return [dict(c) for c in self.tables['cars'].values() if not car_type or c['type'] == car_type]

    def get_car_by_id(self, car_id):
        car = self.tables['cars'].get(car_id)
        return dict(car) if car else None

    def create_car(self, car_data):
        row = {'is_available': True, 'gallery': [], 'features': []}
        row.update(car_data)
        return self._insert('cars', row)

    def update_car(self, car_id, update_data):
        return self._update('cars', car_id, update_data)

    def delete_car(self, car_id):
        if self.tables['cars'].pop(car_id, None) is None:
            return False
        windows = self.tables['car_availabilities']
        for window_id in [w['id'] for w in windows.values() if w['car_id'] == car_id]:
            del windows[window_id]
        return True

    # Availability windows
    def get_availability_windows(self, car_id=None):
        windows = [self._with_car(w) for w in self.tables['car_availabilities'].values()
                   if car_id is None or w['car_id'] == car_id]
        return sorted(windows, key=lambda w: w['start_date'])

    def get_availability_window(self, window_id):
        window = self.tables['car_availabilities'].get(window_id)
        return dict(window) if window else None

    def create_availability_window(self, window_data):
        row = {'is_available': True, 'city': None, 'car_type': None}
        row.update(window_data)
        return self._insert('car_availabilities', row)

    def update_availability_window(self, window_id, update_data):
        return self._update('car_availabilities', window_id, update_data)

    def delete_availability_window(self, window_id):
        return self.tables['car_availabilities'].pop(window_id, None) is not None

    # Bookings
    def create_booking(self, booking_data):
        return self._insert('bookings', booking_data)

    def get_bookings_filtered(self, filters=None):
        filters = filters or {}
        result = []
        for booking in self.tables['bookings'].values():
            if filters.get('status') and booking['status'] != filters['status']:
                continue
            if filters.get('car_id') and booking.get('car_id') != filters['car_id']:
                continue
            if filters.get('user_id') and booking.get('user_id') != filters['user_id']:
                continue
            if filters.get('start_date') and booking['pickup_date'] < filters['start_date']:
                continue
            if filters.get('end_date') and booking['return_date'] > filters['end_date']:
                continue
            result.append(self._with_car(booking))
        return sorted(result, key=lambda b: b['created_at'], reverse=True)

    def get_booking_by_id(self, booking_id):
        booking = self.tables['bookings'].get(booking_id)
        return self._with_car(booking) if booking else None

    def update_booking(self, booking_id, update_data):
        updated = self._update('bookings', booking_id, dict(update_data, updated_at=datetime.now().isoformat()))
        return self._with_car(updated) if updated else None

    # Site settings
    def get_site_settings(self):
        rows = list(self.tables['site_settings'].values())
        return dict(rows[0]) if rows else None

    def upsert_site_settings(self, settings_data):
        existing = self.get_site_settings()
        if existing:
            return self._update('site_settings', existing['id'], settings_data)
        return self._insert('site_settings', {**Config.DEFAULT_SITE_SETTINGS, **settings_data})


@pytest.fixture
def fake_db():
    return FakeDatabaseService()


@pytest.fixture
def test_app(monkeypatch, fake_db):
    """Application wired to the in-memory store, with email delivery mocked."""
    monkeypatch.setattr(app_module, 'db_service', fake_db)
    monkeypatch.setattr(app_module, 'email_service', MagicMock())
    app_module.app.config.update(
        TESTING=True,
        SECRET_KEY='test-secret',
        SESSION_COOKIE_SECURE=False,
        SESSION_COOKIE_SAMESITE='Lax'
    )
    utils.rate_limit_storage.clear()
    yield app_module.app
    utils.rate_limit_storage.clear()


@pytest.fixture
def client(test_app):
    """Flask test client."""
    return test_app.test_client()


@pytest.fixture
def admin_user(fake_db):
    return fake_db.create_user({
        'username': 'admin',
        'password': generate_password_hash('admin123'),
        'is_admin': True,
        'full_name': 'Admin User',
        'email': 'admin@example.com'
    })


@pytest.fixture
def regular_user(fake_db):
    return fake_db.create_user({
        'username': 'jane',
        'password': generate_password_hash('secret99'),
        'is_admin': False,
        'full_name': 'Jane Doe',
        'email': 'jane@example.com'
    })


@pytest.fixture
def admin_client(client, admin_user):
    response = client.post('/api/auth/login', json={'username': 'admin', 'password': 'admin123'})
    assert response.status_code == 200
    return client


@pytest.fixture
def user_client(client, regular_user):
    response = client.post('/api/auth/login', json={'username': 'jane', 'password': 'secret99'})
    assert response.status_code == 200
    return client


@pytest.fixture
def sample_cars(fake_db):
    """Three catalogue cars of different types."""
    return [
        fake_db.create_car({'name': 'Tesla Model S', 'type': 'Electric', 'seats': 5, 'power': '670 hp',
                            'rating': '4.9', 'price': 199.0, 'image': '/cars/tesla.jpg',
                            'features': ['Autopilot']}),
        fake_db.create_car({'name': 'BMW M4', 'type': 'Sports', 'seats': 4, 'power': '503 hp',
                            'rating': '4.8', 'price': 249.0, 'image': '/cars/m4.jpg'}),
        fake_db.create_car({'name': 'Range Rover Sport', 'type': 'SUV', 'seats': 7, 'power': '395 hp',
                            'rating': '4.7', 'price': 279.0, 'image': '/cars/rr.jpg'}),
    ]


@pytest.fixture
def booking_payload():
    return {
        'pickupLocation': 'Casablanca Airport',
        'returnLocation': 'Marrakech Center',
        'pickupDate': '2024-06-10',
        'returnDate': '2024-06-15',
        'carType': 'SUV',
        'name': 'John Smith',
        'email': 'John@Example.com',
        'phone': '+212 600 123 456'
    }
