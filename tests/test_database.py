"""
Tests for the Supabase data layer, with the client mocked out.
"""
from unittest.mock import MagicMock, patch

import pytest

from config import Config
from database import DatabaseService


def query_builder(data):
    """A chainable Supabase query whose execute() returns the given rows."""
    builder = MagicMock()
    for method in ('select', 'eq', 'gte', 'lte', 'order', 'limit', 'insert', 'update', 'delete'):
        getattr(builder, method).return_value = builder
    builder.execute.return_value = MagicMock(data=data)
    return builder


@pytest.fixture
def clients():
    anon, admin = MagicMock(), MagicMock()
    with patch('database.create_client', side_effect=[anon, admin]) as create:
        service = DatabaseService('https://db.test', 'anon-key', 'service-key')
        service.get_admin_client()
    assert create.call_count == 2
    return service, anon, admin


def test_admin_client_requires_service_key():
    with patch('database.create_client', return_value=MagicMock()):
        service = DatabaseService('https://db.test', 'anon-key')
    with pytest.raises(RuntimeError):
        service.get_admin_client()


def test_public_reads_use_anon_client(clients):
    service, anon, admin = clients
    builder = query_builder([{'id': 1, 'type': 'SUV'}])
    anon.table.return_value = builder

    assert service.get_cars(car_type='SUV') == [{'id': 1, 'type': 'SUV'}]

    anon.table.assert_called_with('cars')
    builder.eq.assert_called_with('type', 'SUV')
    admin.table.assert_not_called()


def test_missing_rows_are_none(clients):
    service, anon, admin = clients
    admin.table.return_value = query_builder([])
    anon.table.return_value = query_builder([])

    assert service.get_car_by_id(5) is None
    assert service.update_booking(5, {'status': 'accepted'}) is None
    assert service.delete_car(5) is False


def test_booking_filters(clients):
    service, anon, admin = clients
    builder = query_builder([])
    admin.table.return_value = builder

    service.get_bookings_filtered({'status': 'pending', 'start_date': '2024-06-01', 'end_date': '2024-06-30'})

    builder.eq.assert_called_once_with('status', 'pending')
    builder.gte.assert_called_once_with('pickup_date', '2024-06-01')
    builder.lte.assert_called_once_with('return_date', '2024-06-30')
    builder.order.assert_called_once_with('created_at', desc=True)


def test_settings_insert_uses_defaults(clients):
    service, anon, admin = clients
    anon.table.return_value = query_builder([])
    builder = query_builder([{'id': 1, 'site_name': 'Atlas'}])
    admin.table.return_value = builder

    service.upsert_site_settings({'site_name': 'Atlas'})

    row = builder.insert.call_args[0][0]
    assert row['site_name'] == 'Atlas'
    assert row['logo_color'] == Config.DEFAULT_SITE_SETTINGS['logo_color']
    builder.update.assert_not_called()


def test_settings_update_existing_row(clients):
    service, anon, admin = clients
    anon.table.return_value = query_builder([{'id': 4, 'site_name': 'Ether'}])
    builder = query_builder([{'id': 4, 'site_name': 'Atlas'}])
    admin.table.return_value = builder

    assert service.upsert_site_settings({'site_name': 'Atlas'})['site_name'] == 'Atlas'
    builder.eq.assert_called_with('id', 4)
    builder.insert.assert_not_called()


def test_failed_insert_raises(clients):
    service, anon, admin = clients
    admin.table.return_value = query_builder([])

    with pytest.raises(RuntimeError):
        service.create_booking({'car_type': 'SUV'})
