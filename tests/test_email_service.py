"""
Tests for booking status notifications.
"""
from unittest.mock import MagicMock, patch

import pytest
import requests

import email_service as email_module
from email_service import EmailService


BOOKING = {
    'id': 12,
    'status': 'accepted',
    'name': 'John Smith',
    'email': 'john@example.com',
    'car_type': 'SUV',
    'cars': {'id': 3, 'name': 'Range Rover Sport', 'type': 'SUV'},
    'pickup_location': 'Casablanca Airport',
    'pickup_date': '2024-06-10',
    'return_location': 'Marrakech Center',
    'return_date': '2024-06-15',
    'rejection_reason': None
}


@pytest.fixture
def service():
    service = EmailService()
    service.service_id = 'service_x'
    service.public_key = 'public_x'
    service.private_key = 'private_x'
    service.status_template_id = 'template_status'
    return service


def test_status_params(service):
    params = service.build_status_params(BOOKING)

    assert params['to_email'] == 'john@example.com'
    assert params['subject'] == 'Your Car Rental Booking #12 has been Confirmed'
    assert params['car'] == 'Range Rover Sport'
    assert params['pickup'] == 'Casablanca Airport on 10/06/2024'
    assert params['rejection_reason'] == ''


def test_rejection_params_fall_back_to_car_type(service):
    booking = dict(BOOKING, status='rejected', rejection_reason='Fleet maintenance', cars=None, name=None)

    params = service.build_status_params(booking)

    assert params['car'] == 'SUV'
    assert params['to_name'] == 'Customer'
    assert params['rejection_reason'] == 'Fleet maintenance'
    assert 'declined' in params['message']


def test_sends_through_emailjs(service):
    with patch.object(email_module.requests, 'post', return_value=MagicMock(status_code=200)) as post:
        assert service.send_booking_status_email(BOOKING) is True

    payload = post.call_args[1]['json']
    assert post.call_args[0][0] == email_module.EMAILJS_SEND_URL
    assert payload['template_id'] == 'template_status'
    assert payload['accessToken'] == 'private_x'
    assert payload['template_params']['booking_id'] == 12


def test_api_error_returns_false(service):
    with patch.object(email_module.requests, 'post', return_value=MagicMock(status_code=400, text='bad template')):
        assert service.send_booking_status_email(BOOKING) is False


def test_network_error_returns_false(service):
    with patch.object(email_module.requests, 'post', side_effect=requests.ConnectionError('down')):
        assert service.send_booking_status_email(BOOKING) is False


def test_skips_booking_without_email(service):
    with patch.object(email_module.requests, 'post') as post:
        assert service.send_booking_status_email(dict(BOOKING, email=None)) is False
    post.assert_not_called()


def test_skips_when_not_configured(service):
    service.status_template_id = None
    with patch.object(email_module.requests, 'post') as post:
        assert service.send_booking_status_email(BOOKING) is False
    post.assert_not_called()
