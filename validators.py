"""
Validation module for Ether Rent API
Contains all validation functions for incoming JSON payloads.
Every validator takes the camelCase request body and returns a snake_case
dict ready for the database layer.
"""

import re
import json
from werkzeug.exceptions import BadRequest
from config import Config
from utils import parse_date, parse_date_range

HEX_COLOR_RE = re.compile(r'^#(?:[0-9a-fA-F]{3}){1,2}$')
USERNAME_RE = re.compile(r'^[A-Za-z0-9_.-]{3,50}$')


def validate_email(email: str) -> bool:
    """Validate email format"""
    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return re.match(pattern, email) is not None


def validate_phone(phone: str) -> bool:
    """Validate phone format (10-15 digits once punctuation is removed)"""
    clean_phone = re.sub(r'\D', '', phone)
    return 10 <= len(clean_phone) <= 15


def _require_fields(data: dict, fields: list) -> None:
    for field in fields:
        value = data.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise BadRequest(f"Missing required field: {field}")


def _optional_text(data: dict, field: str):
    value = data.get(field)
    if value is None:
        return None
    if not isinstance(value, str):
        raise BadRequest(f"{field} must be a string")
    return value.strip() or None


def _positive_int(value, field: str) -> int:
    try:
        number = int(value)
    except (ValueError, TypeError):
        raise BadRequest(f"{field} must be a valid number")
    if number <= 0:
        raise BadRequest(f"{field} must be positive")
    return number


def _string_list(value, field: str) -> list:
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            raise BadRequest(f"{field} must be valid JSON array")
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise BadRequest(f"{field} must be an array of strings")
    return [v.strip() for v in value if v.strip()]


def validate_login_data(data: dict) -> tuple:
    if not isinstance(data, dict) or not data.get('username') or not data.get('password'):
        raise BadRequest("Username and password are required")
    return str(data['username']).strip(), str(data['password'])


def validate_registration_data(data: dict) -> dict:
    """Validate public registration; the admin flag is never accepted here"""
    if not data:
        raise BadRequest("No data provided")
    _require_fields(data, ['username', 'password'])

    username = str(data['username']).strip()
    if not USERNAME_RE.match(username):
        raise BadRequest("Username must be 3-50 characters: letters, digits, '.', '_' or '-'")

    if len(str(data['password'])) < 6:
        raise BadRequest("Password must be at least 6 characters")

    email = _optional_text(data, 'email')
    if email and not validate_email(email):
        raise BadRequest("Invalid email format")

    return {
        'username': username,
        'password': str(data['password']),
        'full_name': _optional_text(data, 'fullName'),
        'email': email.lower() if email else None,
        'is_admin': False
    }


def validate_car_data(data: dict, partial: bool = False) -> dict:
    """Validate car data for create (full) and update (partial) operations"""
    if not data:
        raise BadRequest("No data provided")

    if not partial:
        _require_fields(data, ['name', 'type', 'seats', 'power', 'price', 'image'])

    car = {}

    for field in ('name', 'type', 'power', 'rating', 'image', 'special', 'description'):
        if field in data:
            value = _optional_text(data, field)
            if value is None and field in ('name', 'type', 'power', 'image'):
                raise BadRequest(f"Missing required field: {field}")
            car[field] = value

    if 'specialColor' in data:
        color = _optional_text(data, 'specialColor')
        if color and not HEX_COLOR_RE.match(color):
            raise BadRequest("specialColor must be a hex color")
        car['special_color'] = color

    if 'seats' in data:
        car['seats'] = _positive_int(data['seats'], 'seats')

    if 'price' in data:
        try:
            price = float(data['price'])
        except (ValueError, TypeError):
            raise BadRequest("Price must be a valid number")
        if price <= 0:
            raise BadRequest("Price must be positive")
        car['price'] = price

    if 'features' in data and data['features'] is not None:
        car['features'] = _string_list(data['features'], 'features')
    elif not partial:
        car['features'] = []

    if 'gallery' in data and data['gallery'] is not None:
        car['gallery'] = _string_list(data['gallery'], 'gallery')
    elif not partial:
        car['gallery'] = []

    if 'isAvailable' in data:
        if not isinstance(data['isAvailable'], bool):
            raise BadRequest("isAvailable must be a boolean")
        car['is_available'] = data['isAvailable']

    if partial and not car:
        raise BadRequest("No valid fields to update")

    return car


def validate_booking_data(data: dict) -> dict:
    """Validate the public booking form"""
    if not data:
        raise BadRequest("No data provided")

    _require_fields(data, ['pickupLocation', 'returnLocation', 'pickupDate', 'returnDate', 'carType'])

    pickup_date, return_date = parse_date_range(
        data['pickupDate'], data['returnDate'], 'pickupDate', 'returnDate'
    )

    email = _optional_text(data, 'email')
    if email and not validate_email(email):
        raise BadRequest("Invalid email format")

    phone = _optional_text(data, 'phone')
    if phone and not validate_phone(phone):
        raise BadRequest("Invalid phone number format")

    car_id = data.get('carId')
    if car_id is not None:
        car_id = _positive_int(car_id, 'carId')

    return {
        'pickup_location': str(data['pickupLocation']).strip(),
        'return_location': str(data['returnLocation']).strip(),
        'pickup_date': pickup_date.isoformat(),
        'return_date': return_date.isoformat(),
        'car_type': str(data['carType']).strip(),
        'car_id': car_id,
        'name': _optional_text(data, 'name'),
        'email': email.lower() if email else None,
        'phone': phone
    }


def validate_booking_status_data(data: dict) -> tuple:
    """Validate an admin status change; returns (status, rejection_reason)"""
    if not data or not data.get('status'):
        raise BadRequest("Status is required")

    status = data['status']
    allowed = [Config.BOOKING_STATUS_ACCEPTED, Config.BOOKING_STATUS_REJECTED]
    if status not in allowed:
        raise BadRequest(f"Invalid status. Allowed: {', '.join(allowed)}")

    reason = _optional_text(data, 'rejectionReason')
    return status, reason


def validate_availability_data(data: dict, partial: bool = False) -> dict:
    """Validate an availability window for create (full) or update (partial)"""
    if not data:
        raise BadRequest("No data provided")

    if not partial:
        _require_fields(data, ['carId', 'startDate', 'endDate'])

    window = {}

    if 'carId' in data:
        window['car_id'] = _positive_int(data['carId'], 'carId')

    if 'startDate' in data:
        window['start_date'] = parse_date(data['startDate'], 'startDate').isoformat()

    if 'endDate' in data:
        window['end_date'] = parse_date(data['endDate'], 'endDate').isoformat()

    if 'start_date' in window and 'end_date' in window and window['start_date'] > window['end_date']:
        raise BadRequest("startDate must not be after endDate")

    if 'isAvailable' in data:
        if not isinstance(data['isAvailable'], bool):
            raise BadRequest("isAvailable must be a boolean")
        window['is_available'] = data['isAvailable']
    elif not partial:
        window['is_available'] = True

    if 'city' in data:
        window['city'] = _optional_text(data, 'city')

    if partial and not window:
        raise BadRequest("No valid fields to update")

    return window


def validate_settings_data(data: dict) -> dict:
    """Validate a partial site settings update"""
    if not data:
        raise BadRequest("No data provided")

    fields = {
        'siteName': 'site_name',
        'logoColor': 'logo_color',
        'accentColor': 'accent_color',
        'logoText': 'logo_text',
        'customLogo': 'custom_logo',
        'defaultCurrency': 'default_currency'
    }

    settings = {}
    for key, column in fields.items():
        if key in data:
            settings[column] = _optional_text(data, key)

    if not settings:
        raise BadRequest("No valid fields to update")

    for column in ('site_name', 'logo_text', 'logo_color', 'accent_color', 'default_currency'):
        if column in settings and settings[column] is None:
            raise BadRequest(f"{column} cannot be empty")

    for column in ('logo_color', 'accent_color'):
        if settings.get(column) and not HEX_COLOR_RE.match(settings[column]):
            raise BadRequest(f"{column} must be a hex color")

    currency = settings.get('default_currency')
    if currency:
        currency = currency.upper()
        if currency not in Config.SUPPORTED_CURRENCIES:
            raise BadRequest(f"Invalid currency. Allowed: {', '.join(Config.SUPPORTED_CURRENCIES)}")
        settings['default_currency'] = currency

    return settings
