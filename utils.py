"""
Utility functions module for Ether Rent API
Contains helper functions for various operations
"""

import re
import time
import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional, Union
from flask import request, jsonify
from werkzeug.exceptions import BadRequest, TooManyRequests
from config import Config

logger = logging.getLogger(__name__)

# Simple rate limiting storage (in-memory, per process)
rate_limit_storage = {}

_CAMEL_RE = re.compile(r'_([a-z0-9])')
_DATE_RE = re.compile(r'^(\d{4}-\d{2}-\d{2})(?:[T ]\d{2}:\d{2}[0-9:.+\-Z]*)?$')
_FRACTION_RE = re.compile(r'\.(\d+)')


def get_client_ip() -> str:
    """Get client IP address"""
    if request.headers.get('X-Forwarded-For'):
        return request.headers.get('X-Forwarded-For').split(',')[0].strip()
    return request.remote_addr or 'unknown'


def _rate_limit_entry(client_ip: str) -> dict:
    current_time = time.time()
    entry = rate_limit_storage.get(client_ip)

    # Reset counter if window expired
    if entry is None or current_time > entry['reset_time']:
        entry = {'count': 0, 'reset_time': current_time + Config.RATE_LIMIT_WINDOW}
        rate_limit_storage[client_ip] = entry
    return entry


def check_rate_limit() -> None:
    """Per-IP rate limiting for public write endpoints"""
    client_ip = get_client_ip()
    if _rate_limit_entry(client_ip)['count'] >= Config.RATE_LIMIT_MAX_REQUESTS:
        logger.warning(f"Rate limit exceeded for IP: {client_ip}")
        raise TooManyRequests(
            f"Rate limit exceeded. Maximum {Config.RATE_LIMIT_MAX_REQUESTS} bookings per hour per IP."
        )


def record_rate_limit_hit() -> None:
    """Count an accepted request against the caller's hourly quota"""
    _rate_limit_entry(get_client_ip())['count'] += 1


def parse_date(value: Union[str, date, None], field: str = 'date') -> date:
    """Parse a YYYY-MM-DD string (or date/datetime) into a date"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value or not isinstance(value, str):
        raise BadRequest(f"Missing required field: {field}")

    # Full ISO timestamps from date pickers keep only the calendar day
    match = _DATE_RE.match(value.strip())
    if not match:
        raise BadRequest(f"Invalid {field} format. Use YYYY-MM-DD")
    try:
        return datetime.strptime(match.group(1), '%Y-%m-%d').date()
    except ValueError:
        raise BadRequest(f"Invalid {field} format. Use YYYY-MM-DD")


def parse_date_range(start, end, start_field: str = 'startDate', end_field: str = 'endDate') -> tuple:
    """Parse a date range and require end to be strictly after start"""
    start_date = parse_date(start, start_field)
    end_date = parse_date(end, end_field)
    if end_date <= start_date:
        raise BadRequest(f"{end_field} must be after {start_field}")
    return start_date, end_date


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.replace(tzinfo=None)


def parse_timestamp(value: Union[str, datetime, None]) -> datetime:
    """Parse a Postgres/ISO timestamp into naive UTC; missing values sort first"""
    if isinstance(value, datetime):
        return _to_naive_utc(value)
    if not value:
        return datetime.min
    text = str(value).strip().replace('Z', '+00:00')
    # PostgREST trims trailing zeros from fractions; fromisoformat wants 3 or 6 digits
    text = _FRACTION_RE.sub(lambda m: '.' + m.group(1)[:6].ljust(6, '0'), text, count=1)
    try:
        return _to_naive_utc(datetime.fromisoformat(text))
    except ValueError:
        logger.warning(f"Unparseable timestamp: {value}")
        return datetime.min


def calculate_rental_days(start_date, end_date) -> int:
    return (parse_date(end_date) - parse_date(start_date)).days


def calculate_total_price(price_per_day: float, start_date, end_date) -> float:
    """Calculate total price for a rental"""
    return round(float(price_per_day) * calculate_rental_days(start_date, end_date), 2)


def convert_price(amount: float, currency: str) -> float:
    """Convert a USD price into one of the supported currencies"""
    rate = Config.EXCHANGE_RATES.get(currency)
    if rate is None:
        raise BadRequest(f"Unsupported currency. Allowed: {', '.join(Config.SUPPORTED_CURRENCIES)}")
    return round(float(amount) * rate, 2)


def format_price(amount: float, currency: str) -> str:
    symbol = Config.SUPPORTED_CURRENCIES.get(currency, currency)
    return f"{symbol}{convert_price(amount, currency):,.2f}"


def to_camel(key: str) -> str:
    return _CAMEL_RE.sub(lambda m: m.group(1).upper(), key)


def serialize_record(record: Optional[Dict[str, Any]], exclude=('password',)) -> Optional[Dict[str, Any]]:
    """Convert a database row into the camelCase shape the front end expects"""
    if record is None:
        return None
    result = {}
    for key, value in record.items():
        if key in exclude:
            continue
        if isinstance(value, dict):
            value = serialize_record(value, exclude)
        elif isinstance(value, list):
            value = [serialize_record(v, exclude) if isinstance(v, dict) else v for v in value]
        elif isinstance(value, (date, datetime)):
            value = value.isoformat()
        result[to_camel(key)] = value
    return result


def success_response(data: Any = None, message: Optional[str] = None, status: int = 200):
    """Build the shared {success, data, message} envelope"""
    body = {'success': True}
    if data is not None:
        body['data'] = data
    if message:
        body['message'] = message
    return jsonify(body), status


def error_response(message: str, status: int):
    return jsonify({'success': False, 'message': message}), status
