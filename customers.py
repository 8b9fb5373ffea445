"""
Customer aggregation: a read-side projection of accepted bookings grouped by
email. Nothing here is persisted.
"""

from typing import Any, Dict, List
from config import Config
from utils import parse_timestamp


def derive_customers(bookings: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Group accepted bookings by email.

    The most recent booking (by created_at) supplies the display name and
    phone. Output follows the order in which each email was first seen.
    """
    groups = {}
    for booking in bookings:
        if booking.get('status') != Config.BOOKING_STATUS_ACCEPTED:
            continue
        email = booking.get('email')
        if not email:
            continue
        groups.setdefault(email, []).append(booking)

    customers = []
    for email, customer_bookings in groups.items():
        # max() keeps the first of equal timestamps
        latest = max(customer_bookings, key=lambda b: parse_timestamp(b.get('created_at')))
        customers.append({
            'email': email,
            'name': latest.get('name') or 'Unknown',
            'phone': latest.get('phone') or 'Not provided',
            'bookings': customer_bookings,
            'last_booking_date': latest.get('created_at'),
            'total_bookings': len(customer_bookings)
        })
    return customers


def search_customers(customers: List[Dict[str, Any]], query: str) -> List[Dict[str, Any]]:
    query = (query or '').strip().lower()
    if not query:
        return customers
    return [
        c for c in customers
        if query in c['name'].lower() or query in c['email'].lower() or query in c['phone'].lower()
    ]
