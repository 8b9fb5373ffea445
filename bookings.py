"""
Booking workflow for Ether Rent API

Bookings start as pending and an admin moves them to accepted or rejected.
Both outcomes are terminal; a customer who wants to try again submits a new
booking.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from werkzeug.exceptions import BadRequest, Conflict, NotFound
from config import Config
from availability import check_car_availability
from validators import validate_booking_data

logger = logging.getLogger(__name__)

TRANSITIONS = {
    Config.BOOKING_STATUS_PENDING: {Config.BOOKING_STATUS_ACCEPTED, Config.BOOKING_STATUS_REJECTED},
    Config.BOOKING_STATUS_ACCEPTED: set(),
    Config.BOOKING_STATUS_REJECTED: set(),
}


def create_booking(db, data: dict, user_id: Optional[int] = None,
                   enforce_availability: bool = False) -> Dict[str, Any]:
    """Validate the booking form and store it as pending.

    Availability is advisory: it is only re-checked here when
    enforce_availability is set and the form names a specific car.
    """
    booking_data = validate_booking_data(data)

    if booking_data['car_id'] is not None:
        car = db.get_car_by_id(booking_data['car_id'])
        if not car:
            raise NotFound(f"Car with ID {booking_data['car_id']} not found")

        if enforce_availability:
            is_available, reason = check_car_availability(
                db, car, booking_data['pickup_date'], booking_data['return_date']
            )
            if not is_available:
                raise Conflict(reason)

    booking_data.update({
        'user_id': user_id,
        'status': Config.BOOKING_STATUS_PENDING,
        'rejection_reason': None,
        'created_at': datetime.now().isoformat()
    })

    booking = db.create_booking(booking_data)
    logger.info(f"Booking #{booking['id']} created for {booking['car_type']} "
                f"({booking['pickup_date']} to {booking['return_date']})")
    return booking


def get_booking(db, booking_id: int) -> Dict[str, Any]:
    booking = db.get_booking_by_id(booking_id)
    if not booking:
        raise NotFound(f"Booking with ID {booking_id} not found")
    return booking


def set_booking_status(db, booking_id: int, status: str,
                       rejection_reason: Optional[str] = None) -> Dict[str, Any]:
    """Move a pending booking to accepted or rejected.

    The rejection reason is stored only for rejections and is optional even
    then.
    """
    if status not in Config.VALID_BOOKING_STATUSES:
        raise BadRequest(f"Invalid status. Allowed: {', '.join(Config.VALID_BOOKING_STATUSES)}")

    booking = get_booking(db, booking_id)
    current = booking.get('status') or Config.BOOKING_STATUS_PENDING

    if status not in TRANSITIONS.get(current, set()):
        raise Conflict(f"Booking #{booking_id} is already {current} and cannot become {status}")

    update_data = {'status': status}
    if status == Config.BOOKING_STATUS_REJECTED and rejection_reason:
        update_data['rejection_reason'] = rejection_reason

    updated = db.update_booking(booking_id, update_data)
    if not updated:
        raise NotFound(f"Booking with ID {booking_id} not found")

    logger.info(f"Booking #{booking_id} moved from {current} to {status}")
    return updated


def list_bookings(db, status: Optional[str] = None, start_date: Optional[str] = None,
                  end_date: Optional[str] = None, car_id: Optional[int] = None) -> List[Dict[str, Any]]:
    if status and status not in Config.VALID_BOOKING_STATUSES:
        raise BadRequest(f"Invalid status. Allowed: {', '.join(Config.VALID_BOOKING_STATUSES)}")

    filters = {
        'status': status,
        'start_date': start_date,
        'end_date': end_date,
        'car_id': car_id
    }
    return db.get_bookings_filtered({k: v for k, v in filters.items() if v is not None})


def list_user_bookings(db, user_id: int) -> List[Dict[str, Any]]:
    return db.get_bookings_filtered({'user_id': user_id})


def booking_statistics(bookings: List[Dict[str, Any]]) -> Dict[str, int]:
    stats = {'total': len(bookings)}
    for status in Config.VALID_BOOKING_STATUSES:
        stats[status] = len([b for b in bookings if b.get('status') == status])
    return stats
