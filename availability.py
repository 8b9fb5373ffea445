"""
Availability engine for Ether Rent API

A car is free for a requested range unless one of its blocked windows
(is_available = false) overlaps that range. Windows use inclusive calendar
dates; cars without any window are available by default.
"""

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple
from config import Config
from utils import parse_date, parse_date_range

logger = logging.getLogger(__name__)


def windows_overlap(window: Dict[str, Any], start_date: date, end_date: date) -> bool:
    window_start = parse_date(window['start_date'], 'start_date')
    window_end = parse_date(window['end_date'], 'end_date')
    return window_start <= end_date and window_end >= start_date


def blocking_windows(car_id: int, windows: Iterable[Dict[str, Any]], start_date: date, end_date: date) -> List[Dict[str, Any]]:
    """Blocked windows of one car that overlap the range"""
    return [
        w for w in windows
        if w['car_id'] == car_id and not w.get('is_available', True)
        and windows_overlap(w, start_date, end_date)
    ]


def is_car_available(car: Dict[str, Any], windows: Iterable[Dict[str, Any]], start_date: date, end_date: date) -> bool:
    return not blocking_windows(car['id'], windows, start_date, end_date)


def _open_in_city(car_id: int, windows: Iterable[Dict[str, Any]], city: str, start_date: date, end_date: date) -> bool:
    city = city.strip().lower()
    return any(
        w['car_id'] == car_id and w.get('is_available', True)
        and (w.get('city') or '').strip().lower() == city
        and windows_overlap(w, start_date, end_date)
        for w in windows
    )


def find_available_cars(cars: List[Dict[str, Any]], windows: List[Dict[str, Any]], start_date, end_date,
                        car_type: Optional[str] = None, city: Optional[str] = None) -> List[Dict[str, Any]]:
    """Return the cars not excluded by an overlapping blocked window.

    Args:
        cars: catalogue rows, in display order
        windows: availability window rows (any car)
        start_date, end_date: requested range, end strictly after start
        car_type: exact type match; empty or "All Cars" disables the filter
        city: keep only cars with an open window in this city over the range

    Raises:
        BadRequest: if the dates are malformed or end_date <= start_date
    """
    start_date, end_date = parse_date_range(start_date, end_date)

    if car_type and car_type != Config.ALL_CAR_TYPES:
        cars = [car for car in cars if car.get('type') == car_type]

    # Index once so each car only scans its own windows
    windows_by_car = {}
    for window in windows:
        windows_by_car.setdefault(window['car_id'], []).append(window)

    available = []
    for car in cars:
        car_windows = windows_by_car.get(car['id'], [])
        if not is_car_available(car, car_windows, start_date, end_date):
            continue
        if city and not _open_in_city(car['id'], car_windows, city, start_date, end_date):
            continue
        available.append(car)

    return available


def get_available_cars(db, start_date, end_date, car_type: Optional[str] = None,
                       city: Optional[str] = None) -> List[Dict[str, Any]]:
    """Load cars and windows from the store and run the availability filter"""
    start, end = parse_date_range(start_date, end_date)
    cars = db.get_cars()
    windows = db.get_availability_windows()
    available = find_available_cars(cars, windows, start, end, car_type=car_type, city=city)
    logger.info(f"Found {len(available)} available cars out of {len(cars)} total cars for dates {start} to {end}")
    return available


def check_car_availability(db, car: Dict[str, Any], start_date, end_date) -> Tuple[bool, Optional[str]]:
    """Check a single car; returns (available, reason)"""
    start, end = parse_date_range(start_date, end_date)

    windows = db.get_availability_windows(car_id=car['id'])
    blocked = blocking_windows(car['id'], windows, start, end)
    if blocked:
        logger.info(f"Car {car['id']} is not available - {len(blocked)} blocking window(s)")
        return False, "Car is unavailable for the selected dates"

    return True, None
