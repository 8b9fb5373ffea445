"""
Ether Rent Flask API - Main Application
Public catalogue, availability checker and booking form, plus the admin back office
"""

import os
import logging
from datetime import datetime
from flask import Flask, request, jsonify, g
from flask_cors import CORS
from werkzeug.exceptions import BadRequest, HTTPException, NotFound, ServiceUnavailable

from config import Config
from database import DatabaseService
from email_service import EmailService
from validators import (
    validate_login_data, validate_car_data, validate_availability_data,
    validate_booking_status_data, validate_settings_data
)
from auth import (
    admin_required, login_required, current_user, login, logout, register
)
from availability import get_available_cars, check_car_availability
from bookings import (
    create_booking, get_booking, set_booking_status, list_bookings,
    list_user_bookings, booking_statistics
)
from customers import derive_customers, search_customers
from utils import (
    check_rate_limit, record_rate_limit_hit, get_client_ip, serialize_record, success_response, error_response,
    calculate_rental_days, calculate_total_price, format_price, parse_date_range
)

API_VERSION = "1.0.0"

# Initialize Flask app
app = Flask(__name__)

# Configure Flask app
app.config.update(
    SECRET_KEY=Config.SECRET_KEY,
    SESSION_COOKIE_SECURE=Config.SESSION_COOKIE_SECURE,
    SESSION_COOKIE_HTTPONLY=Config.SESSION_COOKIE_HTTPONLY,
    SESSION_COOKIE_SAMESITE=Config.SESSION_COOKIE_SAMESITE,
    SESSION_COOKIE_DOMAIN=Config.SESSION_COOKIE_DOMAIN,
    PERMANENT_SESSION_LIFETIME=Config.PERMANENT_SESSION_LIFETIME
)

# Configure CORS
CORS(app,
     origins=Config.CORS_ORIGINS,
     supports_credentials=Config.CORS_SUPPORTS_CREDENTIALS,
     allow_headers=Config.CORS_ALLOW_HEADERS,
     methods=Config.CORS_METHODS,
     max_age=Config.CORS_MAX_AGE
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Initialize services
email_service = EmailService()
try:
    Config.validate_required_config()
    db_service = DatabaseService(Config.SUPABASE_URL, Config.SUPABASE_ANON_KEY, Config.SUPABASE_SERVICE_ROLE_KEY)
    logger.info("All services initialized successfully")
except Exception as e:
    logger.error(f"Failed to initialize services: {e}")
    db_service = None


def get_db() -> DatabaseService:
    if db_service is None:
        raise ServiceUnavailable("Database not available")
    return db_service


def get_json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        raise BadRequest("No data provided")
    return data


def serialize_many(records):
    return [serialize_record(r) for r in records]


# AUTH ENDPOINTS

@app.route('/api/auth/login', methods=['POST'])
def login_endpoint():
    """Log in with username and password"""
    username, password = validate_login_data(request.get_json(silent=True) or {})
    user = login(get_db(), username, password)
    logger.info(f"Login for {username} from IP: {get_client_ip()}")
    return success_response(serialize_record(user), "Login successful")


@app.route('/api/auth/register', methods=['POST'])
def register_endpoint():
    """Create a regular user account"""
    try:
        user = register(get_db(), get_json_body())
        return success_response(serialize_record(user), "User registered successfully", 201)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error registering user: {e}", exc_info=True)
        return error_response("Registration failed", 500)


@app.route('/api/auth/me', methods=['GET'])
def me_endpoint():
    """Current session user"""
    user = current_user()
    if user is None:
        return error_response("Not authenticated", 401)
    return success_response(serialize_record(user))


@app.route('/api/auth/logout', methods=['POST'])
def logout_endpoint():
    logout()
    return success_response(message="Logged out successfully")


# CAR ENDPOINTS

@app.route('/api/cars', methods=['GET'])
def get_cars():
    """Catalogue, optionally filtered by type and priced in another currency"""
    try:
        car_type = request.args.get('type')
        if car_type == Config.ALL_CAR_TYPES:
            car_type = None

        cars = serialize_many(get_db().get_cars(car_type=car_type))

        currency = request.args.get('currency')
        if currency:
            currency = currency.upper()
            for car in cars:
                car['displayPrice'] = format_price(car['price'], currency)

        return success_response(cars)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting cars: {e}", exc_info=True)
        return error_response("Failed to fetch cars", 500)


@app.route('/api/cars/available', methods=['GET'])
def get_cars_available():
    """Cars free for the requested date range"""
    try:
        cars = get_available_cars(
            get_db(),
            request.args.get('startDate'),
            request.args.get('endDate'),
            car_type=request.args.get('type'),
            city=request.args.get('city')
        )
        return success_response(serialize_many(cars))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting available cars: {e}", exc_info=True)
        return error_response("Failed to check availability", 500)


@app.route('/api/cars/<int:car_id>', methods=['GET'])
def get_car(car_id):
    car = get_db().get_car_by_id(car_id)
    if not car:
        raise NotFound(f"Car with ID {car_id} not found")
    return success_response(serialize_record(car))


@app.route('/api/cars/<int:car_id>/availability', methods=['GET'])
def get_car_availability(car_id):
    """Single-car check with pricing, or the car's windows when no dates are given"""
    try:
        db = get_db()
        car = db.get_car_by_id(car_id)
        if not car:
            raise NotFound(f"Car with ID {car_id} not found")

        start_date = request.args.get('startDate')
        end_date = request.args.get('endDate')

        if not start_date and not end_date:
            return success_response(serialize_many(db.get_availability_windows(car_id=car_id)))

        start, end = parse_date_range(start_date, end_date)
        is_available, reason = check_car_availability(db, car, start, end)

        result = {
            "carId": car_id,
            "startDate": start.isoformat(),
            "endDate": end.isoformat(),
            "isAvailable": is_available
        }
        if is_available:
            result["rentalDays"] = calculate_rental_days(start, end)
            result["totalPrice"] = calculate_total_price(car['price'], start, end)
        else:
            result["reason"] = reason

        return success_response(result)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting availability for car {car_id}: {e}", exc_info=True)
        return error_response("Failed to check availability", 500)


@app.route('/api/cars', methods=['POST'])
@admin_required
def admin_create_car():
    try:
        car = get_db().create_car(validate_car_data(get_json_body()))
        logger.info(f"Car created by {g.user['username']}: {car['name']} (ID: {car['id']})")
        return success_response(serialize_record(car), "Car created successfully", 201)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating car: {e}", exc_info=True)
        return error_response("Failed to create car", 500)


@app.route('/api/cars/<int:car_id>', methods=['PUT'])
@admin_required
def admin_update_car(car_id):
    try:
        update_data = validate_car_data(get_json_body(), partial=True)
        car = get_db().update_car(car_id, update_data)
        if not car:
            raise NotFound(f"Car with ID {car_id} not found")

        logger.info(f"Car {car_id} updated by {g.user['username']}: {sorted(update_data)}")
        return success_response(serialize_record(car), "Car updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating car {car_id}: {e}", exc_info=True)
        return error_response("Failed to update car", 500)


@app.route('/api/cars/<int:car_id>', methods=['DELETE'])
@admin_required
def admin_delete_car(car_id):
    try:
        if not get_db().delete_car(car_id):
            raise NotFound(f"Car with ID {car_id} not found")

        logger.info(f"Car {car_id} deleted by {g.user['username']}")
        return success_response(message="Car deleted successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting car {car_id}: {e}", exc_info=True)
        return error_response("Failed to delete car", 500)


# AVAILABILITY WINDOW ENDPOINTS

@app.route('/api/cars/availability', methods=['GET'])
@admin_required
def admin_list_windows():
    car_id = request.args.get('carId', type=int)
    windows = get_db().get_availability_windows(car_id=car_id)
    return success_response(serialize_many(windows))


@app.route('/api/cars/availability', methods=['POST'])
@admin_required
def admin_create_window():
    """Open or block a car for a date range"""
    try:
        db = get_db()
        window_data = validate_availability_data(get_json_body())

        car = db.get_car_by_id(window_data['car_id'])
        if not car:
            raise NotFound(f"Car with ID {window_data['car_id']} not found")
        window_data['car_type'] = car['type']

        window = db.create_availability_window(window_data)
        state = 'open' if window['is_available'] else 'blocked'
        logger.info(f"Availability window {window['id']} ({state}) created for car {car['id']} "
                    f"from {window['start_date']} to {window['end_date']}")
        return success_response(serialize_record(window), "Availability created successfully", 201)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating availability window: {e}", exc_info=True)
        return error_response("Failed to create availability", 500)


@app.route('/api/cars/availability/<int:window_id>', methods=['PATCH'])
@admin_required
def admin_update_window(window_id):
    try:
        db = get_db()
        update_data = validate_availability_data(get_json_body(), partial=True)

        existing = db.get_availability_window(window_id)
        if not existing:
            raise NotFound(f"Availability with ID {window_id} not found")

        # Re-check the range against whichever bound is not being changed
        start = update_data.get('start_date', existing['start_date'])
        end = update_data.get('end_date', existing['end_date'])
        if str(start) > str(end):
            raise BadRequest("startDate must not be after endDate")

        if 'car_id' in update_data and update_data['car_id'] != existing['car_id']:
            car = db.get_car_by_id(update_data['car_id'])
            if not car:
                raise NotFound(f"Car with ID {update_data['car_id']} not found")
            update_data['car_type'] = car['type']

        window = db.update_availability_window(window_id, update_data)
        if not window:
            raise NotFound(f"Availability with ID {window_id} not found")

        logger.info(f"Availability window {window_id} updated: {sorted(update_data)}")
        return success_response(serialize_record(window), "Availability updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating availability window {window_id}: {e}", exc_info=True)
        return error_response("Failed to update availability", 500)


@app.route('/api/cars/availability/<int:window_id>', methods=['DELETE'])
@admin_required
def admin_delete_window(window_id):
    try:
        if not get_db().delete_availability_window(window_id):
            raise NotFound(f"Availability with ID {window_id} not found")

        logger.info(f"Availability window {window_id} deleted")
        return success_response(message="Availability deleted successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting availability window {window_id}: {e}", exc_info=True)
        return error_response("Failed to delete availability", 500)


# BOOKING ENDPOINTS

@app.route('/api/bookings', methods=['POST'])
def create_booking_endpoint():
    """Public booking form"""
    try:
        check_rate_limit()

        user = current_user()
        booking = create_booking(
            get_db(),
            get_json_body(),
            user_id=user['id'] if user else None,
            enforce_availability=Config.ENFORCE_AVAILABILITY_ON_BOOKING
        )
        record_rate_limit_hit()
        return success_response(serialize_record(booking), "Booking created successfully", 201)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating booking: {e}", exc_info=True)
        return error_response("Failed to create booking", 500)


@app.route('/api/bookings', methods=['GET'])
@admin_required
def admin_get_bookings():
    try:
        bookings = list_bookings(
            get_db(),
            status=request.args.get('status'),
            start_date=request.args.get('startDate'),
            end_date=request.args.get('endDate'),
            car_id=request.args.get('carId', type=int)
        )
        return success_response(serialize_many(bookings))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting bookings for admin: {e}", exc_info=True)
        return error_response("Failed to fetch bookings", 500)


@app.route('/api/bookings/mine', methods=['GET'])
@login_required
def my_bookings():
    bookings = list_user_bookings(get_db(), g.user['id'])
    return success_response(serialize_many(bookings))


@app.route('/api/bookings/<int:booking_id>', methods=['GET'])
@admin_required
def admin_get_booking(booking_id):
    return success_response(serialize_record(get_booking(get_db(), booking_id)))


@app.route('/api/bookings/<int:booking_id>', methods=['PATCH'])
@admin_required
def admin_update_booking_status(booking_id):
    """Accept or reject a pending booking and notify the customer"""
    try:
        status, reason = validate_booking_status_data(get_json_body())
        booking = set_booking_status(get_db(), booking_id, status, reason)

        # Notification failures never undo the status change
        try:
            email_service.send_booking_status_email(booking)
        except Exception as e:
            logger.error(f"Failed to send status email for booking #{booking_id}: {e}")

        logger.info(f"Booking #{booking_id} set to {status} by {g.user['username']}")
        return success_response(serialize_record(booking), "Booking status updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating booking {booking_id}: {e}", exc_info=True)
        return error_response("Failed to update booking status", 500)


# CUSTOMERS & DASHBOARD

@app.route('/api/customers', methods=['GET'])
@admin_required
def admin_get_customers():
    """Customers derived from accepted bookings"""
    bookings = list_bookings(get_db(), status=Config.BOOKING_STATUS_ACCEPTED)
    customers = search_customers(derive_customers(bookings), request.args.get('q'))
    return success_response(serialize_many(customers))


@app.route('/api/admin/stats', methods=['GET'])
@admin_required
def admin_stats():
    try:
        db = get_db()
        bookings = list_bookings(db)
        cars = db.get_cars()

        return success_response({
            "bookings": booking_statistics(bookings),
            "cars": {
                "total": len(cars),
                "available": len([c for c in cars if c.get('is_available', True)])
            },
            "customers": len(derive_customers(bookings))
        })
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting dashboard statistics: {e}", exc_info=True)
        return error_response("Failed to get statistics", 500)


# SITE SETTINGS

@app.route('/api/settings', methods=['GET'])
def get_settings():
    try:
        settings = get_db().get_site_settings() or dict(Config.DEFAULT_SITE_SETTINGS)
        return success_response(serialize_record(settings))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching site settings: {e}", exc_info=True)
        return error_response("Failed to fetch site settings", 500)


@app.route('/api/settings', methods=['PUT'])
@admin_required
def update_settings():
    try:
        settings = get_db().upsert_site_settings(validate_settings_data(get_json_body()))
        logger.info(f"Site settings updated by {g.user['username']}")
        return success_response(serialize_record(settings), "Site settings updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating site settings: {e}", exc_info=True)
        return error_response("Failed to update site settings", 500)


# HEALTH

@app.route('/health', methods=['GET'])
def health_check():
    health_data = {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "version": API_VERSION,
        "environment": os.environ.get('FLASK_ENV', 'development')
    }
    status_code = 200

    if db_service:
        try:
            db_service.ping()
            health_data['database'] = 'connected'
        except Exception as e:
            health_data['database'] = f'error: {str(e)}'
            health_data['status'] = 'degraded'
            status_code = 503
    else:
        health_data['database'] = 'not_configured'
        health_data['status'] = 'degraded'
        status_code = 503

    return jsonify(health_data), status_code


# Error handlers
@app.errorhandler(HTTPException)
def handle_http_exception(error):
    if error.code == 404 and error.description == NotFound.description:
        return error_response("Endpoint not found", 404)
    return error_response(error.description, error.code)


@app.errorhandler(Exception)
def handle_unexpected_error(error):
    logger.error(f"Internal server error: {error}", exc_info=True)
    return error_response("Internal server error", 500)


if __name__ == '__main__':
    # Development server
    app.run(host='0.0.0.0', port=int(os.environ.get('PORT', 5000)), debug=False)
