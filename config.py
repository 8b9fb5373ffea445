"""
Configuration module for Ether Rent API
Centralized configuration management for all environment variables and settings
"""

import os
from datetime import timedelta
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_flag(name: str, default: str = 'false') -> bool:
    return os.environ.get(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """Centralized configuration class for Ether Rent API"""

    # Flask Configuration
    SECRET_KEY = os.environ.get('SECRET_KEY')
    SESSION_COOKIE_SECURE = _env_flag('SESSION_COOKIE_SECURE', 'true')
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = os.environ.get('SESSION_COOKIE_SAMESITE', 'None')
    SESSION_COOKIE_DOMAIN = None
    PERMANENT_SESSION_LIFETIME = timedelta(hours=24)

    # CORS Configuration
    CORS_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            'CORS_ORIGINS', 'http://localhost:5000,http://localhost:3000'
        ).split(',')
        if origin.strip()
    ]
    CORS_SUPPORTS_CREDENTIALS = True
    CORS_ALLOW_HEADERS = [
        'Content-Type',
        'Authorization',
        'X-Requested-With',
        'Accept',
        'Origin',
        'Cache-Control'
    ]
    CORS_METHODS = ['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS', 'HEAD', 'PATCH']
    CORS_MAX_AGE = 86400  # Cache preflight for 24 hours

    # Logging Configuration
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Supabase Configuration
    SUPABASE_URL = os.environ.get('SUPABASE_URL')
    SUPABASE_ANON_KEY = os.environ.get('SUPABASE_ANON_KEY')
    SUPABASE_SERVICE_ROLE_KEY = os.environ.get('SUPABASE_SERVICE_ROLE_KEY')

    # Seed admin account (used by seed.py only, never by login)
    ADMIN_USERNAME = os.environ.get('ADMIN_USERNAME', 'admin')
    ADMIN_PASSWORD = os.environ.get('ADMIN_PASSWORD', 'change_this_password')
    ADMIN_EMAIL = os.environ.get('ADMIN_EMAIL', 'admin@example.com')

    # EmailJS Configuration
    EMAILJS_SERVICE_ID = os.environ.get('EMAILJS_SERVICE_ID')
    EMAILJS_PUBLIC_KEY = os.environ.get('EMAILJS_PUBLIC_KEY')
    EMAILJS_PRIVATE_KEY = os.environ.get('EMAILJS_PRIVATE_KEY')
    EMAILJS_STATUS_TEMPLATE_ID = os.environ.get('EMAILJS_STATUS_TEMPLATE_ID')
    EMAIL_FROM_NAME = os.environ.get('EMAIL_FROM_NAME', 'Car Rental Service')

    # Rate Limiting Configuration
    RATE_LIMIT_WINDOW = 3600  # 1 hour
    RATE_LIMIT_MAX_REQUESTS = int(os.environ.get('RATE_LIMIT_MAX_REQUESTS', 5))

    # Business Rules
    ENFORCE_AVAILABILITY_ON_BOOKING = _env_flag('ENFORCE_AVAILABILITY_ON_BOOKING')
    ALL_CAR_TYPES = 'All Cars'

    # Booking Status Configuration
    BOOKING_STATUS_PENDING = 'pending'
    BOOKING_STATUS_ACCEPTED = 'accepted'
    BOOKING_STATUS_REJECTED = 'rejected'
    VALID_BOOKING_STATUSES = ['pending', 'accepted', 'rejected']

    # Currency Configuration (rates relative to USD)
    SUPPORTED_CURRENCIES = {'USD': '$', 'EUR': '€', 'MAD': 'د.م.'}
    EXCHANGE_RATES = {'USD': 1.0, 'EUR': 0.92, 'MAD': 10.01}

    # Site settings defaults
    DEFAULT_SITE_SETTINGS = {
        'site_name': 'Ether',
        'logo_color': '#6843EC',
        'accent_color': '#D2FF3A',
        'logo_text': 'ETHER',
        'custom_logo': None,
        'default_currency': 'USD'
    }

    @classmethod
    def validate_required_config(cls):
        """Validate that all required configuration is present"""
        required_vars = [
            'SECRET_KEY',
            'SUPABASE_URL',
            'SUPABASE_ANON_KEY'
        ]

        missing_vars = []
        for var in required_vars:
            if not getattr(cls, var):
                missing_vars.append(var)

        if missing_vars:
            raise ValueError(f"Missing required environment variables: {', '.join(missing_vars)}")

        return True
