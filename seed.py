"""Seed the admin account, sample cars and default site settings"""

import logging
from werkzeug.security import generate_password_hash
from config import Config
from database import DatabaseService

logger = logging.getLogger(__name__)

SAMPLE_CARS = [
    {
        'name': 'Tesla Model S',
        'type': 'Electric',
        'seats': 5,
        'power': '670 hp',
        'rating': '4.9',
        'price': 199,
        'image': '/cars/tesla-model-s.jpg',
        'special': 'Electric',
        'special_color': '#34D399',
        'description': 'Experience the future of driving with Tesla Model S, offering exceptional range and performance.',
        'features': ['Autopilot', 'Zero Emissions', 'Ludicrous Mode', 'High Range', 'Supercharging'],
    },
    {
        'name': 'BMW M4 Competition',
        'type': 'Sports',
        'seats': 4,
        'power': '503 hp',
        'rating': '4.8',
        'price': 249,
        'image': '/cars/bmw-m4.jpg',
        'special': 'Performance',
        'special_color': '#EC4899',
        'description': 'The ultimate driving machine, delivering track-ready performance with everyday usability.',
        'features': ['Twin-Turbo Engine', 'M Differential', 'Carbon Fiber Roof', 'Sport Exhaust', 'Track Mode'],
    },
    {
        'name': 'Range Rover Sport',
        'type': 'SUV',
        'seats': 7,
        'power': '395 hp',
        'rating': '4.7',
        'price': 279,
        'image': '/cars/range-rover.jpg',
        'special': 'Luxury',
        'special_color': '#8B5CF6',
        'description': 'The Range Rover Sport combines luxury with off-road capability for an unmatched driving experience.',
        'features': ['All-Terrain Progress Control', 'Air Suspension', 'Panoramic Roof', 'Premium Sound', 'Off-Road Package'],
    },
]


def seed(db):
    if not db.get_user_by_username(Config.ADMIN_USERNAME):
        db.create_user({
            'username': Config.ADMIN_USERNAME,
            'password': generate_password_hash(Config.ADMIN_PASSWORD),
            'is_admin': True,
            'full_name': 'Admin User',
            'email': Config.ADMIN_EMAIL,
        })
        logger.info(f"Created admin user '{Config.ADMIN_USERNAME}'")

    if not db.get_cars():
        for car in SAMPLE_CARS:
            db.create_car({**car, 'gallery': [car['image']], 'is_available': True})
        logger.info(f"Added {len(SAMPLE_CARS)} sample cars")

    if not db.get_site_settings():
        db.upsert_site_settings({})
        logger.info("Created default site settings")


if __name__ == '__main__':
    logging.basicConfig(level=Config.LOG_LEVEL, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    Config.validate_required_config()
    seed(DatabaseService(Config.SUPABASE_URL, Config.SUPABASE_ANON_KEY, Config.SUPABASE_SERVICE_ROLE_KEY))
    logger.info("Database seeded!")
