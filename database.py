"""
Database service module for Ether Rent API
Handles all Supabase database operations
"""

import logging
from datetime import datetime
from typing import Optional, Dict, Any, List
from supabase import create_client, Client
from config import Config

logger = logging.getLogger(__name__)


class DatabaseService:
    """Service class for all database operations.

    Public reads go through the anon client; every write and every admin-only
    read goes through the service-role client, which bypasses row level
    security.
    """

    def __init__(self, url: str, anon_key: str, service_role_key: str = None):
        """Initialize database service with Supabase credentials"""
        self.url = url
        self.anon_key = anon_key
        self.service_role_key = service_role_key

        self.supabase: Client = create_client(url, anon_key)
        logger.info("Supabase anon client initialized successfully")

        # Admin client will be created on demand
        self._admin_client = None

    def get_admin_client(self) -> Client:
        """Get admin client with service role key to bypass RLS"""
        if self._admin_client is not None:
            return self._admin_client

        if not self.service_role_key:
            raise RuntimeError("Service role key not configured")

        try:
            self._admin_client = create_client(self.url, self.service_role_key)
            logger.info("Supabase admin client initialized successfully")
            return self._admin_client
        except Exception as e:
            logger.error(f"Failed to create admin client: {e}")
            raise

    @staticmethod
    def _first(response) -> Optional[Dict[str, Any]]:
        return response.data[0] if response.data else None

    def ping(self) -> bool:
        self.supabase.table('cars').select('id').limit(1).execute()
        return True

    # Users

    def get_user_by_username(self, username: str) -> Optional[Dict[str, Any]]:
        try:
            response = self.get_admin_client().table('users').select('*').eq('username', username).execute()
            return self._first(response)
        except Exception as e:
            logger.error(f"Error getting user {username}: {e}")
            raise

    def create_user(self, user_data: Dict[str, Any]) -> Dict[str, Any]:
        try:
            user_data['created_at'] = datetime.now().isoformat()
            response = self.get_admin_client().table('users').insert(user_data).execute()
            if not response.data:
                raise RuntimeError("Failed to create user")
            return response.data[0]
        except Exception as e:
            logger.error(f"Error creating user: {e}")
            raise

    # Cars

    def get_cars(self, car_type: str = None) -> List[Dict[str, Any]]:
        """Get cars with optional type filtering"""
        try:
            query = self.supabase.table('cars').select('*')

            if car_type:
                query = query.eq('type', car_type)

            response = query.order('id').execute()
            return response.data
        except Exception as e:
            logger.error(f"Error getting cars: {e}")
            raise

    def get_car_by_id(self, car_id: int) -> Optional[Dict[str, Any]]:
        try:
            response = self.supabase.table('cars').select('*').eq('id', car_id).execute()
            return self._first(response)
        except Exception as e:
            logger.error(f"Error getting car {car_id}: {e}")
            raise

    def create_car(self, car_data: Dict[str, Any]) -> Dict[str, Any]:
        try:
            car_data['created_at'] = datetime.now().isoformat()
            car_data['updated_at'] = datetime.now().isoformat()

            response = self.get_admin_client().table('cars').insert(car_data).execute()
            if not response.data:
                raise RuntimeError("Failed to create car")

            return response.data[0]
        except Exception as e:
            logger.error(f"Error creating car: {e}")
            raise

    def update_car(self, car_id: int, update_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Update existing car; returns None when the car does not exist"""
        try:
            update_data['updated_at'] = datetime.now().isoformat()
            response = self.get_admin_client().table('cars').update(update_data).eq('id', car_id).execute()
            return self._first(response)
        except Exception as e:
            logger.error(f"Error updating car {car_id}: {e}")
            raise

    def delete_car(self, car_id: int) -> bool:
        """Delete car by ID; its availability windows cascade"""
        try:
            response = self.get_admin_client().table('cars').delete().eq('id', car_id).execute()
            return bool(response.data)
        except Exception as e:
            logger.error(f"Error deleting car {car_id}: {e}")
            raise

    # Availability windows

    def get_availability_windows(self, car_id: int = None) -> List[Dict[str, Any]]:
        try:
            query = self.supabase.table('car_availabilities').select('*, cars(id, name, type)')
            if car_id is not None:
                query = query.eq('car_id', car_id)
            response = query.order('start_date').execute()
            return response.data
        except Exception as e:
            logger.error(f"Error getting availability windows: {e}")
            raise

    def get_availability_window(self, window_id: int) -> Optional[Dict[str, Any]]:
        try:
            response = self.supabase.table('car_availabilities').select('*').eq('id', window_id).execute()
            return self._first(response)
        except Exception as e:
            logger.error(f"Error getting availability window {window_id}: {e}")
            raise

    def create_availability_window(self, window_data: Dict[str, Any]) -> Dict[str, Any]:
        try:
            window_data['created_at'] = datetime.now().isoformat()
            response = self.get_admin_client().table('car_availabilities').insert(window_data).execute()
            if not response.data:
                raise RuntimeError("Failed to create availability window")
            return response.data[0]
        except Exception as e:
            logger.error(f"Error creating availability window: {e}")
            raise

    def update_availability_window(self, window_id: int, update_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        try:
            response = self.get_admin_client().table('car_availabilities').update(update_data).eq('id', window_id).execute()
            return self._first(response)
        except Exception as e:
            logger.error(f"Error updating availability window {window_id}: {e}")
            raise

    def delete_availability_window(self, window_id: int) -> bool:
        try:
            response = self.get_admin_client().table('car_availabilities').delete().eq('id', window_id).execute()
            return bool(response.data)
        except Exception as e:
            logger.error(f"Error deleting availability window {window_id}: {e}")
            raise

    # Bookings

    def create_booking(self, booking_data: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.get_admin_client().table('bookings').insert(booking_data).execute()
            if not response.data:
                raise RuntimeError("Failed to create booking")

            return response.data[0]
        except Exception as e:
            logger.error(f"Error creating booking: {e}")
            raise

    def get_bookings_filtered(self, filters: Dict[str, Any] = None) -> List[Dict[str, Any]]:
        """Get bookings, newest first, with optional filtering"""
        filters = filters or {}
        try:
            query = self.get_admin_client().table('bookings').select('*, cars(id, name, type)')

            if filters.get('status'):
                query = query.eq('status', filters['status'])

            if filters.get('car_id'):
                query = query.eq('car_id', filters['car_id'])

            if filters.get('user_id'):
                query = query.eq('user_id', filters['user_id'])

            if filters.get('start_date'):
                query = query.gte('pickup_date', filters['start_date'])

            if filters.get('end_date'):
                query = query.lte('return_date', filters['end_date'])

            response = query.order('created_at', desc=True).execute()
            return response.data
        except Exception as e:
            logger.error(f"Error getting filtered bookings: {e}")
            raise

    def get_booking_by_id(self, booking_id: int) -> Optional[Dict[str, Any]]:
        try:
            response = self.get_admin_client().table('bookings').select('*, cars(id, name, type)').eq('id', booking_id).execute()
            return self._first(response)
        except Exception as e:
            logger.error(f"Error getting booking {booking_id}: {e}")
            raise

    def update_booking(self, booking_id: int, update_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        try:
            update_data['updated_at'] = datetime.now().isoformat()
            response = self.get_admin_client().table('bookings').update(update_data).eq('id', booking_id).execute()
            return self._first(response)
        except Exception as e:
            logger.error(f"Error updating booking {booking_id}: {e}")
            raise

    # Site settings

    def get_site_settings(self) -> Optional[Dict[str, Any]]:
        try:
            response = self.supabase.table('site_settings').select('*').order('id').limit(1).execute()
            return self._first(response)
        except Exception as e:
            logger.error(f"Error getting site settings: {e}")
            raise

    def upsert_site_settings(self, settings_data: Dict[str, Any]) -> Dict[str, Any]:
        """Update the singleton settings row, creating it with defaults if missing"""
        try:
            settings_data['updated_at'] = datetime.now().isoformat()
            existing = self.get_site_settings()

            if existing:
                response = self.get_admin_client().table('site_settings').update(settings_data).eq('id', existing['id']).execute()
            else:
                row = {**Config.DEFAULT_SITE_SETTINGS, **settings_data}
                response = self.get_admin_client().table('site_settings').insert(row).execute()

            if not response.data:
                raise RuntimeError("Failed to save site settings")
            return response.data[0]
        except Exception as e:
            logger.error(f"Error saving site settings: {e}")
            raise
