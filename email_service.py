"""
Email service module for Ether Rent API
Sends booking status notifications through EmailJS
"""

import logging
import requests
from config import Config
from utils import parse_date

logger = logging.getLogger(__name__)

EMAILJS_SEND_URL = "https://api.emailjs.com/api/v1.0/email/send"

STATUS_SUBJECTS = {
    'accepted': "Your Car Rental Booking #{id} has been Confirmed",
    'rejected': "Your Car Rental Booking #{id} Status Update",
}

STATUS_MESSAGES = {
    'accepted': (
        "Great news! Your car rental booking has been accepted. Please arrive at the "
        "pick-up location at your scheduled time with your ID and payment method."
    ),
    'rejected': (
        "We regret to inform you that your car rental booking has been declined. "
        "We encourage you to try booking a different car or date range."
    ),
}


class EmailService:
    """Service class for all email operations"""

    def __init__(self):
        """Initialize email service with EmailJS configuration"""
        self.service_id = Config.EMAILJS_SERVICE_ID
        self.public_key = Config.EMAILJS_PUBLIC_KEY
        self.private_key = Config.EMAILJS_PRIVATE_KEY
        self.status_template_id = Config.EMAILJS_STATUS_TEMPLATE_ID

    @property
    def configured(self) -> bool:
        return all([self.service_id, self.status_template_id, self.public_key])

    def send_emailjs_email(self, template_id: str, template_params: dict) -> bool:
        """Send email using EmailJS API"""
        data = {
            "service_id": self.service_id,
            "template_id": template_id,
            "user_id": self.public_key,
            "template_params": template_params
        }

        # Access token is required for server-side API calls
        if self.private_key:
            data["accessToken"] = self.private_key

        try:
            response = requests.post(EMAILJS_SEND_URL, json=data, timeout=30)
        except requests.RequestException as e:
            logger.error(f"Error sending email via EmailJS: {e}")
            return False

        if response.status_code == 200:
            logger.info("Email sent successfully via EmailJS")
            return True

        logger.error(f"EmailJS API error: {response.status_code} - {response.text}")
        return False

    def build_status_params(self, booking: dict) -> dict:
        status = booking['status']
        car = booking.get('cars') or {}
        params = {
            "to_name": booking.get('name') or 'Customer',
            "to_email": booking['email'],
            "from_name": Config.EMAIL_FROM_NAME,
            "subject": STATUS_SUBJECTS.get(status, "Your Car Rental Booking #{id} Status Update").format(id=booking['id']),
            "message": STATUS_MESSAGES.get(status, f"Your car rental booking status has been updated to: {status}."),
            "booking_id": booking['id'],
            "status": status,
            "car": car.get('name') or booking['car_type'],
            "pickup": f"{booking['pickup_location']} on {parse_date(booking['pickup_date']).strftime('%d/%m/%Y')}",
            "return": f"{booking['return_location']} on {parse_date(booking['return_date']).strftime('%d/%m/%Y')}",
            "rejection_reason": booking.get('rejection_reason') or ''
        }
        return params

    def send_booking_status_email(self, booking: dict) -> bool:
        """Tell the customer their booking was accepted or rejected"""
        if not booking.get('email'):
            logger.warning(f"No email address for booking #{booking['id']}, skipping notification")
            return False

        if not self.configured:
            logger.warning("EmailJS not configured for booking status notifications")
            return False

        return self.send_emailjs_email(self.status_template_id, self.build_status_params(booking))
