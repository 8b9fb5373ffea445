"""
Authentication module for Ether Rent API
Handles user login, registration and session management
"""

import logging
from datetime import datetime
from functools import wraps
from typing import Any, Dict, Optional
from flask import session, g
from werkzeug.exceptions import BadRequest, Forbidden, Unauthorized
from werkzeug.security import check_password_hash, generate_password_hash
from config import Config
from validators import validate_registration_data

logger = logging.getLogger(__name__)


def public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    """Strip the password hash before a user leaves the server"""
    return {k: v for k, v in user.items() if k != 'password'}


def _start_session(user: Dict[str, Any]) -> None:
    session.clear()
    session['user_id'] = user['id']
    session['username'] = user['username']
    session['is_admin'] = bool(user.get('is_admin'))
    session['login_time'] = datetime.now().isoformat()
    session.permanent = True


def current_user() -> Optional[Dict[str, Any]]:
    """Session user, or None when there is no session or it has expired"""
    if 'user_id' not in session:
        return None

    login_time = session.get('login_time')
    if login_time:
        if datetime.now() - datetime.fromisoformat(login_time) > Config.PERMANENT_SESSION_LIFETIME:
            logger.info(f"Session expired for {session.get('username')}")
            session.clear()
            return None

    return {
        'id': session['user_id'],
        'username': session.get('username'),
        'is_admin': session.get('is_admin', False)
    }


def login(db, username: str, password: str) -> Dict[str, Any]:
    """Verify credentials and open a session"""
    user = db.get_user_by_username(username)

    if not user or not check_password_hash(user['password'], password):
        session.clear()
        logger.warning(f"Failed login attempt for username '{username}'")
        raise Unauthorized("Invalid username or password")

    _start_session(user)
    logger.info(f"Login successful for {username}")
    return public_user(user)


def logout() -> None:
    username = session.get('username')
    session.clear()
    if username:
        logger.info(f"{username} logged out")


def register(db, data: dict) -> Dict[str, Any]:
    """Create a regular (never admin) account and log it in"""
    user_data = validate_registration_data(data)

    if db.get_user_by_username(user_data['username']):
        raise BadRequest("Username already exists")

    user_data['password'] = generate_password_hash(user_data['password'])
    user = db.create_user(user_data)
    _start_session(user)
    logger.info(f"Registered new user {user['username']}")
    return public_user(user)


def require_user() -> Dict[str, Any]:
    user = current_user()
    if user is None:
        raise Unauthorized("Not authenticated")
    return user


def require_admin() -> Dict[str, Any]:
    user = require_user()
    if not user['is_admin']:
        logger.warning(f"Non-admin {user['username']} tried to access an admin route")
        raise Forbidden("Admin access required")
    return user


def login_required(f):
    """Decorator to require a logged-in user"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.user = require_user()
        return f(*args, **kwargs)
    return decorated_function


def admin_required(f):
    """Decorator to require admin authentication"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.user = require_admin()
        return f(*args, **kwargs)
    return decorated_function
