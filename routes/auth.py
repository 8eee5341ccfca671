from flask import Blueprint, request, jsonify, current_app
from models import db
from models.user import User
from config import AUTH_TOKEN_TTL_DAYS, CSRF_TOKEN_TTL_MINUTES
from datetime import datetime, timedelta
from functools import wraps
import hmac
import jwt
import logging

auth_bp = Blueprint("auth", __name__)

logger = logging.getLogger(__name__)

MAX_LOGIN_ATTEMPTS = 5
LOCKOUT_MINUTES = 30


def generate_token(user):
    """Generate JWT token for user"""
    payload = {
        'user_id': user.id,
        'email': user.email,
        'role': user.role,
        'exp': datetime.utcnow() + timedelta(days=AUTH_TOKEN_TTL_DAYS)
    }
    return jwt.encode(payload, current_app.config['SECRET_KEY'], algorithm='HS256')


def generate_csrf_token(user):
    """Short-lived anti-forgery token bound to the user"""
    payload = {
        'user_id': user.id,
        'purpose': 'csrf',
        'exp': datetime.utcnow() + timedelta(minutes=CSRF_TOKEN_TTL_MINUTES)
    }
    return jwt.encode(payload, current_app.config['SECRET_KEY'], algorithm='HS256')


def validate_csrf_token(token, user):
    if not token:
        return False
    try:
        data = jwt.decode(token, current_app.config['SECRET_KEY'], algorithms=['HS256'])
    except jwt.InvalidTokenError:
        return False
    return data.get('purpose') == 'csrf' and hmac.compare_digest(str(data.get('user_id')), str(user.id))


def get_csrf_token_from_request():
    """Token from the X-CSRF-Token header, the JSON body or the form"""
    token = request.headers.get('X-CSRF-Token')
    if token:
        return token
    if request.is_json:
        payload = request.get_json(silent=True)
        return payload.get("csrf_token") if isinstance(payload, dict) else None
    return request.form.get('csrf_token')


def token_required(f):
    """Decorator to require valid JWT token"""
    @wraps(f)
    def decorated(*args, **kwargs):
        token = request.headers.get('Authorization')

        if not token:
            return jsonify({'success': False, 'message': 'Token is missing'}), 401

        try:
            if token.startswith('Bearer '):
                token = token[7:]

            data = jwt.decode(token, current_app.config['SECRET_KEY'], algorithms=['HS256'])
            if data.get('purpose') == 'csrf':
                return jsonify({'success': False, 'message': 'Invalid token'}), 401

            current_user = db.session.get(User, data['user_id'])

            if not current_user or not current_user.is_active:
                return jsonify({'success': False, 'message': 'Invalid token'}), 401

        except jwt.ExpiredSignatureError:
            return jsonify({'success': False, 'message': 'Token has expired'}), 401
        except (jwt.InvalidTokenError, KeyError):
            return jsonify({'success': False, 'message': 'Invalid token'}), 401

        return f(current_user, *args, **kwargs)
    return decorated


def permission_required(permission):
    """Decorator to require a named permission; use after token_required"""
    def decorator(f):
        @wraps(f)
        def decorated_function(current_user, *args, **kwargs):
            if not current_user.has_permission(permission):
                logger.warning(f"User {current_user.email} denied '{permission}' access to {request.path}")
                return jsonify({
                    'success': False,
                    'message': f"Access denied. '{permission}' permission required."
                }), 403
            return f(current_user, *args, **kwargs)
        return decorated_function
    return decorator


def csrf_protected(f):
    """Reject state-changing requests without a valid anti-forgery token"""
    @wraps(f)
    def decorated_function(current_user, *args, **kwargs):
        if not validate_csrf_token(get_csrf_token_from_request(), current_user):
            return jsonify({'success': False, 'message': 'Invalid token'}), 400
        return f(current_user, *args, **kwargs)
    return decorated_function


@auth_bp.route("/login", methods=["POST"])
def login():
    """Operator login endpoint"""
    try:
        data = request.get_json(silent=True)

        if not data or not isinstance(data, dict):
            return jsonify({
                "success": False,
                "message": "No data provided"
            }), 400

        email = data.get('email')
        password = data.get('password')

        if not email or not password:
            return jsonify({
                "success": False,
                "message": "Email and password are required"
            }), 400

        user = User.query.filter_by(email=email).first()

        if not user:
            return jsonify({
                "success": False,
                "message": "Invalid email or password"
            }), 401

        # Check if account is locked
        if user.locked_until and user.locked_until > datetime.utcnow():
            return jsonify({
                "success": False,
                "message": "Account is temporarily locked. Please try again later."
            }), 401

        if not user.check_password(password):
            user.login_attempts = (user.login_attempts or 0) + 1

            # Lock account after repeated failures
            if user.login_attempts >= MAX_LOGIN_ATTEMPTS:
                user.locked_until = datetime.utcnow() + timedelta(minutes=LOCKOUT_MINUTES)
                logger.warning(f"Account {email} locked after {user.login_attempts} failed attempts")

            db.session.commit()

            return jsonify({
                "success": False,
                "message": "Invalid email or password"
            }), 401

        if not user.is_active:
            return jsonify({
                "success": False,
                "message": "Account is deactivated"
            }), 401

        # Successful login - reset attempts and update last login
        user.login_attempts = 0
        user.locked_until = None
        user.last_login = datetime.utcnow()
        db.session.commit()

        return jsonify({
            "success": True,
            "message": "Login successful",
            "data": {
                "token": generate_token(user),
                "user": user.to_dict()
            }
        }), 200

    except Exception as e:
        db.session.rollback()
        logger.exception("Login failed")
        return jsonify({
            "success": False,
            "message": f"Login failed: {str(e)}"
        }), 500


@auth_bp.route("/me", methods=["GET"])
@token_required
def get_current_user(current_user):
    """Get current user information"""
    return jsonify({
        "success": True,
        "data": current_user.to_dict()
    }), 200
