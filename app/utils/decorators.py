from functools import wraps
from flask import jsonify, request
from flask_login import current_user


def _error(status, code, message):
    return jsonify({'success': False, 'error': {'code': code, 'message': message, 'details': {}}}), status


def role_required(*roles):
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                return _error(401, 'AUTH_REQUIRED', 'Please log in to access this resource')

            if current_user.role not in roles:
                return _error(403, 'FORBIDDEN', 'You do not have access to this resource')

            return f(*args, **kwargs)
        return decorated_function
    return decorator


def json_body_required(f):
    """Reject requests whose body is not a JSON object."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return _error(400, 'INVALID_BODY', 'Request body must be a JSON object')

        return f(*args, **kwargs)
    return decorated_function
