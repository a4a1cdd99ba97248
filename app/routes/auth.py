from flask import Blueprint, jsonify, request
from flask_login import login_user, logout_user, current_user, login_required
from app.models import User
from app.utils.decorators import json_body_required
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('auth', __name__, url_prefix='/auth')

@bp.route('/login', methods=['POST'])
@json_body_required
def login():
    data = request.get_json()
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''
    remember = bool(data.get('remember'))

    user = User.query.filter_by(email=email).first()

    if user and user.check_password(password):
        if not user.is_active:
            return jsonify({
                'success': False,
                'error': {'code': 'ACCOUNT_INACTIVE', 'message': 'Your account is inactive', 'details': {}}
            }), 403

        login_user(user, remember=remember)
        logger.info(f"User {user.id} logged in")
        return jsonify({'success': True, 'user': user.to_dict()})

    return jsonify({
        'success': False,
        'error': {'code': 'INVALID_CREDENTIALS', 'message': 'Email or password is incorrect', 'details': {}}
    }), 401

@bp.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'success': True})

@bp.route('/me')
@login_required
def me():
    return jsonify({'success': True, 'user': current_user.to_dict()})
