from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user
from app.utils.decorators import json_body_required
from app.utils.notifications import (get_user_notifications, get_unread_count, mark_notification_as_read,
                                     link_telegram_account, unlink_telegram_account)

bp = Blueprint('notifications', __name__, url_prefix='/notifications')

@bp.route('')
@login_required
def list_notifications():
    unread_only = request.args.get('unread') == '1'
    recipients = get_user_notifications(current_user.id, unread_only=unread_only)

    return jsonify({
        'success': True,
        'count': get_unread_count(current_user.id),
        'notifications': [recipient.to_dict() for recipient in recipients]
    })

@bp.route('/<int:recipient_id>/read', methods=['POST'])
@login_required
def mark_read(recipient_id):
    if not mark_notification_as_read(recipient_id, current_user.id):
        return jsonify({
            'success': False,
            'error': {'code': 'NOTIFICATION_NOT_FOUND', 'message': 'Notification not found', 'details': {}}
        }), 404

    return jsonify({'success': True})

@bp.route('/telegram', methods=['POST'])
@login_required
@json_body_required
def link_telegram():
    data = request.get_json()
    link = link_telegram_account(current_user.id, data.get('telegram_id'), data.get('username'))

    return jsonify({'success': True, 'telegram_id': link.telegram_id, 'username': link.username})

@bp.route('/telegram', methods=['DELETE'])
@login_required
def unlink_telegram():
    return jsonify({'success': unlink_telegram_account(current_user.id)})
