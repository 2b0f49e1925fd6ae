from datetime import timedelta

from flask import Blueprint, jsonify

from . import json_body
from ..db import list_users, get_user_by_id, delete_user, count_users, utc_timestamp
from ..errors import NotFoundError
from ..middleware import require_admin
from ..services.auth import login_user, public_user, register_user

admin_bp = Blueprint('admin', __name__, url_prefix='/api/admin')

NEW_USER_WINDOW_DAYS = 7


@admin_bp.post('/login')
def api_admin_login():
    data = json_body()
    result = login_user(data.get('email'), data.get('password'), admin=True)
    return jsonify({'message': 'Login successful', 'token': result['token'], 'admin': result['user']})


@admin_bp.get('/users')
@require_admin
def api_list_users():
    return jsonify({'users': [public_user(u) for u in list_users()]})


@admin_bp.delete('/users/<int:user_id>')
@require_admin
def api_delete_user(user_id):
    if not get_user_by_id(user_id):
        raise NotFoundError('User not found')
    delete_user(user_id)
    return jsonify({'message': 'User deleted successfully'})


@admin_bp.post('/create')
@require_admin
def api_create_admin():
    data = json_body()
    admin = register_user(data.get('username'), data.get('email'), data.get('password'), is_admin=True)
    return jsonify({'message': 'Administrator created successfully', 'admin': admin}), 201


@admin_bp.get('/dashboard')
@require_admin
def api_dashboard():
    since = utc_timestamp(-timedelta(days=NEW_USER_WINDOW_DAYS))
    return jsonify({
        'totalUsers': count_users(),
        'newUsers': count_users(since=since),
    })
