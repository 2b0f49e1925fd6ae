from flask import Blueprint, current_app, g, jsonify

from . import json_body
from ..middleware import get_user_context, require_auth
from ..services.auth import (
    register_user, login_user, logout_user, request_password_reset, reset_password,
)

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


@auth_bp.post('/register')
def api_register():
    data = json_body()
    user = register_user(data.get('username'), data.get('email'), data.get('password'))
    return jsonify({'message': 'Registration successful', 'user': user}), 201


@auth_bp.post('/login')
def api_login():
    data = json_body()
    result = login_user(data.get('email'), data.get('password'))
    return jsonify({'message': 'Login successful', **result})


@auth_bp.post('/logout')
@require_auth()
def api_logout():
    logout_user(g.session_token)
    return jsonify({'message': 'Logged out successfully'})


@auth_bp.get('/me')
@require_auth()
def api_get_current_user():
    return jsonify({'user': get_user_context()['user']})


@auth_bp.post('/forgot-password')
def api_forgot_password():
    reset_token = request_password_reset(json_body().get('email'))
    body = {'message': 'Password reset instructions have been sent to your email'}
    if current_app.config.get('EXPOSE_RESET_TOKEN'):
        body['resetToken'] = reset_token
    return jsonify(body)


@auth_bp.post('/reset-password')
def api_reset_password():
    data = json_body()
    reset_password(data.get('token'), data.get('newPassword'))
    return jsonify({'message': 'Password has been reset successfully'})
