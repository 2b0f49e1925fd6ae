"""HTTP blueprints, one per resource area."""

from flask import request

from ..errors import ValidationError


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def request_data() -> dict:
    """Form fields for multipart requests, JSON body otherwise"""
    if request.form:
        return request.form.to_dict()
    return json_body()


def parse_text(value, name) -> str:
    """Stripped string value; '' when absent, ValidationError for non-strings"""
    if value is None:
        return ''
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string")
    return value.strip()


def parse_int(value, name, default=None):
    if value is None or value == '':
        if default is not None:
            return default
        raise ValidationError(f"{name} is required")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer")


def parse_float(value, name):
    if value is None or value == '':
        raise ValidationError(f"{name} is required")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number")


def all_blueprints():
    from .admin import admin_bp
    from .auth import auth_bp
    from .chat import chat_bp
    from .speech_practice import speech_bp
    from .topics import topics_bp
    from .user_vocabulary import user_vocabulary_bp
    from .vocabulary import vocabulary_bp
    return [auth_bp, admin_bp, vocabulary_bp, user_vocabulary_bp, topics_bp, speech_bp, chat_bp]
