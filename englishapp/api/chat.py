from flask import Blueprint, g, jsonify

from . import json_body, parse_text
from ..chat_db import get_user_chat_history, get_chat_by_id, delete_chat, clear_user_chat_history
from ..errors import ForbiddenError, NotFoundError, StorageError, ValidationError
from ..middleware import require_auth
from ..services.chat import AVAILABLE_MODELS, send_message

chat_bp = Blueprint('chat', __name__, url_prefix='/api/chat')


def _own_chat(chat_id):
    chat = get_chat_by_id(chat_id)
    if not chat:
        raise NotFoundError('Chat not found')
    if chat['user_id'] != g.user_id:
        raise ForbiddenError('You do not have access to this chat')
    return chat


@chat_bp.post('/send')
@require_auth()
def api_send_message():
    data = json_body()
    message = parse_text(data.get('message'), 'message')
    if not message:
        raise ValidationError('Message is required')
    chat = send_message(g.user_id, message, data.get('modelId'))
    return jsonify({
        'id': chat['id'],
        'message': chat['message'],
        'response': chat['response'],
        'created_at': chat['created_at'],
        'model_id': chat['model_id'],
    })


@chat_bp.get('/models')
@require_auth()
def api_get_models():
    return jsonify(AVAILABLE_MODELS)


@chat_bp.get('/history')
@require_auth()
def api_get_history():
    return jsonify(get_user_chat_history(g.user_id))


@chat_bp.get('/history/<int:chat_id>')
@require_auth()
def api_get_chat(chat_id):
    return jsonify(_own_chat(chat_id))


@chat_bp.delete('/history/<int:chat_id>')
@require_auth()
def api_delete_chat(chat_id):
    _own_chat(chat_id)
    if not delete_chat(chat_id):
        raise StorageError('Could not delete chat')
    return jsonify({'message': 'Chat deleted successfully'})


@chat_bp.delete('/history')
@require_auth()
def api_clear_history():
    if clear_user_chat_history(g.user_id):
        return jsonify({'message': 'Chat history cleared successfully'})
    return jsonify({'message': 'No chat history to clear'})
