import logging

from flask import Blueprint, jsonify, request

from . import json_body, parse_text
from ..errors import NotFoundError, ValidationError
from ..importing import VOCABULARY_SCHEMA
from ..middleware import require_admin, require_auth
from ..query import Pagination
from ..services.catalog_upload import (
    CSV_TYPES, parse_uploaded_csv, parse_remote_csv, import_parsed_batch,
)
from ..services.media_storage import check_upload_type
from ..vocabulary_db import (
    get_all_vocabulary, get_vocabulary_by_id, get_vocabulary_stats, add_vocabulary,
    add_multiple_vocabulary, update_vocabulary, delete_vocabulary, delete_all_vocabulary,
)

logger = logging.getLogger(__name__)

vocabulary_bp = Blueprint('vocabulary', __name__, url_prefix='/api/vocabulary')

EMPTY_UPLOAD_MESSAGE = 'No valid vocabulary found in CSV file'


def _word_payload(data):
    headword = parse_text(data.get('headword'), 'headword')
    cefr_level = parse_text(data.get('cefr_level'), 'cefr_level').upper()
    if not headword or not cefr_level:
        raise ValidationError('Headword and CEFR level are required')
    return {
        'headword': headword,
        'cefr_level': cefr_level,
        'vietnamese_meaning': data.get('vietnamese_meaning'),
        'topic': data.get('topic'),
        'image_url': data.get('image_url'),
        'audio_url': data.get('audio_url'),
    }


def _import_response(batch):
    result = import_parsed_batch(batch, add_multiple_vocabulary, EMPTY_UPLOAD_MESSAGE)
    logger.info("Vocabulary import: %d processed, %d inserted", result['processed'], result['inserted'])
    return jsonify({
        'message': f"Added {result['inserted']} new vocabulary words",
        'totalProcessed': result['processed'],
        'newWordsAdded': result['inserted'],
    }), 201


@vocabulary_bp.get('/', strict_slashes=False)
@require_auth()
def api_get_vocabulary():
    pagination = Pagination.from_args(request.args, default_limit=50)
    return jsonify(get_all_vocabulary(
        cefr_level=request.args.get('cefr_level'),
        topic=request.args.get('topic'),
        pagination=pagination,
    ))


@vocabulary_bp.get('/stats')
@require_auth()
def api_vocabulary_stats():
    return jsonify(get_vocabulary_stats())


@vocabulary_bp.get('/<int:vocabulary_id>')
@require_auth()
def api_get_word(vocabulary_id):
    word = get_vocabulary_by_id(vocabulary_id)
    if not word:
        raise NotFoundError('Vocabulary not found')
    return jsonify(word)


@vocabulary_bp.post('/', strict_slashes=False)
@require_admin
def api_add_word():
    word = add_vocabulary(_word_payload(json_body()))
    return jsonify(word), 201


@vocabulary_bp.post('/upload')
@require_admin
def api_upload_vocabulary():
    file = request.files.get('file')
    if file is None or not file.filename:
        raise ValidationError('No file uploaded')
    check_upload_type(file, CSV_TYPES)
    return _import_response(parse_uploaded_csv(file, VOCABULARY_SCHEMA))


@vocabulary_bp.post('/upload-from-url')
@require_admin
def api_upload_vocabulary_from_url():
    url = parse_text(json_body().get('url'), 'url')
    if not url:
        raise ValidationError('URL is required')
    return _import_response(parse_remote_csv(url, VOCABULARY_SCHEMA))


@vocabulary_bp.put('/<int:vocabulary_id>')
@require_admin
def api_update_word(vocabulary_id):
    word = update_vocabulary(vocabulary_id, _word_payload(json_body()))
    if not word:
        raise NotFoundError('Vocabulary not found')
    return jsonify(word)


@vocabulary_bp.delete('/<int:vocabulary_id>')
@require_admin
def api_delete_word(vocabulary_id):
    if not delete_vocabulary(vocabulary_id):
        raise NotFoundError('Vocabulary not found')
    return jsonify({'message': 'Vocabulary deleted successfully'})


@vocabulary_bp.delete('/', strict_slashes=False)
@require_admin
def api_delete_all_vocabulary():
    result = delete_all_vocabulary()
    return jsonify({'message': 'All vocabulary deleted successfully', 'count': result['count']})
