import logging

from flask import Blueprint, g, jsonify, request

from . import json_body, parse_float, parse_int, parse_text, request_data
from ..errors import NotFoundError, ValidationError
from ..importing import SENTENCE_SCHEMA
from ..middleware import require_admin, require_auth
from ..query import Pagination
from ..services.catalog_upload import CSV_TYPES, import_parsed_batch, parse_uploaded_csv
from ..services.media_storage import AUDIO_TYPES, check_upload_type, save_upload
from ..speech_db import (
    get_all_sentences, get_sentence_by_id, add_sentence, add_multiple_sentences, update_sentence,
    delete_sentence, get_categories, get_stats, save_user_practice, get_user_practice_history,
    get_user_practice_stats, delete_user_practice, delete_all_user_practices,
)

logger = logging.getLogger(__name__)

speech_bp = Blueprint('speech_practice', __name__, url_prefix='/api/speech-practice')


def _sentence_fields(data):
    sentence = parse_text(data.get('sentence'), 'sentence')
    if not sentence:
        raise ValidationError('Sentence is required')
    return {
        'sentence': sentence,
        'translation': data.get('translation'),
        'difficulty': parse_text(data.get('difficulty'), 'difficulty'),
        'category': parse_text(data.get('category'), 'category'),
    }


############################
# Sentences
############################

@speech_bp.get('/sentences')
@require_auth()
def api_get_sentences():
    pagination = Pagination.from_args(request.args, default_limit=20)
    return jsonify(get_all_sentences(
        difficulty=request.args.get('difficulty'),
        category=request.args.get('category'),
        pagination=pagination,
    ))


@speech_bp.get('/sentences/<int:sentence_id>')
@require_auth()
def api_get_sentence(sentence_id):
    sentence = get_sentence_by_id(sentence_id)
    if not sentence:
        raise NotFoundError('Sentence not found')
    return jsonify(sentence)


@speech_bp.post('/sentences')
@require_admin
def api_add_sentence():
    return jsonify(add_sentence(**_sentence_fields(json_body()))), 201


@speech_bp.post('/upload')
@require_admin
def api_upload_sentences():
    file = request.files.get('file')
    if file is None or not file.filename:
        raise ValidationError('No file uploaded')
    check_upload_type(file, CSV_TYPES)
    batch = parse_uploaded_csv(file, SENTENCE_SCHEMA)
    result = import_parsed_batch(batch, add_multiple_sentences, 'No valid sentences found in CSV file')
    logger.info("Sentence import: %d processed, %d inserted", result['processed'], result['inserted'])
    return jsonify({
        'message': f"Added {result['inserted']} new sentences",
        'totalProcessed': result['processed'],
        'newSentencesAdded': result['inserted'],
    }), 201


@speech_bp.put('/sentences/<int:sentence_id>')
@require_admin
def api_update_sentence(sentence_id):
    sentence = update_sentence(sentence_id, **_sentence_fields(json_body()))
    if not sentence:
        raise NotFoundError('Sentence not found')
    return jsonify(sentence)


@speech_bp.delete('/sentences/<int:sentence_id>')
@require_admin
def api_delete_sentence(sentence_id):
    sentence = delete_sentence(sentence_id)
    if not sentence:
        raise NotFoundError('Sentence not found')
    return jsonify({'message': 'Sentence deleted successfully', 'sentence': sentence})


@speech_bp.get('/categories')
@require_auth()
def api_get_categories():
    return jsonify(get_categories())


@speech_bp.get('/admin/stats')
@require_admin
def api_admin_stats():
    return jsonify(get_stats())


############################
# User practice
############################

@speech_bp.post('/practice')
@require_auth()
def api_save_practice():
    data = request_data()
    sentence_id = parse_int(data.get('sentenceId'), 'sentenceId')
    accuracy = parse_float(data.get('accuracy'), 'accuracy')
    if not get_sentence_by_id(sentence_id):
        raise NotFoundError('Sentence not found')

    audio_url = None
    audio = request.files.get('audio')
    if audio is not None and audio.filename:
        check_upload_type(audio, AUDIO_TYPES)
        audio_url = save_upload(audio, 'speech', 'speech')

    practice = save_user_practice(g.user_id, sentence_id, accuracy, audio_url)
    return jsonify(practice), 201


@speech_bp.get('/history')
@require_auth()
def api_get_history():
    pagination = Pagination.from_args(request.args, default_limit=20)
    return jsonify(get_user_practice_history(g.user_id, pagination=pagination))


@speech_bp.get('/stats')
@require_auth()
def api_get_practice_stats():
    return jsonify(get_user_practice_stats(g.user_id))


@speech_bp.delete('/history/<int:practice_id>')
@require_auth()
def api_delete_practice(practice_id):
    practice = delete_user_practice(g.user_id, practice_id)
    if not practice:
        raise NotFoundError('Practice record not found')
    return jsonify({'message': 'Practice record deleted successfully', 'practice': practice})


@speech_bp.delete('/history')
@require_auth()
def api_delete_all_practices():
    result = delete_all_user_practices(g.user_id)
    return jsonify({'message': f"Deleted {result['count']} practice records", 'count': result['count']})
