from flask import Blueprint, g, jsonify, request

from . import json_body, parse_int
from ..errors import NotFoundError, ValidationError
from ..middleware import require_auth
from ..progress_db import (
    mark_word_as_favorite, unmark_word_as_favorite, get_user_favorite_words, is_word_favorite,
    mark_word_as_learned, get_user_learned_words, is_word_learned,
    save_quiz_attempt, get_user_quiz_attempts, get_user_learning_stats,
)
from ..query import Pagination
from ..vocabulary_db import get_vocabulary_by_id

user_vocabulary_bp = Blueprint('user_vocabulary', __name__, url_prefix='/api/user-vocabulary')


def _require_word(vocabulary_id):
    if not get_vocabulary_by_id(vocabulary_id):
        raise NotFoundError('Vocabulary not found')


############################
# Favorites
############################

@user_vocabulary_bp.post('/favorites/<int:vocabulary_id>')
@require_auth()
def api_mark_favorite(vocabulary_id):
    _require_word(vocabulary_id)
    mark_word_as_favorite(g.user_id, vocabulary_id)
    return jsonify({'message': 'Word marked as favorite'})


@user_vocabulary_bp.delete('/favorites/<int:vocabulary_id>')
@require_auth()
def api_unmark_favorite(vocabulary_id):
    unmark_word_as_favorite(g.user_id, vocabulary_id)
    return jsonify({'message': 'Word removed from favorites'})


@user_vocabulary_bp.get('/favorites')
@require_auth()
def api_get_favorites():
    pagination = Pagination.from_args(request.args, default_limit=50)
    return jsonify(get_user_favorite_words(g.user_id, pagination=pagination))


@user_vocabulary_bp.get('/favorites/<int:vocabulary_id>')
@require_auth()
def api_check_favorite(vocabulary_id):
    return jsonify({'isFavorite': is_word_favorite(g.user_id, vocabulary_id)})


############################
# Learned words
############################

@user_vocabulary_bp.post('/learned/<int:vocabulary_id>')
@require_auth()
def api_mark_learned(vocabulary_id):
    mastery_level = parse_int(json_body().get('masteryLevel'), 'masteryLevel', default=0)
    _require_word(vocabulary_id)
    mark_word_as_learned(g.user_id, vocabulary_id, mastery_level)
    return jsonify({'message': 'Word marked as learned'})


@user_vocabulary_bp.get('/learned')
@require_auth()
def api_get_learned():
    pagination = Pagination.from_args(request.args, default_limit=50)
    return jsonify(get_user_learned_words(g.user_id, pagination=pagination))


@user_vocabulary_bp.get('/learned/<int:vocabulary_id>')
@require_auth()
def api_check_learned(vocabulary_id):
    learned = is_word_learned(g.user_id, vocabulary_id)
    return jsonify({
        'isLearned': learned is not None,
        'masteryLevel': learned['mastery_level'] if learned else 0,
        'lastReviewed': learned['last_reviewed'] if learned else None,
    })


############################
# Quiz attempts
############################

@user_vocabulary_bp.post('/quiz-attempts')
@require_auth()
def api_save_quiz_attempt():
    data = json_body()
    if data.get('score') is None or data.get('totalQuestions') is None:
        raise ValidationError('Score and total questions are required')
    attempt = save_quiz_attempt(
        g.user_id,
        data.get('topic'),
        parse_int(data['score'], 'score'),
        parse_int(data['totalQuestions'], 'totalQuestions'),
    )
    return jsonify(attempt), 201


@user_vocabulary_bp.get('/quiz-attempts')
@require_auth()
def api_get_quiz_attempts():
    limit = parse_int(request.args.get('limit'), 'limit', default=10)
    if limit < 1:
        raise ValidationError('limit must be a positive integer')
    return jsonify(get_user_quiz_attempts(g.user_id, limit))


@user_vocabulary_bp.get('/stats')
@require_auth()
def api_learning_stats():
    return jsonify(get_user_learning_stats(g.user_id))
