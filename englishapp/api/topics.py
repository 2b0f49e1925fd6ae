import logging

from flask import Blueprint, jsonify, request

from ..errors import NotFoundError, ValidationError
from ..middleware import require_admin, require_auth
from ..query import Pagination
from ..services.media_storage import (
    IMAGE_EXTENSIONS, IMAGE_TYPES, check_upload_type, delete_media, save_upload,
)
from ..vocabulary_db import add_topic, delete_topic, get_all_topics, get_vocabulary_by_topic

logger = logging.getLogger(__name__)

topics_bp = Blueprint('topics', __name__, url_prefix='/api/topics')


@topics_bp.get('/', strict_slashes=False)
@require_auth()
def api_get_topics():
    return jsonify(get_all_topics())


@topics_bp.post('/', strict_slashes=False)
@require_admin
def api_add_topic():
    name = (request.form.get('name') or '').strip()
    if not name:
        raise ValidationError('Topic name is required')

    image_url = None
    image = request.files.get('image')
    if image is not None and image.filename:
        check_upload_type(image, IMAGE_TYPES, IMAGE_EXTENSIONS)
        image_url = save_upload(image, 'topics', 'topic')

    topic = add_topic(name, request.form.get('description'), image_url)
    return jsonify(topic), 201


@topics_bp.delete('/<int:topic_id>')
@require_admin
def api_delete_topic(topic_id):
    topic = delete_topic(topic_id)
    if not topic:
        raise NotFoundError('Topic not found')
    if topic['image_url'] and not delete_media(topic['image_url']):
        logger.warning("Image for topic %s was not removed: %s", topic_id, topic['image_url'])
    return jsonify({'message': 'Topic deleted successfully', 'topic': topic})


@topics_bp.get('/<topic>/words')
@require_auth()
def api_get_topic_words(topic):
    pagination = Pagination.from_args(request.args, default_limit=50)
    return jsonify(get_vocabulary_by_topic(topic, pagination=pagination))
