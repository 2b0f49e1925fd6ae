"""Vocabulary words and topics."""

import logging

from .db import db_operation
from .db_config import INTEGRITY_ERRORS
from .errors import ConflictError
from .importing import VOCABULARY_TARGET, import_batch
from .query import CEFR_ORDER, Pagination, build_page_query, fetch_page

logger = logging.getLogger(__name__)

VOCABULARY_FIELDS = ('headword', 'cefr_level', 'vietnamese_meaning', 'topic', 'image_url', 'audio_url')


def _word_values(word_data: dict) -> list:
    return [word_data.get(field) for field in VOCABULARY_FIELDS]


@db_operation("Error getting vocabulary")
def get_all_vocabulary(conn, cefr_level=None, topic=None, pagination: Pagination = None) -> dict:
    pagination = pagination or Pagination()
    query = build_page_query(
        'vocabulary',
        [('cefr_level', cefr_level), ('topic', topic)],
        'headword ASC',
        pagination,
    )
    words, page_info = fetch_page(conn, query, pagination)
    return {'words': words, 'pagination': page_info}


@db_operation("Error getting vocabulary by topic")
def get_vocabulary_by_topic(conn, topic: str, pagination: Pagination = None) -> dict:
    pagination = pagination or Pagination()
    query = build_page_query('vocabulary', [('topic', topic)], 'headword ASC', pagination)
    words, page_info = fetch_page(conn, query, pagination)
    return {'words': words, 'pagination': page_info}


@db_operation("Error getting vocabulary by ID")
def get_vocabulary_by_id(conn, vocabulary_id: int):
    return conn.fetchone('SELECT * FROM vocabulary WHERE id = ?', (vocabulary_id,))


@db_operation("Error adding vocabulary")
def add_vocabulary(conn, word_data: dict) -> dict:
    headword = word_data['headword']
    if conn.fetchone('SELECT id FROM vocabulary WHERE headword = ?', (headword,)):
        raise ConflictError(f"Vocabulary '{headword}' already exists")
    try:
        word_id = conn.insert(
            f"INSERT INTO vocabulary ({', '.join(VOCABULARY_FIELDS)}) VALUES (?, ?, ?, ?, ?, ?)",
            _word_values(word_data)
        )
    except INTEGRITY_ERRORS as e:
        raise ConflictError(f"Vocabulary '{headword}' already exists", str(e)) from e
    return conn.fetchone('SELECT * FROM vocabulary WHERE id = ?', (word_id,))


def add_multiple_vocabulary(batch: list[dict]) -> dict:
    return import_batch(VOCABULARY_TARGET, batch)


@db_operation("Error updating vocabulary")
def update_vocabulary(conn, vocabulary_id: int, word_data: dict):
    assignments = ', '.join(f"{field} = ?" for field in VOCABULARY_FIELDS)
    try:
        cursor = conn.execute(
            f"UPDATE vocabulary SET {assignments} WHERE id = ?",
            _word_values(word_data) + [vocabulary_id]
        )
    except INTEGRITY_ERRORS as e:
        raise ConflictError(f"Vocabulary '{word_data['headword']}' already exists", str(e)) from e
    if cursor.rowcount == 0:
        return None
    return conn.fetchone('SELECT * FROM vocabulary WHERE id = ?', (vocabulary_id,))


@db_operation("Error deleting vocabulary")
def delete_vocabulary(conn, vocabulary_id: int):
    word = conn.fetchone('SELECT * FROM vocabulary WHERE id = ?', (vocabulary_id,))
    if word:
        conn.execute('DELETE FROM vocabulary WHERE id = ?', (vocabulary_id,))
    return word


@db_operation("Error deleting all vocabulary")
def delete_all_vocabulary(conn) -> dict:
    cursor = conn.execute('DELETE FROM vocabulary')
    logger.info("Deleted %d vocabulary rows", cursor.rowcount)
    return {'success': True, 'count': cursor.rowcount}


@db_operation("Error getting vocabulary stats")
def get_vocabulary_stats(conn) -> dict:
    by_level = conn.fetchall(
        f'''
        SELECT cefr_level, COUNT(*) AS count
        FROM vocabulary
        GROUP BY cefr_level
        ORDER BY {CEFR_ORDER}
        '''
    )
    by_topic = conn.fetchall(
        '''
        SELECT topic, COUNT(*) AS count
        FROM vocabulary
        WHERE topic IS NOT NULL
        GROUP BY topic
        ORDER BY count DESC
        '''
    )
    total = conn.scalar('SELECT COUNT(*) AS total FROM vocabulary')
    return {
        'byLevel': [{'cefr_level': r['cefr_level'], 'count': int(r['count'])} for r in by_level],
        'byTopic': [{'topic': r['topic'], 'count': int(r['count'])} for r in by_topic],
        'total': int(total),
    }


############################
# Topics
############################

@db_operation("Error getting vocabulary topics")
def get_all_topics(conn) -> list[dict]:
    return conn.fetchall('SELECT * FROM vocabulary_topics ORDER BY name ASC')


@db_operation("Error adding vocabulary topic")
def add_topic(conn, name: str, description: str = None, image_url: str = None) -> dict:
    topic_id = conn.insert(
        'INSERT INTO vocabulary_topics (name, description, image_url) VALUES (?, ?, ?)',
        (name, description, image_url)
    )
    return conn.fetchone('SELECT * FROM vocabulary_topics WHERE id = ?', (topic_id,))


@db_operation("Error deleting vocabulary topic")
def delete_topic(conn, topic_id: int):
    topic = conn.fetchone('SELECT * FROM vocabulary_topics WHERE id = ?', (topic_id,))
    if topic:
        conn.execute('DELETE FROM vocabulary_topics WHERE id = ?', (topic_id,))
    return topic
