"""Speech practice sentences and per-user practice attempts."""

from datetime import timedelta

from .db import db_operation, utc_timestamp
from .db_config import INTEGRITY_ERRORS
from .errors import ConflictError, ValidationError
from .importing import SENTENCE_TARGET, import_batch
from .query import Pagination, build_page_query, fetch_page

DIFFICULTIES = ('easy', 'medium', 'hard')
RECENT_PROGRESS_DAYS = 7


def _sentence_values(sentence, translation, difficulty, category) -> tuple:
    difficulty = (difficulty or 'medium').strip().lower()
    if difficulty not in DIFFICULTIES:
        raise ValidationError(f"difficulty must be one of: {', '.join(DIFFICULTIES)}")
    return sentence, translation or None, difficulty, (category or 'general').strip().lower()


@db_operation("Error getting speech practice sentences")
def get_all_sentences(conn, difficulty=None, category=None, pagination: Pagination = None) -> dict:
    pagination = pagination or Pagination(limit=20)
    query = build_page_query(
        'speech_practice_sentences',
        [('difficulty', difficulty), ('category', category)],
        'id ASC',
        pagination,
    )
    sentences, page_info = fetch_page(conn, query, pagination)
    return {'sentences': sentences, 'pagination': page_info}


@db_operation("Error getting speech practice sentence by ID")
def get_sentence_by_id(conn, sentence_id: int):
    return conn.fetchone('SELECT * FROM speech_practice_sentences WHERE id = ?', (sentence_id,))


@db_operation("Error adding speech practice sentence")
def add_sentence(conn, sentence: str, translation=None, difficulty='medium', category='general') -> dict:
    values = _sentence_values(sentence, translation, difficulty, category)
    if conn.fetchone('SELECT id FROM speech_practice_sentences WHERE sentence = ?', (sentence,)):
        raise ConflictError("Sentence already exists")
    try:
        sentence_id = conn.insert(
            'INSERT INTO speech_practice_sentences (sentence, translation, difficulty, category) VALUES (?, ?, ?, ?)',
            values
        )
    except INTEGRITY_ERRORS as e:
        raise ConflictError("Sentence already exists", str(e)) from e
    return conn.fetchone('SELECT * FROM speech_practice_sentences WHERE id = ?', (sentence_id,))


def add_multiple_sentences(batch: list[dict]) -> dict:
    return import_batch(SENTENCE_TARGET, batch)


@db_operation("Error updating speech practice sentence")
def update_sentence(conn, sentence_id: int, sentence: str, translation=None,
                    difficulty='medium', category='general'):
    values = _sentence_values(sentence, translation, difficulty, category)
    try:
        cursor = conn.execute(
            '''
            UPDATE speech_practice_sentences
            SET sentence = ?, translation = ?, difficulty = ?, category = ?
            WHERE id = ?
            ''',
            values + (sentence_id,)
        )
    except INTEGRITY_ERRORS as e:
        raise ConflictError("Sentence already exists", str(e)) from e
    if cursor.rowcount == 0:
        return None
    return conn.fetchone('SELECT * FROM speech_practice_sentences WHERE id = ?', (sentence_id,))


@db_operation("Error deleting speech practice sentence")
def delete_sentence(conn, sentence_id: int):
    sentence = conn.fetchone('SELECT * FROM speech_practice_sentences WHERE id = ?', (sentence_id,))
    if sentence:
        conn.execute('DELETE FROM speech_practice_sentences WHERE id = ?', (sentence_id,))
    return sentence


@db_operation("Error getting speech practice categories")
def get_categories(conn) -> list[str]:
    rows = conn.fetchall('SELECT DISTINCT category FROM speech_practice_sentences ORDER BY category')
    return [row['category'] for row in rows]


@db_operation("Error getting speech practice stats")
def get_stats(conn) -> dict:
    total = conn.scalar('SELECT COUNT(*) AS count FROM speech_practice_sentences')
    by_difficulty = conn.fetchall(
        'SELECT difficulty, COUNT(*) AS count FROM speech_practice_sentences GROUP BY difficulty ORDER BY difficulty'
    )
    by_category = conn.fetchall(
        'SELECT category, COUNT(*) AS count FROM speech_practice_sentences GROUP BY category ORDER BY category'
    )
    return {
        'total': int(total),
        'byDifficulty': _counted(by_difficulty),
        'byCategory': _counted(by_category),
    }


def _counted(rows: list[dict]) -> list[dict]:
    return [{**row, 'count': int(row['count'])} for row in rows]


############################
# User practice
############################

@db_operation("Error saving user speech practice")
def save_user_practice(conn, user_id: int, sentence_id: int, accuracy: float, audio_url=None) -> dict:
    practice_id = conn.insert(
        'INSERT INTO user_speech_practice (user_id, sentence_id, accuracy, audio_url) VALUES (?, ?, ?, ?)',
        (user_id, sentence_id, accuracy, audio_url)
    )
    return conn.fetchone('SELECT * FROM user_speech_practice WHERE id = ?', (practice_id,))


@db_operation("Error getting user speech practice history")
def get_user_practice_history(conn, user_id: int, pagination: Pagination = None) -> dict:
    pagination = pagination or Pagination(limit=20)
    query = build_page_query(
        'user_speech_practice usp JOIN speech_practice_sentences sps ON usp.sentence_id = sps.id',
        [('usp.user_id', user_id)],
        'usp.practiced_at DESC, usp.id DESC',
        pagination,
        columns='usp.*, sps.sentence, sps.translation, sps.difficulty, sps.category',
    )
    history, page_info = fetch_page(conn, query, pagination)
    return {'history': history, 'pagination': page_info}


@db_operation("Error getting user speech practice stats")
def get_user_practice_stats(conn, user_id: int) -> dict:
    total = conn.scalar('SELECT COUNT(*) AS count FROM user_speech_practice WHERE user_id = ?', (user_id,))
    avg = conn.scalar('SELECT AVG(accuracy) AS avg FROM user_speech_practice WHERE user_id = ?', (user_id,))
    joined = '''
        FROM user_speech_practice usp
        JOIN speech_practice_sentences sps ON usp.sentence_id = sps.id
        WHERE usp.user_id = ?
    '''
    by_difficulty = conn.fetchall(
        f'SELECT sps.difficulty, COUNT(*) AS count {joined} GROUP BY sps.difficulty ORDER BY sps.difficulty',
        (user_id,)
    )
    by_category = conn.fetchall(
        f'SELECT sps.category, COUNT(*) AS count {joined} GROUP BY sps.category ORDER BY sps.category',
        (user_id,)
    )
    recent = conn.fetchall(
        '''
        SELECT DATE(practiced_at) AS practice_date, AVG(accuracy) AS avg_accuracy, COUNT(*) AS count
        FROM user_speech_practice
        WHERE user_id = ? AND practiced_at > ?
        GROUP BY DATE(practiced_at)
        ORDER BY practice_date
        ''',
        (user_id, utc_timestamp(-timedelta(days=RECENT_PROGRESS_DAYS)))
    )
    return {
        'totalPractices': int(total),
        'avgAccuracy': float(avg) if avg else 0,
        'byDifficulty': _counted(by_difficulty),
        'byCategory': _counted(by_category),
        'recentProgress': [
            {
                'practice_date': str(row['practice_date']),
                'avg_accuracy': float(row['avg_accuracy']),
                'count': int(row['count']),
            }
            for row in recent
        ],
    }


@db_operation("Error deleting user speech practice")
def delete_user_practice(conn, user_id: int, practice_id: int):
    practice = conn.fetchone(
        'SELECT * FROM user_speech_practice WHERE id = ? AND user_id = ?',
        (practice_id, user_id)
    )
    if practice:
        conn.execute('DELETE FROM user_speech_practice WHERE id = ?', (practice_id,))
    return practice


@db_operation("Error deleting all user speech practices")
def delete_all_user_practices(conn, user_id: int) -> dict:
    cursor = conn.execute('DELETE FROM user_speech_practice WHERE user_id = ?', (user_id,))
    return {'count': cursor.rowcount}
