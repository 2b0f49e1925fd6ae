"""Per-user vocabulary progress: favorites, learned words and quiz attempts."""

import math

from .db import db_operation
from .query import Pagination, build_page_query, fetch_page


@db_operation("Error marking word as favorite")
def mark_word_as_favorite(conn, user_id: int, vocabulary_id: int) -> dict:
    conn.execute(
        '''
        INSERT INTO user_favorite_words (user_id, vocabulary_id) VALUES (?, ?)
        ON CONFLICT (user_id, vocabulary_id) DO NOTHING
        ''',
        (user_id, vocabulary_id)
    )
    return {'success': True}


@db_operation("Error unmarking word as favorite")
def unmark_word_as_favorite(conn, user_id: int, vocabulary_id: int) -> dict:
    conn.execute(
        'DELETE FROM user_favorite_words WHERE user_id = ? AND vocabulary_id = ?',
        (user_id, vocabulary_id)
    )
    return {'success': True}


@db_operation("Error getting user favorite words")
def get_user_favorite_words(conn, user_id: int, pagination: Pagination = None) -> dict:
    pagination = pagination or Pagination()
    query = build_page_query(
        'vocabulary v JOIN user_favorite_words ufw ON v.id = ufw.vocabulary_id',
        [('ufw.user_id', user_id)],
        'ufw.created_at DESC, ufw.id DESC',
        pagination,
        columns='v.*, ufw.created_at AS favorited_at',
    )
    words, page_info = fetch_page(conn, query, pagination)
    return {'words': words, 'pagination': page_info}


@db_operation("Error checking if word is favorite")
def is_word_favorite(conn, user_id: int, vocabulary_id: int) -> bool:
    row = conn.fetchone(
        'SELECT id FROM user_favorite_words WHERE user_id = ? AND vocabulary_id = ?',
        (user_id, vocabulary_id)
    )
    return row is not None


@db_operation("Error marking word as learned")
def mark_word_as_learned(conn, user_id: int, vocabulary_id: int, mastery_level: int = 0) -> dict:
    conn.execute(
        '''
        INSERT INTO user_learned_words (user_id, vocabulary_id, mastery_level, last_reviewed)
        VALUES (?, ?, ?, CURRENT_TIMESTAMP)
        ON CONFLICT (user_id, vocabulary_id)
        DO UPDATE SET mastery_level = excluded.mastery_level, last_reviewed = CURRENT_TIMESTAMP
        ''',
        (user_id, vocabulary_id, mastery_level)
    )
    return {'success': True}


@db_operation("Error getting user learned words")
def get_user_learned_words(conn, user_id: int, pagination: Pagination = None) -> dict:
    pagination = pagination or Pagination()
    query = build_page_query(
        'vocabulary v JOIN user_learned_words ulw ON v.id = ulw.vocabulary_id',
        [('ulw.user_id', user_id)],
        'ulw.last_reviewed DESC, ulw.id DESC',
        pagination,
        columns='v.*, ulw.mastery_level, ulw.last_reviewed',
    )
    words, page_info = fetch_page(conn, query, pagination)
    return {'words': words, 'pagination': page_info}


@db_operation("Error checking if word is learned")
def is_word_learned(conn, user_id: int, vocabulary_id: int):
    return conn.fetchone(
        'SELECT * FROM user_learned_words WHERE user_id = ? AND vocabulary_id = ?',
        (user_id, vocabulary_id)
    )


@db_operation("Error saving quiz attempt")
def save_quiz_attempt(conn, user_id: int, topic, score: int, total_questions: int) -> dict:
    attempt_id = conn.insert(
        'INSERT INTO quiz_attempts (user_id, topic, score, total_questions) VALUES (?, ?, ?, ?)',
        (user_id, topic, score, total_questions)
    )
    return conn.fetchone('SELECT * FROM quiz_attempts WHERE id = ?', (attempt_id,))


@db_operation("Error getting user quiz attempts")
def get_user_quiz_attempts(conn, user_id: int, limit: int = 10) -> list[dict]:
    return conn.fetchall(
        'SELECT * FROM quiz_attempts WHERE user_id = ? ORDER BY created_at DESC, id DESC LIMIT ?',
        (user_id, limit)
    )


@db_operation("Error getting user learning stats")
def get_user_learning_stats(conn, user_id: int) -> dict:
    learned = conn.scalar('SELECT COUNT(*) AS count FROM user_learned_words WHERE user_id = ?', (user_id,))
    favorites = conn.scalar('SELECT COUNT(*) AS count FROM user_favorite_words WHERE user_id = ?', (user_id,))
    quiz = conn.fetchone(
        '''
        SELECT COUNT(*) AS count, SUM(score) AS total_score, SUM(total_questions) AS total_questions
        FROM quiz_attempts WHERE user_id = ?
        ''',
        (user_id,)
    )
    mastery = conn.fetchall(
        '''
        SELECT mastery_level, COUNT(*) AS count
        FROM user_learned_words
        WHERE user_id = ?
        GROUP BY mastery_level
        ORDER BY mastery_level
        ''',
        (user_id,)
    )

    avg_score = 0
    if quiz['total_score'] and quiz['total_questions']:
        # Half-up rounding
        avg_score = math.floor(int(quiz['total_score']) / int(quiz['total_questions']) * 100 + 0.5)

    return {
        'learnedWords': int(learned),
        'favoriteWords': int(favorites),
        'quizAttempts': int(quiz['count']),
        'quizAvgScore': avg_score,
        'masteryLevels': [{'level': r['mastery_level'], 'count': int(r['count'])} for r in mastery],
    }
