from .db import db_operation


@db_operation("Database error in get_user_chat_history")
def get_user_chat_history(conn, user_id: int) -> list[dict]:
    return conn.fetchall(
        'SELECT * FROM chat_history WHERE user_id = ? ORDER BY created_at DESC, id DESC',
        (user_id,)
    )


@db_operation("Database error in get_chat_by_id")
def get_chat_by_id(conn, chat_id: int):
    return conn.fetchone('SELECT * FROM chat_history WHERE id = ?', (chat_id,))


@db_operation("Database error in add_chat")
def add_chat(conn, user_id: int, message: str, response: str, model_id: str = None) -> dict:
    chat_id = conn.insert(
        'INSERT INTO chat_history (user_id, message, response, model_id) VALUES (?, ?, ?, ?)',
        (user_id, message, response, model_id)
    )
    return conn.fetchone('SELECT * FROM chat_history WHERE id = ?', (chat_id,))


@db_operation("Database error in delete_chat")
def delete_chat(conn, chat_id: int) -> bool:
    cursor = conn.execute('DELETE FROM chat_history WHERE id = ?', (chat_id,))
    return cursor.rowcount > 0


@db_operation("Database error in clear_user_chat_history")
def clear_user_chat_history(conn, user_id: int) -> bool:
    cursor = conn.execute('DELETE FROM chat_history WHERE user_id = ?', (user_id,))
    return cursor.rowcount > 0
