"""Shared fixtures: a fresh SQLite database and upload folder per test."""

import os
import tempfile

os.environ['FLASK_ENV'] = 'testing'
os.environ['FORCE_SQLITE'] = '1'
os.environ.setdefault('UPLOAD_FOLDER', tempfile.mkdtemp(prefix='englishapp-uploads-'))

import pytest  # noqa: E402

from app import app as flask_app  # noqa: E402
from englishapp.db import init_db  # noqa: E402
from englishapp.services import catalog_upload, chat  # noqa: E402
from englishapp.services.auth import register_user  # noqa: E402


@pytest.fixture
def app(tmp_path, monkeypatch):
    monkeypatch.setenv('SQLITE_PATH', str(tmp_path / 'test.db'))
    monkeypatch.setitem(flask_app.config, 'UPLOAD_FOLDER', str(tmp_path / 'uploads'))
    monkeypatch.setattr(chat, 'OPENROUTER_KEY', None)
    init_db()
    yield flask_app


@pytest.fixture
def client(app):
    return app.test_client()


def bearer(token):
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def make_user(client):
    """Register a user (or administrator) and return bearer headers for it"""
    counter = {'n': 0}

    def _make_user(email=None, password='secret123', admin=False):
        counter['n'] += 1
        email = email or f"user{counter['n']}@example.com"
        if admin:
            register_user(f"admin{counter['n']}", email, password, is_admin=True)
            resp = client.post('/api/admin/login', json={'email': email, 'password': password})
        else:
            client.post('/api/auth/register', json={
                'username': f"user{counter['n']}", 'email': email, 'password': password,
            })
            resp = client.post('/api/auth/login', json={'email': email, 'password': password})
        assert resp.status_code == 200, resp.get_json()
        return bearer(resp.get_json()['token'])

    return _make_user


@pytest.fixture
def user_headers(make_user):
    return make_user()


@pytest.fixture
def admin_headers(make_user):
    return make_user(admin=True)


@pytest.fixture
def temp_files(monkeypatch):
    """Paths handed out for uploaded and downloaded CSV files"""
    created = []
    real_mkstemp = catalog_upload.tempfile.mkstemp

    def recording_mkstemp(*args, **kwargs):
        fd, path = real_mkstemp(*args, **kwargs)
        created.append(path)
        return fd, path

    monkeypatch.setattr(catalog_upload.tempfile, 'mkstemp', recording_mkstemp)
    return created
