"""Tests for the application shell: health, error rendering and media storage."""

import io

import pytest
from werkzeug.datastructures import FileStorage

from englishapp.errors import ValidationError
from englishapp.services import media_storage


class TestAppShell:

    def test_health(self, client):
        body = client.get('/health').get_json()
        assert body == {'ok': True, 'database': 'sqlite'}

    def test_unknown_route_renders_json(self, client):
        resp = client.get('/api/nothing-here')
        assert resp.status_code == 404
        assert 'message' in resp.get_json()

    def test_storage_failure_is_500(self, client, user_headers, tmp_path, monkeypatch):
        # A directory cannot be opened as a database file
        monkeypatch.setenv('SQLITE_PATH', str(tmp_path))
        resp = client.get('/api/vocabulary', headers=user_headers)
        assert resp.status_code == 500
        body = resp.get_json()
        assert body['message'] == 'Database connection failed'
        assert body['error']

    def test_reset_token_hidden_outside_testing(self, client, app, make_user, monkeypatch):
        make_user(email='quiet@example.com')
        monkeypatch.setitem(app.config, 'EXPOSE_RESET_TOKEN', False)
        body = client.post('/api/auth/forgot-password', json={'email': 'quiet@example.com'}).get_json()
        assert 'resetToken' not in body


class FakeS3Client:
    def __init__(self):
        self.uploaded = []
        self.deleted = []

    def upload_fileobj(self, stream, bucket, key, ExtraArgs=None):
        self.uploaded.append((bucket, key, stream.read(), ExtraArgs['ContentType']))

    def delete_object(self, Bucket, Key):
        self.deleted.append((Bucket, Key))


class TestMediaStorage:

    def test_local_save_and_delete(self, app, tmp_path):
        upload = FileStorage(stream=io.BytesIO(b'audio'), filename='clip.mp3', content_type='audio/mpeg')
        with app.test_request_context():
            url = media_storage.save_upload(upload, 'speech', 'speech')
            assert url.startswith('/uploads/speech/speech-') and url.endswith('.mp3')
            stored = tmp_path / 'uploads' / url[len('/uploads/'):]
            assert stored.read_bytes() == b'audio'

            assert media_storage.delete_media(url) is True
            assert not stored.exists()
            assert media_storage.delete_media(url) is False

    def test_delete_refuses_paths_outside_upload_folder(self, app, tmp_path):
        outside = tmp_path / 'secret.txt'
        outside.write_text('keep me')
        with app.test_request_context():
            assert media_storage.delete_media('/uploads/../secret.txt') is False
        assert outside.exists()

    def test_s3_backend(self, app, monkeypatch):
        fake = FakeS3Client()
        monkeypatch.setattr(media_storage.boto3, 'client', lambda *args, **kwargs: fake)
        monkeypatch.setattr(media_storage, '_s3_storage', None)
        monkeypatch.setitem(app.config, 'S3_BUCKET_NAME', 'english-media')
        monkeypatch.setitem(app.config, 'AWS_DEFAULT_REGION', 'ap-southeast-1')

        upload = FileStorage(stream=io.BytesIO(b'img'), filename='cover.png', content_type='image/png')
        with app.test_request_context():
            url = media_storage.save_upload(upload, 'topics', 'topic')
            assert url.startswith('https://english-media.s3.ap-southeast-1.amazonaws.com/uploads/topics/topic-')
            bucket, key, body, content_type = fake.uploaded[0]
            assert (bucket, body, content_type) == ('english-media', b'img', 'image/png')

            assert media_storage.delete_media(url) is True
            assert fake.deleted == [('english-media', key)]

    def test_check_upload_type(self):
        upload = FileStorage(stream=io.BytesIO(b''), filename='photo.gif', content_type='image/gif')
        media_storage.check_upload_type(upload, media_storage.IMAGE_TYPES, media_storage.IMAGE_EXTENSIONS)
        with pytest.raises(ValidationError):
            media_storage.check_upload_type(upload, media_storage.AUDIO_TYPES)
