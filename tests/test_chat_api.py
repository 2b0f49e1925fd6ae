"""Tests for the tutor chat, with the completion API patched out."""

import io
import json
import urllib.error

from englishapp.services import chat


def fake_completion(reply):
    def _http_json(url, payload, headers):
        assert url.endswith('/chat/completions')
        assert payload['messages'][0] == {'role': 'system', 'content': chat.SYSTEM_PROMPT}
        assert headers['Authorization'] == 'Bearer test-key'
        return {'choices': [{'message': {'content': reply}}]}
    return _http_json


class TestChatApi:

    def test_mock_reply_without_api_key(self, client, user_headers):
        resp = client.post('/api/chat/send', headers=user_headers, json={'message': 'Hi!'})
        assert resp.status_code == 200
        body = resp.get_json()
        assert body['response'] == chat.MOCK_RESPONSE
        assert body['model_id'] == chat.MOCK_MODEL
        assert set(body) == {'id', 'message', 'response', 'created_at', 'model_id'}

    def test_reply_is_stored(self, client, user_headers, monkeypatch):
        monkeypatch.setattr(chat, 'OPENROUTER_KEY', 'test-key')
        monkeypatch.setattr(chat, '_http_json', fake_completion('Use "deadline" for a due date.'))

        resp = client.post('/api/chat/send', headers=user_headers,
                           json={'message': 'What is a deadline?', 'modelId': 'qwen/qwen3-1.7b:free'})
        body = resp.get_json()
        assert body['response'] == 'Use "deadline" for a due date.'
        assert body['model_id'] == 'qwen/qwen3-1.7b:free'

        history = client.get('/api/chat/history', headers=user_headers).get_json()
        assert [c['id'] for c in history] == [body['id']]
        assert client.get(f"/api/chat/history/{body['id']}", headers=user_headers).get_json()['message'] == \
            'What is a deadline?'

    def test_empty_message_rejected(self, client, user_headers):
        assert client.post('/api/chat/send', headers=user_headers, json={'message': '  '}).status_code == 400
        assert client.post('/api/chat/send', headers=user_headers, json={'message': 42}).status_code == 400
        assert client.get('/api/chat/history', headers=user_headers).get_json() == []

    def test_payment_required_passed_through(self, client, user_headers, monkeypatch):
        monkeypatch.setattr(chat, 'OPENROUTER_KEY', 'test-key')

        def raise_402(req, timeout=None):
            raise urllib.error.HTTPError(req.full_url, 402, 'Payment Required', {},
                                         io.BytesIO(json.dumps({'error': 'no credits'}).encode('utf-8')))

        monkeypatch.setattr(chat.urllib.request, 'urlopen', raise_402)
        resp = client.post('/api/chat/send', headers=user_headers, json={'message': 'Hello'})
        assert resp.status_code == 402
        assert resp.get_json() == {'message': chat.PAYMENT_REQUIRED_MESSAGE, 'error': 'PAYMENT_REQUIRED'}
        assert client.get('/api/chat/history', headers=user_headers).get_json() == []

    def test_upstream_unreachable(self, client, user_headers, monkeypatch):
        monkeypatch.setattr(chat, 'OPENROUTER_KEY', 'test-key')

        def unreachable(req, timeout=None):
            raise urllib.error.URLError('connection refused')

        monkeypatch.setattr(chat.urllib.request, 'urlopen', unreachable)
        resp = client.post('/api/chat/send', headers=user_headers, json={'message': 'Hello'})
        assert resp.status_code == 502

    def test_models_catalog(self, client, user_headers):
        models = client.get('/api/chat/models', headers=user_headers).get_json()
        assert [m['id'] for m in models] == [m['id'] for m in chat.AVAILABLE_MODELS]

    def test_history_ownership(self, client, make_user):
        owner, other = make_user(), make_user()
        chat_id = client.post('/api/chat/send', headers=owner, json={'message': 'Mine'}).get_json()['id']

        assert client.get(f'/api/chat/history/{chat_id}', headers=other).status_code == 403
        assert client.delete(f'/api/chat/history/{chat_id}', headers=other).status_code == 403
        assert client.get('/api/chat/history/9999', headers=owner).status_code == 404

        assert client.delete(f'/api/chat/history/{chat_id}', headers=owner).status_code == 200
        assert client.get(f'/api/chat/history/{chat_id}', headers=owner).status_code == 404

    def test_clear_history(self, client, user_headers):
        client.post('/api/chat/send', headers=user_headers, json={'message': 'One'})
        client.post('/api/chat/send', headers=user_headers, json={'message': 'Two'})
        resp = client.delete('/api/chat/history', headers=user_headers)
        assert resp.get_json()['message'] == 'Chat history cleared successfully'
        resp = client.delete('/api/chat/history', headers=user_headers)
        assert resp.get_json()['message'] == 'No chat history to clear'
