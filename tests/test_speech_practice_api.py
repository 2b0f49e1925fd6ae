"""Tests for speech practice sentences and user practice history."""

import io
import os

SENTENCES_CSV = (
    "Phrase,Vietnamese meaning\n"
    "Could you send me the report?,Bạn có thể gửi cho tôi báo cáo không?\n"
    "Let's schedule a meeting.,Hãy lên lịch một cuộc họp.\n"
    "Could you send me the report?,duplicate\n"
)


def upload_sentences(client, headers, text=SENTENCES_CSV):
    data = {'file': (io.BytesIO(text.encode('utf-8')), 'sentences.csv', 'text/csv')}
    return client.post('/api/speech-practice/upload', headers=headers, data=data,
                       content_type='multipart/form-data')


def add_sentence(client, headers, sentence, **extra):
    resp = client.post('/api/speech-practice/sentences', headers=headers, json={'sentence': sentence, **extra})
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


def practice(client, headers, sentence_id, accuracy, audio=None):
    data = {'sentenceId': str(sentence_id), 'accuracy': str(accuracy)}
    if audio is not None:
        data['audio'] = audio
    return client.post('/api/speech-practice/practice', headers=headers, data=data,
                       content_type='multipart/form-data')


class TestSentencesApi:

    def test_positional_csv_upload(self, client, admin_headers):
        resp = upload_sentences(client, admin_headers)
        assert resp.status_code == 201
        body = resp.get_json()
        assert body['totalProcessed'] == 3
        assert body['newSentencesAdded'] == 2

        listing = client.get('/api/speech-practice/sentences', headers=admin_headers).get_json()
        first = listing['sentences'][0]
        assert first['sentence'] == 'Could you send me the report?'
        assert first['difficulty'] == 'medium'
        assert first['category'] == 'general'
        assert listing['pagination'] == {'total': 2, 'page': 1, 'limit': 20, 'pages': 1}

    def test_crud_and_filters(self, client, admin_headers, user_headers):
        hard = add_sentence(client, admin_headers, 'Quarterly revenue exceeded forecasts.',
                            difficulty='HARD', category='Finance')
        add_sentence(client, admin_headers, 'Nice to meet you.', difficulty='easy')
        assert hard['difficulty'] == 'hard'
        assert hard['category'] == 'finance'

        listing = client.get('/api/speech-practice/sentences?difficulty=hard', headers=user_headers).get_json()
        assert [s['id'] for s in listing['sentences']] == [hard['id']]

        resp = client.put(f"/api/speech-practice/sentences/{hard['id']}", headers=admin_headers,
                          json={'sentence': 'Revenue grew.', 'difficulty': 'medium', 'category': 'finance'})
        assert resp.get_json()['sentence'] == 'Revenue grew.'

        categories = client.get('/api/speech-practice/categories', headers=user_headers).get_json()
        assert categories == ['finance', 'general']

        resp = client.delete(f"/api/speech-practice/sentences/{hard['id']}", headers=admin_headers)
        assert resp.get_json()['sentence']['id'] == hard['id']
        assert client.get(f"/api/speech-practice/sentences/{hard['id']}", headers=user_headers).status_code == 404

    def test_invalid_difficulty_and_duplicates(self, client, admin_headers):
        resp = client.post('/api/speech-practice/sentences', headers=admin_headers,
                           json={'sentence': 'Hello.', 'difficulty': 'extreme'})
        assert resp.status_code == 400
        add_sentence(client, admin_headers, 'Hello.')
        resp = client.post('/api/speech-practice/sentences', headers=admin_headers, json={'sentence': 'Hello.'})
        assert resp.status_code == 400

    def test_non_string_fields_rejected(self, client, admin_headers):
        for body in ({'sentence': 123}, {'sentence': ['Hello.']}, {'sentence': 'Hello.', 'difficulty': 2},
                     {'sentence': 'Hello.', 'category': ['work']}):
            resp = client.post('/api/speech-practice/sentences', headers=admin_headers, json=body)
            assert resp.status_code == 400

    def test_uploaded_file_removed_when_import_fails(self, client, admin_headers, temp_files):
        text = "sentence,difficulty\nGood luck.,extreme\n"
        resp = upload_sentences(client, admin_headers, text)
        assert resp.status_code == 500
        assert len(temp_files) == 1
        assert not os.path.exists(temp_files[0])

        assert upload_sentences(client, admin_headers).status_code == 201
        assert len(temp_files) == 2
        assert not os.path.exists(temp_files[1])

    def test_writes_require_admin(self, client, user_headers):
        resp = client.post('/api/speech-practice/sentences', headers=user_headers, json={'sentence': 'x'})
        assert resp.status_code == 403
        assert upload_sentences(client, user_headers).status_code == 403

    def test_admin_stats(self, client, admin_headers):
        add_sentence(client, admin_headers, 'One.', difficulty='easy', category='daily')
        add_sentence(client, admin_headers, 'Two.', difficulty='easy', category='work')
        add_sentence(client, admin_headers, 'Three.', difficulty='hard', category='work')
        stats = client.get('/api/speech-practice/admin/stats', headers=admin_headers).get_json()
        assert stats['total'] == 3
        assert stats['byDifficulty'] == [{'difficulty': 'easy', 'count': 2}, {'difficulty': 'hard', 'count': 1}]
        assert stats['byCategory'] == [{'category': 'daily', 'count': 1}, {'category': 'work', 'count': 2}]


class TestPracticeApi:

    def test_practice_history_and_stats(self, client, admin_headers, user_headers):
        sentence = add_sentence(client, admin_headers, 'Good afternoon.', difficulty='easy')
        assert practice(client, user_headers, sentence['id'], 80).status_code == 201
        resp = practice(client, user_headers, sentence['id'], 90.5,
                        audio=(io.BytesIO(b'RIFF....WAVE'), 'take.wav', 'audio/wav'))
        assert resp.status_code == 201
        assert resp.get_json()['audio_url'].startswith('/uploads/speech/speech-')

        history = client.get('/api/speech-practice/history', headers=user_headers).get_json()
        assert history['pagination']['total'] == 2
        assert history['history'][0]['sentence'] == 'Good afternoon.'

        stats = client.get('/api/speech-practice/stats', headers=user_headers).get_json()
        assert stats['totalPractices'] == 2
        assert stats['avgAccuracy'] == 85.25
        assert stats['byDifficulty'] == [{'difficulty': 'easy', 'count': 2}]
        assert len(stats['recentProgress']) == 1
        assert stats['recentProgress'][0]['count'] == 2

    def test_practice_validation(self, client, user_headers):
        assert practice(client, user_headers, 999, 50).status_code == 404
        resp = client.post('/api/speech-practice/practice', headers=user_headers, data={'sentenceId': '1'},
                           content_type='multipart/form-data')
        assert resp.status_code == 400

    def test_practice_rejects_non_audio(self, client, admin_headers, user_headers):
        sentence = add_sentence(client, admin_headers, 'Thanks.')
        resp = practice(client, user_headers, sentence['id'], 70,
                        audio=(io.BytesIO(b'x'), 'notes.txt', 'text/plain'))
        assert resp.status_code == 400

    def test_delete_history(self, client, admin_headers, make_user):
        sentence = add_sentence(client, admin_headers, 'See you soon.')
        owner, other = make_user(), make_user()
        first = practice(client, owner, sentence['id'], 60).get_json()
        practice(client, owner, sentence['id'], 70)
        practice(client, other, sentence['id'], 75)

        # Another user's record is not visible
        assert client.delete(f"/api/speech-practice/history/{first['id']}", headers=other).status_code == 404
        assert client.delete(f"/api/speech-practice/history/{first['id']}", headers=owner).status_code == 200

        resp = client.delete('/api/speech-practice/history', headers=owner)
        assert resp.get_json()['count'] == 1
        assert client.get('/api/speech-practice/stats', headers=other).get_json()['totalPractices'] == 1

    def test_deleting_sentence_removes_practice_history(self, client, admin_headers, user_headers):
        sentence = add_sentence(client, admin_headers, 'Please find attached the invoice.')
        practice(client, user_headers, sentence['id'], 65)
        assert client.get('/api/speech-practice/stats', headers=user_headers).get_json()['totalPractices'] == 1

        client.delete(f"/api/speech-practice/sentences/{sentence['id']}", headers=admin_headers)

        assert client.get('/api/speech-practice/stats', headers=user_headers).get_json()['totalPractices'] == 0
        history = client.get('/api/speech-practice/history', headers=user_headers).get_json()
        assert history['pagination']['total'] == 0
