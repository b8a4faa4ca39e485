import logging

import pytest
from fastapi.testclient import TestClient

from headsup_server.main import create_app, create_asgi_app
from headsup_server.store import InMemoryDocumentStore

from conftest import ScriptedWordService, ServerTestConfig, make_words


@pytest.fixture()
def store():
    return InMemoryDocumentStore()


def client_for(service, store):
    app = create_app(ServerTestConfig, store=store, http=service.client())
    return TestClient(app)


def test_catalog_lists_categories_and_difficulties(store):
    with client_for(ScriptedWordService(), store) as client:
        res = client.get('/catalog')
    assert res.status_code == 200
    body = res.json()
    assert 'Movies' in body['categories']
    assert body['difficulties'] == ['Easy', 'Medium', 'Hard']
    assert body['durations'] == [60, 90, 120]


def test_get_deck_seeds_new_user(store):
    service = ScriptedWordService(make_words('m', 50), make_words('n', 50), make_words('o', 50))
    with client_for(service, store) as client:
        res = client.get('/decks/u1/movies/easy')
    assert res.status_code == 200
    body = res.json()
    assert body['deckId'] == 'movies_easy'
    assert len(body['words']) == 150
    # canonical names are sent to the word supply
    assert service.requests[0]['category'] == 'Movies'
    assert service.requests[0]['difficulty'] == 'Easy'


def test_get_deck_unknown_category_is_400(store):
    with client_for(ScriptedWordService(), store) as client:
        res = client.get('/decks/u1/Cooking/Easy')
    assert res.status_code == 400


def test_get_deck_unavailable_is_503(store):
    with client_for(ScriptedWordService(500, 500, 500), store) as client:
        res = client.get('/decks/u1/Movies/Easy')
    assert res.status_code == 503
    assert res.json()['ok'] is False
    assert res.json()['deckId'] == 'movies_easy'


def test_mark_seen_then_get_deck(store):
    with client_for(ScriptedWordService(['Jaws', 'Up']), store) as client:
        client.get('/decks/u1/Movies/Easy')
        res = client.post('/decks/u1/Movies/Easy/seen', json={'word': 'Jaws'})
        assert res.json() == {'ok': True}
        res = client.get('/decks/u1/Movies/Easy')
    assert res.json()['words'] == ['Up']


def test_mark_seen_for_missing_deck_still_ok(store):
    with client_for(ScriptedWordService(), store) as client:
        res = client.post('/decks/ghost/Movies/Easy/seen', json={'word': 'Jaws'})
    assert res.status_code == 200
    assert res.json() == {'ok': True}


def test_report_round_scores_and_marks_words(store):
    with client_for(ScriptedWordService(['Jaws', 'Up', 'Cars', 'Heat']), store) as client:
        client.get('/decks/u1/Movies/Easy')
        res = client.post('/rounds/u1', json={
            'category': 'Movies',
            'difficulty': 'Easy',
            'correctWords': ['Jaws', 'Up', 'Cars'],
            'skippedWords': ['Heat'],
        })
        assert res.status_code == 200
        assert res.json() == {
            'score': 5,
            'correctWords': ['Jaws', 'Up', 'Cars'],
            'skippedWords': ['Heat'],
        }
        health = client.get('/health').json()
    assert health['ok'] is True
    assert health['pendingRefreshes'] == 0


def test_report_round_marks_seen_in_store(store):
    with client_for(ScriptedWordService(['Jaws', 'Up']), store) as client:
        client.get('/decks/u1/Movies/Easy')
        client.post('/rounds/u1', json={
            'category': 'movies', 'difficulty': 'easy',
            'correctWords': ['Jaws'], 'skippedWords': [],
        })
        res = client.get('/decks/u1/Movies/Easy')
    assert res.json()['words'] == ['Up']


def test_app_factories_leave_root_logging_alone(store):
    root = logging.getLogger()
    before = list(root.handlers)

    create_app(ServerTestConfig, store=store)
    create_asgi_app(ServerTestConfig, store=store)

    assert root.handlers == before
