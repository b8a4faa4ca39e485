import json

import httpx
import pytest

from headsup_server.config import Config
from headsup_server.managers.deck import DeckCacheManager
from headsup_server.store import DeckKeys, InMemoryDocumentStore
from headsup_server.word_supply import WordSupplyClient

WORD_SUPPLY_URL = 'http://words.test/generate'


class ServerTestConfig(Config):
    WORD_SUPPLY_URL = WORD_SUPPLY_URL
    WORD_SUPPLY_TIMEOUT_SEC = 5.0
    CORS_ORIGINS = ['*']
    LOG_LEVEL = 'WARNING'


def make_words(prefix, n):
    return [f"{prefix}{i}" for i in range(n)]


class ScriptedWordService:
    """
    httpx MockTransport handler that plays back one scripted reply per request.

    A reply is a list of words (200), an int status code (error body), or an
    exception to raise. Once the script runs out every request gets an empty list.
    """

    def __init__(self, *replies):
        self.replies = list(replies)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        if not self.replies:
            return httpx.Response(200, json={'words': []})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, int):
            return httpx.Response(reply, text='word service exploded')
        return httpx.Response(200, json={'words': reply})

    def client(self):
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


def build_manager(service, store=None, **kwargs):
    store = store or InMemoryDocumentStore()
    supply = WordSupplyClient(service.client(), WORD_SUPPLY_URL)
    return DeckCacheManager(store, supply, keys=DeckKeys(), **kwargs), store


@pytest.fixture()
def keys():
    return DeckKeys()


@pytest.fixture()
def store():
    return InMemoryDocumentStore()
