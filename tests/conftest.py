"""
Shared fixtures for the racechat test suite.

Provides in-memory stand-ins for the document store and the generation
service, plus a controllable clock.
"""
import asyncio
import itertools
from contextlib import asynccontextmanager

import pytest

from racechat.config import Settings
from racechat.errors import GenerationError, StoreError, StoreUnavailableError
from racechat.generation import Dialogue, GenerationService
from racechat.store import DocumentStore, StoreConnection


def _matches(document, query):
    for field, expected in query.items():
        if field == "$or":
            if not any(_matches(document, sub) for sub in expected):
                return False
        elif field not in document or document[field] != expected:
            return False
    return True


def _sort_key(field):
    # Missing fields sort before present ones, as in MongoDB
    def key(document):
        if field not in document or document[field] is None:
            return (0, 0)
        return (1, document[field])
    return key


class FakeConnection(StoreConnection):
    def __init__(self, store):
        self.store = store

    async def insert_many(self, collection, documents):
        self.store.check(collection)
        bucket = self.store.collections.setdefault(collection, [])
        for document in documents:
            bucket.append({"_id": next(self.store.ids), **document})
        return len(documents)

    async def find(self, collection, filter=None, sort=None, limit=0):
        self.store.check(collection)
        self.store.find_calls.append((collection, filter, list(sort) if sort else None, limit))
        documents = [dict(d) for d in self.store.collections.get(collection, []) if _matches(d, filter or {})]
        for field, direction in reversed(list(sort or [])):
            documents.sort(key=_sort_key(field), reverse=direction < 0)
        return documents[:limit] if limit else documents

    async def find_one(self, collection, filter=None):
        found = await self.find(collection, filter, None, 1)
        return found[0] if found else None

    async def count(self, collection):
        self.store.check(collection)
        return len(self.store.collections.get(collection, []))

    async def list_collections(self):
        return list(self.store.collections)

    async def upsert_one(self, collection, match, fields):
        self.store.check(collection)
        bucket = self.store.collections.setdefault(collection, [])
        for document in bucket:
            if _matches(document, match):
                document.update(fields)
                return
        bucket.append({"_id": next(self.store.ids), **match, **fields})


class FakeStore(DocumentStore):
    def __init__(self, collections=None):
        self.collections = {name: list(docs) for name, docs in (collections or {}).items()}
        self.failing = set()
        self.errors = {}
        self.unavailable = False
        self.open_count = 0
        self.find_calls = []
        self.ids = itertools.count(1)

    def check(self, collection):
        if collection in self.errors:
            raise self.errors[collection]
        if collection in self.failing:
            raise StoreError(f"collection {collection} is broken")

    @asynccontextmanager
    async def open(self):
        if self.unavailable:
            raise StoreUnavailableError("connection refused")
        self.open_count += 1
        yield FakeConnection(self)


class FakeDialogue(Dialogue):
    def __init__(self, initial_turns, config, fail=False, delay=0):
        self.initial_turns = list(initial_turns)
        self.config = config
        self.sent = []
        self.fail = fail
        self.delay = delay

    async def send(self, text):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise GenerationError("model overloaded")
        self.sent.append(text)
        return f"answer #{len(self.sent)}"


class FakeGeneration(GenerationService):
    def __init__(self, fail=False, fail_start=False, delay=0):
        self.dialogues = []
        self.fail = fail
        self.fail_start = fail_start
        self.delay = delay

    def start_dialogue(self, initial_turns, config):
        if self.fail_start:
            raise GenerationError("chat creation rejected")
        dialogue = FakeDialogue(initial_turns, config, fail=self.fail, delay=self.delay)
        self.dialogues.append(dialogue)
        return dialogue


class FakeClock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def generation():
    return FakeGeneration()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return Settings(gemini_api_key="test-key", mongodb_uri=None)
