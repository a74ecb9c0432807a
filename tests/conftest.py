"""Shared fixtures: a temp SQLite store and a fake HTTP session."""
import json
import os

os.environ.setdefault("LOG_TO_FILE", "false")

import pytest

from catalog.models import MenuItem
from catalog.storage import MenuStore


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self.text = text if text is not None else json.dumps(payload)

    def json(self):
        return json.loads(self.text)


class FakeSession:
    """Returns queued responses (or raises queued exceptions) in order."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, timeout=None):
        self.calls.append((url, timeout))
        outcome = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def store(tmp_path):
    s = MenuStore(str(tmp_path / "menu.sqlite3"))
    s.ensure_schema()
    return s


@pytest.fixture
def sample_items():
    return [
        MenuItem(id=1, name="Greek Salad", price="12.99", description="Crispy lettuce", image="greekSalad.jpg", category="Starters"),
        MenuItem(id=2, name="Lemon Dessert", price="6.99", description="Grandma's recipe", image="lemonDessert.jpg", category="Desserts"),
        MenuItem(id=3, name="Bruschetta", price="7.99", description="Grilled bread", image="bruschetta.jpg", category="Starters"),
        MenuItem(id=4, name="Grilled Fish", price="20.00", description="Fresh catch", image="grilledFish.jpg", category="Mains"),
        MenuItem(id=5, name="Pasta", price="18.99", description="Penne", image="pasta.jpg", category="Mains"),
        MenuItem(id=6, name="Water", price="1.00", description="", image="", category=""),
    ]


@pytest.fixture
def seeded_store(store, sample_items):
    store.upsert_many(sample_items)
    return store
