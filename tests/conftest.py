"""Shared fixtures: a small navigation tree and a Flask client on a temp store."""

from __future__ import annotations

import pytest

from sitelist_app.app import app as flask_app
from sitelist_app.storage import NavigationStore
from sitelist_app.tree import tree_from_payload


SAMPLE_NAVIGATION = [
    {
        "id": "dev",
        "title": "Development",
        "items": [
            {"id": "gh", "title": "GitHub", "href": "https://github.com", "description": "Code hosting"},
            {"id": "so", "title": "Stack Overflow", "href": "https://stackoverflow.com"},
        ],
        "subCategories": [
            {
                "id": "docs",
                "title": "Docs",
                "items": [
                    {"id": "py", "title": "Python Docs", "href": "https://docs.python.org", "icon": "/i/py.png"},
                    {"id": "mdn", "title": "MDN", "href": "https://developer.mozilla.org", "enabled": False},
                ],
            },
            {"id": "tools", "title": "Tools", "items": []},
        ],
    },
    {
        "id": "news",
        "title": "News",
        "items": [
            {"id": "hn", "title": "Hacker News", "href": "https://news.ycombinator.com"},
        ],
    },
]


@pytest.fixture
def tree():
    return tree_from_payload(SAMPLE_NAVIGATION)


@pytest.fixture
def store(tmp_path, tree):
    nav_store = NavigationStore(tmp_path / "navigation.yml")
    nav_store.save(tree)
    return nav_store


@pytest.fixture
def client(tmp_path, store, monkeypatch):
    monkeypatch.setitem(flask_app.config, "NAVIGATION_PATH", store.path)
    monkeypatch.setitem(flask_app.config, "UPLOAD_DIR", tmp_path / "uploads")
    flask_app.config["TESTING"] = True
    with flask_app.test_client() as test_client:
        yield test_client
